"""tankkeeper - aquarium maintenance tracker.

Usage:
    python -m src.main <user_id> [YYYY-MM]
"""

import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire
from src.modules.calendar.backend import ServiceBackend
from src.modules.calendar.session import CalendarSession


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Check that the database directory exists or can be created.

    Production deployments must also report to Logfire.

    Raises:
        OSError: If the database directory cannot be created
        ValueError: If the Logfire token is missing in production
    """
    logger.info("startup_validation_begin")
    if settings.environment == "production":
        settings.require_credential("logfire_token", "Logfire")
        logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})

    db_dir = Path(settings.sqlite_db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)
    logger.info("startup_validation", extra={"stage": "database_path", "status": "ok", "path": str(db_dir)})


@asynccontextmanager
async def lifespan() -> AsyncIterator[None]:
    """Configure logging, prepare the database and close it on exit."""
    configure_logfire()

    try:
        validate_startup_configuration()
    except (OSError, ValueError) as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    await init_db()
    logger.info("Database initialized")
    try:
        yield
    finally:
        await close_connection()


@asynccontextmanager
async def open_calendar(
    *, user_id: str, month: date | None = None, aquarium_ids: list[str] | None = None
) -> AsyncIterator[CalendarSession]:
    """Open a loaded calendar session for a user and close it on exit."""
    session = CalendarSession(backend=ServiceBackend(user_id=user_id, aquarium_ids=aquarium_ids), month=month)
    await session.open()
    try:
        yield session
    finally:
        await session.close()


async def show_month(user_id: str, month: date | None = None) -> None:
    """Log the month summary for a user."""
    async with lifespan(), open_calendar(user_id=user_id, month=month) as session:
        if session.error is not None:
            logger.error("Could not load calendar: %s", session.error.message)
            return

        stats = session.stats
        logger.info(
            "Calendar %s: %d pending (%d overdue, %d today, %d this week), %d completed",
            session.window.key,
            stats.total_pending,
            stats.overdue_count,
            stats.today_count,
            stats.this_week_count,
            stats.completed_count,
        )
        for day in session.days:
            for task in session.get_tasks_for_day(day):
                logger.info("%s  %-9s %s", day.isoformat(), task.status, task.task_name)


def main() -> None:
    if len(sys.argv) < 2:  # noqa: PLR2004
        print(__doc__, file=sys.stderr)  # noqa: T201
        sys.exit(2)

    month = date.fromisoformat(f"{sys.argv[2]}-01") if len(sys.argv) > 2 else None  # noqa: PLR2004
    asyncio.run(show_month(sys.argv[1], month))


if __name__ == "__main__":
    main()
