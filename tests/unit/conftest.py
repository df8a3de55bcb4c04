"""Pytest configuration and fixtures for unit tests."""

from datetime import datetime

import pytest

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.scheduler import MinuteClock
from src.domain.aquarium import Aquarium
from src.modules.tasks import equipment as equipment_service
from tests.unit.mocks import FakeTaskBackend, ManualScheduler


OWNER_ID = "user-1"
STRANGER_ID = "user-2"


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch):
    """Points the db client at a fresh SQLite file with the schema created."""
    db_path = tmp_path / "tankkeeper.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))
    await init_db()
    yield db_path
    await close_connection()


@pytest.fixture
async def aquarium(sqlite_db) -> Aquarium:
    """An aquarium owned by OWNER_ID."""
    return await equipment_service.create_aquarium(user_id=OWNER_ID, name="Reef 60", aquarium_type="saltwater")


@pytest.fixture
async def stranger_aquarium(sqlite_db) -> Aquarium:
    """An aquarium owned by somebody else."""
    return await equipment_service.create_aquarium(user_id=STRANGER_ID, name="Planted 20")


@pytest.fixture
def fake_backend() -> FakeTaskBackend:
    return FakeTaskBackend()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def frozen_clock(manual_scheduler) -> MinuteClock:
    """Display clock pinned to 2025-01-10 09:00."""
    return MinuteClock(manual_scheduler, tick_seconds=60, now=lambda: datetime(2025, 1, 10, 9, 0))
