"""Tests for startup validation and the application lifespan."""

from pathlib import Path
from unittest.mock import patch

import pytest

from src.core import db_client
from src.core.config import settings
from src.main import lifespan, validate_startup_configuration


def test_validate_creates_database_directory(tmp_path: Path, monkeypatch) -> None:
    """Test the database directory is created when missing."""
    db_path = tmp_path / "nested" / "data" / "tankkeeper.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))

    validate_startup_configuration()

    assert db_path.parent.is_dir()


def test_production_requires_logfire_token(tmp_path: Path, monkeypatch) -> None:
    """Test production startup fails without a Logfire token."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "tankkeeper.db"))
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "logfire_token", None)

    with pytest.raises(ValueError, match="LOGFIRE_TOKEN"):
        validate_startup_configuration()


@pytest.mark.asyncio
async def test_lifespan_exits_when_directory_cannot_be_created(tmp_path: Path, monkeypatch) -> None:
    """Test startup exits with status 1 when the database path is unusable."""
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("")
    monkeypatch.setattr(settings, "sqlite_db_path", str(blocker / "tankkeeper.db"))

    with (
        patch("src.main.configure_logfire"),
        pytest.raises(SystemExit) as exc_info,
    ):
        async with lifespan():
            pass

    assert exc_info.value.code == 1


@pytest.mark.asyncio
async def test_lifespan_initializes_and_closes_database(tmp_path: Path, monkeypatch) -> None:
    """Test the schema is created on entry and the connection closed on exit."""
    db_path = tmp_path / "tankkeeper.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))

    with patch("src.main.configure_logfire"):
        async with lifespan():
            assert db_path.exists()
            assert await db_client.list_records(collection="tasks") == []
