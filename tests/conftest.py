"""Pytest configuration and shared fixtures."""

import itertools
from collections.abc import Callable
from datetime import date
from typing import Any

import logfire
import pytest

from src.domain.task import MaintenanceTask


_task_ids = itertools.count(1)


@pytest.fixture(scope="session", autouse=True)
def quiet_logfire():
    """Keep spans local during tests."""
    logfire.configure(send_to_logfire=False, console=False)


def make_task(**overrides: Any) -> MaintenanceTask:
    """Build a validated task with sensible defaults.

    Usage:
        task = make_task(due_date=date(2025, 1, 10), status="completed")
    """
    data: dict[str, Any] = {
        "id": str(next(_task_ids)),
        "aquarium_id": "1",
        "task_name": "Water change",
        "task_type": "water_change",
        "due_date": date(2025, 1, 10),
    }
    data.update(overrides)
    return MaintenanceTask.model_validate(data)


@pytest.fixture
def task_factory() -> Callable[..., MaintenanceTask]:
    """Factory for creating in-memory tasks with custom fields."""
    return make_task
