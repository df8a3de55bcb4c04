"""Unit tests for task validation at the persistence boundary."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.domain.aquarium import Equipment
from src.domain.create_models import EquipmentCreate, TaskCreate
from src.domain.task import MaintenanceTask, RecurrenceInterval, TaskStatus, resolve_recurrence_days
from src.domain.update_models import TaskUpdate


def _record(**overrides):
    record = {
        "id": "7",
        "aquarium_id": "1",
        "task_name": "Water change",
        "task_type": "water_change",
        "due_date": "2025-01-10",
        "status": "pending",
        "is_recurring": 0,
    }
    record.update(overrides)
    return record


@pytest.mark.unit
class TestMaintenanceTask:
    def test_parses_stored_record(self):
        task = MaintenanceTask.model_validate(_record(equipment_id="", notes=""))

        assert task.due_date == date(2025, 1, 10)
        assert task.status == TaskStatus.PENDING
        assert task.equipment_id is None
        assert task.notes is None
        assert task.is_recurring is False

    def test_timestamp_due_date_is_truncated(self):
        task = MaintenanceTask.model_validate(_record(due_date="2025-01-10T22:15:00Z"))
        assert task.due_date == date(2025, 1, 10)

    def test_malformed_due_date_rejected(self):
        with pytest.raises(ValidationError):
            MaintenanceTask.model_validate(_record(due_date="someday"))

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            MaintenanceTask.model_validate(_record(status="overdue"))

    def test_recurring_requires_interval(self):
        with pytest.raises(ValidationError, match="recurrence_interval is required"):
            MaintenanceTask.model_validate(_record(is_recurring=1))

    def test_custom_requires_positive_days(self):
        with pytest.raises(ValidationError, match="positive recurrence_days"):
            MaintenanceTask.model_validate(_record(is_recurring=1, recurrence_interval="custom", recurrence_days=0))

    @pytest.mark.parametrize(
        ("interval", "days", "expected"),
        [("daily", None, 1), ("weekly", None, 7), ("biweekly", None, 14), ("monthly", None, 30), ("custom", 10, 10)],
    )
    def test_effective_recurrence_days(self, interval, days, expected):
        task = MaintenanceTask.model_validate(
            _record(is_recurring=1, recurrence_interval=interval, recurrence_days=days)
        )
        assert task.effective_recurrence_days == expected

    def test_fixed_interval_ignores_stored_days(self):
        assert resolve_recurrence_days(RecurrenceInterval.WEEKLY, 99) == 7

    def test_non_recurring_has_no_recurrence_days(self):
        assert MaintenanceTask.model_validate(_record()).effective_recurrence_days is None

    def test_task_is_immutable(self):
        task = MaintenanceTask.model_validate(_record())
        with pytest.raises(ValidationError):
            task.status = TaskStatus.COMPLETED


@pytest.mark.unit
class TestTaskCreate:
    def _create(self, **overrides):
        data = {
            "aquarium_id": "1",
            "task_name": "Test water",
            "task_type": "testing",
            "due_date": date(2025, 1, 10),
        }
        data.update(overrides)
        return TaskCreate(**data)

    def test_weekly_recurrence(self):
        task = self._create(is_recurring=True, recurrence_interval="weekly")
        assert task.recurrence_interval == RecurrenceInterval.WEEKLY

    def test_interval_without_recurring_flag_rejected(self):
        with pytest.raises(ValidationError, match="require is_recurring"):
            self._create(recurrence_interval="weekly")

    def test_recurring_without_interval_rejected(self):
        with pytest.raises(ValidationError, match="recurrence_interval is required"):
            self._create(is_recurring=True)

    @pytest.mark.parametrize("days", [None, 0, -3])
    def test_custom_without_positive_days_rejected(self, days):
        with pytest.raises(ValidationError, match="positive integer"):
            self._create(is_recurring=True, recurrence_interval="custom", recurrence_days=days)

    def test_days_with_fixed_interval_rejected(self):
        with pytest.raises(ValidationError, match="must not be set"):
            self._create(is_recurring=True, recurrence_interval="monthly", recurrence_days=30)

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="Task name is required"):
            self._create(task_name="   ")

    def test_to_record_serializes_dates_and_drops_missing_equipment(self):
        record = self._create().to_record()

        assert record["due_date"] == "2025-01-10"
        assert record["status"] == "pending"
        assert "equipment_id" not in record


@pytest.mark.unit
class TestEquipmentModels:
    def test_interval_bounds(self):
        with pytest.raises(ValidationError):
            EquipmentCreate(aquarium_id="1", name="Canister", equipment_type="Filter", maintenance_interval_days=0)
        with pytest.raises(ValidationError):
            EquipmentCreate(aquarium_id="1", name="Canister", equipment_type="Filter", maintenance_interval_days=366)

    def test_stored_non_positive_interval_means_no_schedule(self):
        equipment = Equipment(id="1", aquarium_id="1", maintenance_interval_days=0)
        assert equipment.maintenance_interval_days is None


@pytest.mark.unit
def test_task_update_reports_only_set_fields():
    assert TaskUpdate(notes=None, task_name="Dose").changes() == {"notes": None, "task_name": "Dose"}
