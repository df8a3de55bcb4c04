"""Domain models and DTOs."""

from src.domain.aquarium import Aquarium, Equipment
from src.domain.create_models import AquariumCreate, EquipmentCreate, TaskCreate
from src.domain.task import MaintenanceTask, RecurrenceInterval, TaskStatus, resolve_recurrence_days
from src.domain.update_models import EquipmentUpdate, TaskUpdate


__all__ = [
    "Aquarium",
    "AquariumCreate",
    "Equipment",
    "EquipmentCreate",
    "EquipmentUpdate",
    "MaintenanceTask",
    "RecurrenceInterval",
    "TaskCreate",
    "TaskStatus",
    "TaskUpdate",
    "resolve_recurrence_days",
]
