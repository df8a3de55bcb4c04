"""Aquarium and equipment service."""

import logging
from collections.abc import Sequence
from datetime import date

from src.core.dates import add_days, today
from src.core.logging import span
from src.domain.aquarium import Aquarium, Equipment
from src.domain.create_models import AquariumCreate, EquipmentCreate, TaskCreate
from src.domain.update_models import EquipmentUpdate
from src.modules.tasks import store


logger = logging.getLogger(__name__)

# Task types that imply a kind of equipment; an empty list means "any equipment"
TASK_TYPE_EQUIPMENT: dict[str, list[str]] = {
    "filter_cleaning": ["Filter"],
    "dosing": ["Dosing Pump"],
    "equipment_maintenance": [],
}

EQUIPMENT_MAINTENANCE_TASK_TYPE = "equipment_maintenance"


async def create_aquarium(*, user_id: str, name: str, aquarium_type: str = "freshwater") -> Aquarium:
    with span("equipment_service.create_aquarium"):
        return await store.create_aquarium(data=AquariumCreate(user_id=user_id, name=name, type=aquarium_type))


async def list_aquariums(*, user_id: str) -> list[Aquarium]:
    """List the user's aquariums (the options of the aquarium filter)."""
    return await store.list_aquariums(user_id=user_id)


async def create_equipment(
    *,
    user_id: str,
    aquarium_id: str,
    name: str,
    equipment_type: str,
    maintenance_interval_days: int | None = None,
    notes: str | None = None,
    reference: date | None = None,
) -> Equipment:
    """Create equipment and, when it has a maintenance interval, its first maintenance task.

    The first task is due ``reference + maintenance_interval_days`` (reference defaults
    to today); completing it keeps the maintenance chain going through the
    equipment fallback of the recurrence resolver.

    Raises:
        PermissionError: If the aquarium does not belong to the user
        ValueError: If the maintenance interval is outside 1..365 days
    """
    with span("equipment_service.create_equipment"):
        data = EquipmentCreate(
            aquarium_id=aquarium_id,
            name=name,
            equipment_type=equipment_type,
            maintenance_interval_days=maintenance_interval_days,
            notes=notes or None,
        )
        equipment = await store.create_equipment(data=data, user_id=user_id)

        if equipment.maintenance_interval_days is not None:
            first_task = await store.insert_task(
                data=TaskCreate(
                    aquarium_id=aquarium_id,
                    equipment_id=equipment.id,
                    task_name=f"{equipment.name} maintenance",
                    task_type=EQUIPMENT_MAINTENANCE_TASK_TYPE,
                    due_date=add_days(reference or today(), equipment.maintenance_interval_days),
                ),
                user_id=user_id,
            )
            logger.info("Scheduled first maintenance task %s for equipment %s", first_task.id, equipment.id)

        return equipment


async def get_equipment(*, equipment_id: str, user_id: str) -> Equipment:
    return await store.get_equipment(equipment_id=equipment_id, user_id=user_id)


async def list_equipment(*, aquarium_id: str, user_id: str) -> list[Equipment]:
    return await store.list_equipment(aquarium_id=aquarium_id, user_id=user_id)


async def count_equipment(*, aquarium_id: str, user_id: str) -> int:
    """Number of pieces of equipment installed in the aquarium."""
    return await store.count_equipment(aquarium_id=aquarium_id, user_id=user_id)


async def update_equipment(*, equipment_id: str, user_id: str, changes: EquipmentUpdate) -> Equipment:
    """Apply field edits to equipment.

    A new maintenance interval is picked up the next time one of the
    equipment's tasks without a recurrence rule is completed; tasks already
    scheduled keep their due dates.

    Raises:
        RecordNotFoundError: If the equipment does not exist
        PermissionError: If the equipment's aquarium belongs to another user
    """
    with span("equipment_service.update_equipment", equipment_id=equipment_id):
        data = changes.changes()
        if not data:
            return await store.get_equipment(equipment_id=equipment_id, user_id=user_id)

        equipment = await store.update_equipment(equipment_id=equipment_id, user_id=user_id, data=data)
        logger.info("Updated equipment %s fields: %s", equipment_id, sorted(data))
        return equipment


async def delete_equipment(*, equipment_id: str, user_id: str) -> None:
    """Delete equipment.

    Its tasks stay on the calendar; completing one afterwards no longer
    schedules a successor from the equipment's interval.

    Raises:
        RecordNotFoundError: If the equipment does not exist
        PermissionError: If the equipment's aquarium belongs to another user
    """
    with span("equipment_service.delete_equipment", equipment_id=equipment_id):
        await store.delete_equipment(equipment_id=equipment_id, user_id=user_id)
        logger.info("Deleted equipment %s", equipment_id)


def suggest_equipment_for_task_type(task_type: str, equipment: Sequence[Equipment]) -> Equipment | None:
    """Pick the equipment a new task of this type should be linked to.

    Only task types with a known equipment kind are matched, and only an
    unambiguous (single) match is returned.
    """
    matching_types = TASK_TYPE_EQUIPMENT.get(task_type)
    if not matching_types:
        return None

    matches = [
        item for item in equipment if any(kind.lower() in item.equipment_type.lower() for kind in matching_types)
    ]
    if len(matches) == 1:
        return matches[0]
    return None
