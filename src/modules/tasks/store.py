"""Ownership-scoped persistence for aquariums, equipment and maintenance tasks.

Every lookup and write verifies that the record's aquarium belongs to the acting
user before touching it. Records leave this module as validated domain models.
"""

import logging
from datetime import date
from typing import Any

from pydantic import ValidationError

from src.core import db_client
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.domain.aquarium import Aquarium, Equipment
from src.domain.create_models import AquariumCreate, EquipmentCreate, TaskCreate
from src.domain.task import MaintenanceTask, TaskStatus


logger = logging.getLogger(__name__)

TASKS = "tasks"
EQUIPMENT = "equipment"
AQUARIUMS = "aquariums"


def parse_task_record(record: dict[str, Any]) -> MaintenanceTask:
    """Validate a raw task record.

    Raises:
        ValidationError: If the record violates the task invariants
    """
    return MaintenanceTask.model_validate(record)


def parse_task_records(records: list[dict[str, Any]]) -> list[MaintenanceTask]:
    """Validate raw task records, dropping malformed ones with a warning.

    A task with an unparseable due date cannot be placed on the calendar, so it is
    excluded rather than failing the whole listing.
    """
    tasks = []
    for record in records:
        try:
            tasks.append(parse_task_record(record))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed task record",
                extra={"task_id": record.get("id"), "due_date": record.get("due_date"), "error": str(e)},
            )
    return tasks


async def _list_all(*, collection: str, filter_query: str, sort: str) -> list[dict[str, Any]]:
    """Drain every page of a list query."""
    per_page = constants.DEFAULT_PER_PAGE_LIMIT
    page = 1
    records: list[dict[str, Any]] = []
    while True:
        batch = await db_client.list_records(
            collection=collection,
            page=page,
            per_page=per_page,
            filter_query=filter_query,
            sort=sort,
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


def _aquarium_scope_filter(aquarium_ids: list[str]) -> str:
    conditions = " || ".join(f'aquarium_id = "{sanitize_param(aquarium_id)}"' for aquarium_id in aquarium_ids)
    return f"({conditions})"


# Aquariums


async def create_aquarium(*, data: AquariumCreate) -> Aquarium:
    record = await db_client.create_record(collection=AQUARIUMS, data=data.model_dump())
    logger.info("Created aquarium '%s' for user_id=%s", data.name, data.user_id)
    return Aquarium.model_validate(record)


async def get_aquarium(*, aquarium_id: str, user_id: str) -> Aquarium:
    """Get an aquarium owned by the user.

    Raises:
        RecordNotFoundError: If the aquarium does not exist
        PermissionError: If the aquarium belongs to another user
    """
    record = await db_client.get_record(collection=AQUARIUMS, record_id=aquarium_id)
    if str(record["user_id"]) != str(user_id):
        raise PermissionError(f"Aquarium {aquarium_id} does not belong to {user_id}")
    return Aquarium.model_validate(record)


async def list_aquariums(*, user_id: str) -> list[Aquarium]:
    records = await _list_all(
        collection=AQUARIUMS,
        filter_query=f'user_id = "{sanitize_param(user_id)}"',
        sort="name ASC, id ASC",
    )
    return [Aquarium.model_validate(record) for record in records]


async def _owned_aquarium_ids(*, user_id: str) -> set[str]:
    return {aquarium.id for aquarium in await list_aquariums(user_id=user_id)}


# Equipment


async def create_equipment(*, data: EquipmentCreate, user_id: str) -> Equipment:
    await get_aquarium(aquarium_id=data.aquarium_id, user_id=user_id)
    record = await db_client.create_record(collection=EQUIPMENT, data=data.model_dump(exclude_none=True))
    logger.info("Created equipment '%s' in aquarium_id=%s", data.name, data.aquarium_id)
    return Equipment.model_validate(record)


async def get_equipment(*, equipment_id: str, user_id: str) -> Equipment:
    """Get equipment whose aquarium is owned by the user.

    Raises:
        RecordNotFoundError: If the equipment does not exist
        PermissionError: If the equipment's aquarium belongs to another user
    """
    record = await db_client.get_record(collection=EQUIPMENT, record_id=equipment_id)
    await get_aquarium(aquarium_id=str(record["aquarium_id"]), user_id=user_id)
    return Equipment.model_validate(record)


async def list_equipment(*, aquarium_id: str, user_id: str) -> list[Equipment]:
    await get_aquarium(aquarium_id=aquarium_id, user_id=user_id)
    records = await _list_all(
        collection=EQUIPMENT,
        filter_query=f'aquarium_id = "{sanitize_param(aquarium_id)}"',
        sort="name ASC, id ASC",
    )
    return [Equipment.model_validate(record) for record in records]


async def count_equipment(*, aquarium_id: str, user_id: str) -> int:
    await get_aquarium(aquarium_id=aquarium_id, user_id=user_id)
    return await db_client.count_records(
        collection=EQUIPMENT, filter_query=f'aquarium_id = "{sanitize_param(aquarium_id)}"'
    )


async def update_equipment(*, equipment_id: str, user_id: str, data: dict[str, Any]) -> Equipment:
    """Update equipment whose aquarium is owned by the user.

    Raises:
        RecordNotFoundError: If the equipment does not exist
        PermissionError: If the equipment's aquarium belongs to another user
    """
    await get_equipment(equipment_id=equipment_id, user_id=user_id)
    record = await db_client.update_record(collection=EQUIPMENT, record_id=equipment_id, data=data)
    return Equipment.model_validate(record)


async def delete_equipment(*, equipment_id: str, user_id: str) -> None:
    """Delete equipment whose aquarium is owned by the user.

    Tasks that reference the equipment are left in place.
    """
    await get_equipment(equipment_id=equipment_id, user_id=user_id)
    await db_client.delete_record(collection=EQUIPMENT, record_id=equipment_id)


# Tasks


async def get_task(*, task_id: str, user_id: str) -> MaintenanceTask:
    """Get a task with ownership validation.

    Raises:
        RecordNotFoundError: If the task does not exist
        PermissionError: If the task's aquarium belongs to another user
        ValidationError: If the stored record is malformed
    """
    record = await db_client.get_record(collection=TASKS, record_id=task_id)
    await get_aquarium(aquarium_id=str(record["aquarium_id"]), user_id=user_id)
    return parse_task_record(record)


async def list_tasks(
    *,
    user_id: str,
    aquarium_ids: list[str] | None = None,
    start: date | None = None,
    end: date | None = None,
    status: TaskStatus | None = None,
) -> list[MaintenanceTask]:
    """List tasks visible to the user, ordered by due date ascending.

    Args:
        user_id: Acting user
        aquarium_ids: Restrict to these aquariums (None means all owned aquariums)
        start: Inclusive lower bound on due_date
        end: Inclusive upper bound on due_date
        status: Restrict to a persisted status

    Returns:
        Validated tasks; malformed records are skipped
    """
    owned = await _owned_aquarium_ids(user_id=user_id)
    scope = sorted(owned if aquarium_ids is None else owned.intersection(aquarium_ids))
    if not scope:
        return []

    filters = [_aquarium_scope_filter(scope)]
    if start is not None:
        filters.append(f'due_date >= "{start.isoformat()}"')
    if end is not None:
        filters.append(f'due_date <= "{end.isoformat()}"')
    if status is not None:
        filters.append(f'status = "{status.value}"')

    records = await _list_all(collection=TASKS, filter_query=" && ".join(filters), sort="due_date ASC, id ASC")
    logger.debug("Retrieved %d task records for user_id=%s", len(records), user_id)
    return parse_task_records(records)


async def insert_task(*, data: TaskCreate, user_id: str, check_equipment: bool = True) -> MaintenanceTask:
    """Insert a task into an aquarium owned by the user.

    Successor tasks pass ``check_equipment=False``: they carry the equipment
    reference of the task they replace even if that equipment is gone.

    Raises:
        PermissionError: If the aquarium or equipment belongs to another user
        ValueError: If the equipment is installed in a different aquarium
    """
    await get_aquarium(aquarium_id=data.aquarium_id, user_id=user_id)
    if check_equipment and data.equipment_id is not None:
        equipment = await get_equipment(equipment_id=data.equipment_id, user_id=user_id)
        if equipment.aquarium_id != data.aquarium_id:
            msg = f"Equipment {data.equipment_id} is not installed in aquarium {data.aquarium_id}"
            raise ValueError(msg)

    record = await db_client.create_record(collection=TASKS, data=data.to_record())
    return parse_task_record(record)


async def update_task(*, task_id: str, user_id: str, data: dict[str, Any]) -> MaintenanceTask:
    """Update a task owned by the user and return the validated result."""
    await get_task(task_id=task_id, user_id=user_id)
    record = await db_client.update_record(collection=TASKS, record_id=task_id, data=data)
    return parse_task_record(record)


async def delete_task(*, task_id: str, user_id: str) -> None:
    """Delete a task owned by the user."""
    record = await db_client.get_record(collection=TASKS, record_id=task_id)
    await get_aquarium(aquarium_id=str(record["aquarium_id"]), user_id=user_id)
    await db_client.delete_record(collection=TASKS, record_id=task_id)

