"""SQLite schema management (code-first approach)."""

import logging
from typing import Any

from src.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in creation order
COLLECTIONS = [
    "aquariums",
    "equipment",
    "tasks",
]

_SQL_TYPES = {
    "text": "TEXT",
    "number": "INTEGER",
    "bool": "INTEGER",
    "date": "TEXT",
    "relation": "INTEGER",
    "select": "TEXT",
}


def _get_collection_schema(*, collection_name: str) -> dict[str, Any]:
    """Get the expected schema for a collection.

    Dates are stored as ``YYYY-MM-DD`` text. ``equipment_id`` on tasks is a plain
    column so a task can outlive the equipment it was created for.
    """
    schemas: dict[str, dict[str, Any]] = {
        "aquariums": {
            "name": "aquariums",
            "fields": [
                {"name": "user_id", "type": "text", "required": True},
                {"name": "name", "type": "text", "required": True},
                {"name": "type", "type": "text", "required": True},
            ],
            "indexes": ["CREATE INDEX IF NOT EXISTS idx_aquariums_user ON aquariums (user_id)"],
        },
        "equipment": {
            "name": "equipment",
            "fields": [
                {"name": "aquarium_id", "type": "relation", "required": True, "collection": "aquariums"},
                {"name": "name", "type": "text", "required": True},
                {"name": "equipment_type", "type": "text", "required": True},
                {"name": "maintenance_interval_days", "type": "number", "required": False},
                {"name": "notes", "type": "text", "required": False},
            ],
            "indexes": ["CREATE INDEX IF NOT EXISTS idx_equipment_aquarium ON equipment (aquarium_id)"],
        },
        "tasks": {
            "name": "tasks",
            "fields": [
                {"name": "aquarium_id", "type": "relation", "required": True, "collection": "aquariums"},
                {"name": "equipment_id", "type": "number", "required": False},
                {"name": "task_name", "type": "text", "required": True},
                {"name": "task_type", "type": "text", "required": True},
                {"name": "due_date", "type": "date", "required": True},
                {
                    "name": "status",
                    "type": "select",
                    "required": True,
                    "values": ["pending", "completed"],
                    "default": "pending",
                },
                {"name": "completed_date", "type": "date", "required": False},
                {"name": "notes", "type": "text", "required": False},
                {"name": "is_recurring", "type": "bool", "required": True, "default": 0},
                {
                    "name": "recurrence_interval",
                    "type": "select",
                    "required": False,
                    "values": ["daily", "weekly", "biweekly", "monthly", "custom"],
                },
                {"name": "recurrence_days", "type": "number", "required": False},
            ],
            "indexes": [
                "CREATE INDEX IF NOT EXISTS idx_tasks_aquarium_due ON tasks (aquarium_id, due_date)",
                "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status)",
            ],
        },
    }
    if collection_name not in schemas:
        msg = f"Unknown collection: {collection_name}"
        raise ValueError(msg)
    return schemas[collection_name]


def _column_sql(field: dict[str, Any]) -> str:
    parts = [field["name"], _SQL_TYPES[field["type"]]]
    if field.get("required"):
        parts.append("NOT NULL")
    if "default" in field:
        default = field["default"]
        parts.append(f"DEFAULT '{default}'" if isinstance(default, str) else f"DEFAULT {default}")
    if "values" in field:
        allowed = ", ".join(f"'{value}'" for value in field["values"])
        parts.append(f"CHECK ({field['name']} IN ({allowed}))")
    if field["type"] == "relation":
        parts.append(f"REFERENCES {field['collection']}(id)")
    return " ".join(parts)


def build_create_table_sql(*, collection_name: str) -> str:
    """Render the CREATE TABLE statement for a collection."""
    schema = _get_collection_schema(collection_name=collection_name)
    columns = ["id INTEGER PRIMARY KEY AUTOINCREMENT"]
    columns.extend(_column_sql(field) for field in schema["fields"])
    columns.append(f"created TEXT NOT NULL DEFAULT ({db_client.TIMESTAMP_SQL})")
    columns.append(f"updated TEXT NOT NULL DEFAULT ({db_client.TIMESTAMP_SQL})")
    body = ",\n    ".join(columns)
    return f"CREATE TABLE IF NOT EXISTS {schema['name']} (\n    {body}\n)"


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist."""
    conn = await db_client.get_connection(db_path=db_path)
    for collection_name in COLLECTIONS:
        schema = _get_collection_schema(collection_name=collection_name)
        await conn.execute(build_create_table_sql(collection_name=collection_name))
        for index_sql in schema.get("indexes", []):
            await conn.execute(index_sql)
    await conn.commit()
    logger.info("Schema initialized", extra={"collections": COLLECTIONS})
