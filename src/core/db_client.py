"""Async SQLite client: connections, record CRUD and filter translation.

Records are plain dicts. Integer primary and foreign keys are returned as
strings so they validate straight into the domain models, and dates are
stored as ``YYYY-MM-DD`` text.

List queries take PocketBase-style filter strings::

    (aquarium_id = "1" || aquarium_id = "2") && due_date >= "2025-03-01"

which ``parse_filter`` turns into a parameterised WHERE clause.
"""

import asyncio
import json
import logging
import re
import threading
from collections.abc import Iterator, Sequence
from datetime import date
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)

FilterParam = str | int | float | bool | None

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SORT_TERM = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\s+(ASC|DESC))?$", re.IGNORECASE)
_COMPARISON = re.compile(
    r"""^(?P<field>\w+)\s*(?P<op>!=|>=|<=|=|>|<|~)\s*(?:"(?P<escaped>(?:[^"\\]|\\.)*)"|'(?P<plain>[^']*)')$"""
)
_DEFAULT_SORT = "id ASC"
TIMESTAMP_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


class DatabaseError(RuntimeError):
    """Raised when a database operation fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Record not found"


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for embedding inside a double-quoted filter literal."""
    return json.dumps(str(value))[1:-1]


# Filter translation


def _coerce(raw: str) -> FilterParam:
    if raw.isdigit():
        return int(raw)
    if raw.replace(".", "", 1).isdigit():
        return float(raw)
    if raw.lower() in {"true", "false"}:
        return raw.lower() == "true"
    return raw


def _like_pattern(raw: str) -> str:
    escaped = raw.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _unescape(raw: str, expression: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError as e:
        msg = f"Invalid filter syntax: {expression}"
        raise ValueError(msg) from e


def _compile_comparison(expression: str) -> tuple[str, FilterParam]:
    match = _COMPARISON.match(expression.strip())
    if match is None:
        msg = f"Invalid filter syntax: {expression}"
        raise ValueError(msg)

    field, op = match["field"], match["op"]
    raw = match["plain"] if match["escaped"] is None else _unescape(match["escaped"], expression)
    if op == "~":
        return f"{field} LIKE ? ESCAPE '\\'", _like_pattern(raw)
    return f"{field} {op} ?", _coerce(raw)


def _split_top_level(text: str, separator: str) -> Iterator[str]:
    """Yield the ``separator``-separated terms outside parentheses and quoted literals."""
    depth = 0
    quote = ""
    start = 0
    index = 0
    while index < len(text):
        char = text[index]
        if quote:
            if char == "\\" and quote == '"':
                index += 1
            elif char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and text.startswith(separator, index):
            yield text[start:index].strip()
            index += len(separator)
            start = index
            continue
        index += 1

    tail = text[start:].strip()
    if tail:
        yield tail


def parse_filter(filter_query: str) -> tuple[str, list[FilterParam]]:
    """Translate a filter string into a SQL WHERE clause and its parameters.

    Double-quoted values are JSON string literals (the form ``sanitize_param``
    produces); single-quoted values are taken verbatim.

    Raises:
        ValueError: If a comparison is malformed (values must be quoted)
    """
    if not filter_query.strip():
        return "", []

    clauses: list[str] = []
    params: list[FilterParam] = []
    for term in _split_top_level(filter_query, "&&"):
        if term.startswith("(") and term.endswith(")"):
            alternatives = [_compile_comparison(part) for part in _split_top_level(term[1:-1], "||")]
            clauses.append(f"({' OR '.join(clause for clause, _ in alternatives)})")
            params.extend(param for _, param in alternatives)
        else:
            clause, param = _compile_comparison(term)
            clauses.append(clause)
            params.append(param)

    return " AND ".join(clauses), params


def _safe_sort(sort: str) -> str:
    if not sort:
        return _DEFAULT_SORT
    terms = [term.strip() for term in sort.split(",")]
    if all(_SORT_TERM.match(term) for term in terms):
        return ", ".join(terms)
    logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return _DEFAULT_SORT


# Connections

_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_connections_lock = asyncio.Lock()


def get_db_path(db_path: str | None = None) -> Path:
    """Resolve the database file (settings.sqlite_db_path by default)."""
    return Path(db_path or settings.sqlite_db_path).resolve()


def _connection_key(db_path: str | None) -> tuple[int, int, str]:
    return threading.get_ident(), id(asyncio.get_running_loop()), str(get_db_path(db_path))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Return the connection cached for this thread, event loop and database file."""
    key = _connection_key(db_path)
    conn = _connections.get(key)
    if conn is not None:
        return conn

    async with _connections_lock:
        conn = _connections.get(key)
        if conn is None:
            path = Path(key[2])
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(path)
            await conn.execute("PRAGMA foreign_keys = ON")
            await conn.execute("PRAGMA journal_mode = WAL")
            _connections[key] = conn
            logger.info("Opened SQLite connection", extra={"db_path": key[2]})
    return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached connection for this thread, event loop and database file."""
    key = _connection_key(db_path)
    async with _connections_lock:
        conn = _connections.pop(key, None)
    if conn is None:
        return

    try:
        await conn.close()
    except aiosqlite.Error as e:
        logger.warning("Error closing SQLite connection", extra={"db_path": key[2], "error": str(e)})
        return
    logger.info("Closed SQLite connection", extra={"db_path": key[2]})


async def init_db(*, db_path: str | None = None) -> None:
    """Create the schema (see src.core.schema)."""
    from src.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


# Records


def _check_collection(collection: str) -> None:
    if not _IDENTIFIER.match(collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _row_id(collection: str, record_id: str) -> int:
    if not str(record_id).isdigit():
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    return int(record_id)


def _to_column(value: object) -> object:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _to_record(cursor: aiosqlite.Cursor, row: Sequence[Any]) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    record = dict(zip(columns, row, strict=True))
    for key, value in record.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            record[key] = str(value)
    return record


async def _execute(
    query: str, params: Sequence[Any], *, action: str, collection: str, commit: bool = False
) -> aiosqlite.Cursor:
    """Run one statement, wrapping driver errors in DatabaseError."""
    try:
        conn = await get_connection()
        cursor = await conn.execute(query, params)
        if commit:
            await conn.commit()
    except aiosqlite.Error as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            raise DatabaseError(msg) from e
        logger.error(f"{action}_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to {action.replace('_', ' ')} in {collection}: {e}"
        raise DatabaseError(msg) from e
    return cursor


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a record and return it as stored."""
    _check_collection(collection)
    columns = list(data)
    placeholders = ", ".join("?" for _ in columns)
    cursor = await _execute(
        f"INSERT INTO {collection} ({', '.join(columns)}) VALUES ({placeholders})",  # noqa: S608 - collection is validated
        [_to_column(data[column]) for column in columns],
        action="create_record",
        collection=collection,
        commit=True,
    )
    logger.info("Created record", extra={"collection": collection, "record_id": cursor.lastrowid})
    return await get_record(collection=collection, record_id=str(cursor.lastrowid))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch one record.

    Raises:
        RecordNotFoundError: If no record has this id
    """
    _check_collection(collection)
    row_id = _row_id(collection, record_id)
    cursor = await _execute(
        f"SELECT * FROM {collection} WHERE id = ?",  # noqa: S608 - collection is validated
        (row_id,),
        action="get_record",
        collection=collection,
    )
    row = await cursor.fetchone()
    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    return _to_record(cursor, row)


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update the given columns of a record, stamp ``updated`` and return the result.

    Raises:
        ValueError: If ``data`` is empty
        RecordNotFoundError: If no record has this id
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)
    _check_collection(collection)
    row_id = _row_id(collection, record_id)

    assignments = [f"{column} = ?" for column in data]
    if "updated" not in data:
        assignments.append(f"updated = {TIMESTAMP_SQL}")
    cursor = await _execute(
        f"UPDATE {collection} SET {', '.join(assignments)} WHERE id = ?",  # noqa: S608 - collection is validated
        [*(_to_column(value) for value in data.values()), row_id],
        action="update_record",
        collection=collection,
        commit=True,
    )
    if cursor.rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record.

    Raises:
        RecordNotFoundError: If no record has this id
    """
    _check_collection(collection)
    row_id = _row_id(collection, record_id)
    cursor = await _execute(
        f"DELETE FROM {collection} WHERE id = ?",  # noqa: S608 - collection is validated
        (row_id,),
        action="delete_record",
        collection=collection,
        commit=True,
    )
    if cursor.rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List one page of records matching ``filter_query``, ordered by ``sort``."""
    _check_collection(collection)
    where, params = parse_filter(filter_query)
    where_sql = f"WHERE {where} " if where else ""
    cursor = await _execute(
        f"SELECT * FROM {collection} {where_sql}ORDER BY {_safe_sort(sort)} LIMIT ? OFFSET ?",  # noqa: S608 - collection is validated
        [*params, per_page, (page - 1) * per_page],
        action="list_records",
        collection=collection,
    )
    records = [_to_record(cursor, row) for row in await cursor.fetchall()]
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def count_records(*, collection: str, filter_query: str = "") -> int:
    """Count the records matching ``filter_query``."""
    _check_collection(collection)
    where, params = parse_filter(filter_query)
    where_sql = f" WHERE {where}" if where else ""
    cursor = await _execute(
        f"SELECT COUNT(*) FROM {collection}{where_sql}",  # noqa: S608 - collection is validated
        params,
        action="count_records",
        collection=collection,
    )
    row = await cursor.fetchone()
    return int(row[0]) if row else 0
