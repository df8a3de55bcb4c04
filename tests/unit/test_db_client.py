"""Unit tests for the SQLite client."""

import pytest

from src.core import db_client
from src.core.db_client import RecordNotFoundError, parse_filter, sanitize_param


@pytest.mark.unit
class TestParseFilter:
    def test_empty_filter(self):
        assert parse_filter("") == ("", [])

    def test_and_with_or_group(self):
        where, params = parse_filter(
            '(aquarium_id = "1" || aquarium_id = "2") && due_date >= "2025-03-01" && status = "pending"'
        )

        assert where == "(aquarium_id = ? OR aquarium_id = ?) AND due_date >= ? AND status = ?"
        assert params == [1, 2, "2025-03-01", "pending"]

    def test_like_escapes_wildcards(self):
        where, params = parse_filter('task_name ~ "50%_off"')

        assert where == "task_name LIKE ? ESCAPE '\\'"
        assert params == ["%50\\%\\_off%"]

    def test_invalid_syntax(self):
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            parse_filter("due_date >= 2025-03-01")

    def test_escaped_literal_is_unescaped(self):
        user_id = sanitize_param("josé")
        notes = sanitize_param("a\\b")
        where, params = parse_filter(f'user_id = "{user_id}" && notes = "{notes}"')

        assert where == "user_id = ? AND notes = ?"
        assert params == ["josé", "a\\b"]

    def test_separators_inside_literals_are_not_split(self):
        value = sanitize_param('fish (tetra) && "guppy" || snail')
        where, params = parse_filter(f'(name = "{value}" || name = \'x\') && type = "reef"')

        assert where == "(name = ? OR name = ?) AND type = ?"
        assert params == ['fish (tetra) && "guppy" || snail', "x", "reef"]

    def test_invalid_escape_rejected(self):
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            parse_filter('user_id = "bad\\q"')

    def test_sanitize_param_escapes_quotes(self):
        assert sanitize_param('say "hi"') == 'say \\"hi\\"'


@pytest.mark.unit
class TestCrud:
    async def test_create_and_get(self, sqlite_db):
        created = await db_client.create_record(
            collection="aquariums", data={"user_id": "user-1", "name": "Nano", "type": "reef"}
        )
        fetched = await db_client.get_record(collection="aquariums", record_id=created["id"])

        assert isinstance(created["id"], str)
        assert fetched["name"] == "Nano"
        assert fetched["created"]

    async def test_get_missing_raises_not_found(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id="999")

    async def test_non_numeric_id_is_not_found(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id="abc")

    async def test_update_and_delete(self, sqlite_db):
        created = await db_client.create_record(
            collection="aquariums", data={"user_id": "user-1", "name": "Nano", "type": "reef"}
        )

        updated = await db_client.update_record(
            collection="aquariums", record_id=created["id"], data={"name": "Nano Cube"}
        )
        assert updated["name"] == "Nano Cube"

        await db_client.delete_record(collection="aquariums", record_id=created["id"])
        with pytest.raises(RecordNotFoundError):
            await db_client.delete_record(collection="aquariums", record_id=created["id"])

    async def test_update_stamps_updated_column(self, sqlite_db):
        created = await db_client.create_record(
            collection="aquariums", data={"user_id": "user-1", "name": "Nano", "type": "reef"}
        )
        conn = await db_client.get_connection()
        await conn.execute("UPDATE aquariums SET updated = '2000-01-01T00:00:00.000Z'")
        await conn.commit()

        updated = await db_client.update_record(collection="aquariums", record_id=created["id"], data={"type": "f"})

        assert updated["updated"] >= created["created"]
        assert updated["created"] == created["created"]

    async def test_non_ascii_filter_value_matches(self, sqlite_db):
        await db_client.create_record(collection="aquariums", data={"user_id": "josé", "name": "Nano", "type": "f"})

        records = await db_client.list_records(
            collection="aquariums", filter_query=f'user_id = "{sanitize_param("josé")}"'
        )

        assert [record["user_id"] for record in records] == ["josé"]

    async def test_list_with_filter_sort_and_pages(self, sqlite_db):
        for name in ["Cichlids", "Betta", "Axolotl"]:
            await db_client.create_record(collection="aquariums", data={"user_id": "user-1", "name": name, "type": "f"})
        await db_client.create_record(collection="aquariums", data={"user_id": "user-2", "name": "Other", "type": "f"})

        first_page = await db_client.list_records(
            collection="aquariums", filter_query='user_id = "user-1"', sort="name ASC", per_page=2
        )
        second_page = await db_client.list_records(
            collection="aquariums", filter_query='user_id = "user-1"', sort="name ASC", per_page=2, page=2
        )

        assert [record["name"] for record in first_page] == ["Axolotl", "Betta"]
        assert [record["name"] for record in second_page] == ["Cichlids"]

    async def test_invalid_collection_name(self, sqlite_db):
        with pytest.raises(ValueError, match="Invalid collection name"):
            await db_client.list_records(collection="tasks; DROP TABLE tasks")
