"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Raised when a store operation fails."""


class DatabaseTimeoutError(DatabaseError):
    """Raised when a store operation exceeds its time budget."""


class RecordNotFoundError(KeyError):
    """Raised when a record lookup by ID finds nothing."""


_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not _IDENTIFIER.match(collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _validate_fields(fields: list[str]) -> None:
    for field in fields:
        if not _IDENTIFIER.match(field):
            msg = f"Invalid field name: {field}"
            raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def to_iso(value: datetime) -> str:
    """Serialize a timestamp in the single UTC format stored in every timestamp column."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _serialize_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str) -> str | int | float | bool:
    """Parse a string value to the appropriate Python type for SQLite."""
    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


_COMPARISON = re.compile(r"""(\w+)\s*(!=|>=|<=|=|>|<)\s*(['"])([^'"]*)\3$""")


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | bool]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = _COMPARISON.match(comparison)
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field, op, _, raw_value = match.groups()
    return f"{field} {op} ?", _parse_value(raw_value)


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | bool]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Supports ``field op "value"`` comparisons (``=``, ``!=``, ``<``, ``<=``, ``>``,
    ``>=``) joined with ``&&``. Values are always quoted; ``"true"``/``"false"``
    and numeric strings bind as booleans and numbers.
    """
    if not filter_query:
        return "", []

    conditions = []
    params = []
    for part in filter_query.split("&&"):
        cond, value = _parse_single_comparison(part.strip())
        conditions.append(cond)
        params.append(value)

    return " AND ".join(conditions), params


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path), timeout=constants.DB_BUSY_TIMEOUT_SECONDS)
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


@asynccontextmanager
async def _bounded(operation: str, collection: str) -> AsyncIterator[None]:
    """Bound a store operation by the configured timeout."""
    try:
        async with asyncio.timeout(constants.DB_TIMEOUT_SECONDS):
            yield
    except TimeoutError as e:
        logger.error(
            "db_operation_timeout",
            extra={"operation": operation, "collection": collection, "timeout": constants.DB_TIMEOUT_SECONDS},
        )
        msg = f"{operation} on {collection} timed out after {constants.DB_TIMEOUT_SECONDS}s"
        raise DatabaseTimeoutError(msg) from e


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    schema = __import__("src.core.schema", fromlist=["init_db"])
    await schema.init_db(db_path=db_path)


def _wrap_error(e: Exception, *, operation: str, collection: str) -> DatabaseError:
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        logger.error("Table not found", extra={"collection": collection})
        return DatabaseError(f"Table '{collection}' does not exist. Call init_db() first.")
    logger.error(f"{operation}_failed", extra={"collection": collection, "error": str(e)})
    return DatabaseError(f"Failed to {operation.replace('_', ' ')} in {collection}: {e}")


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    try:
        _validate_collection_name(collection)
        async with _bounded("create_record", collection):
            conn = await get_connection()

            columns = list(data.keys())
            _validate_fields(columns)
            columns_str = ", ".join(columns)
            placeholders_str = ", ".join("?" for _ in columns)
            values = [_serialize_value(data[key]) for key in columns]

            query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
            cursor = await conn.execute(query, values)
            await conn.commit()
            record_id = cursor.lastrowid

        result = await get_record(collection=collection, record_id=str(record_id))
        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except DatabaseError:
        raise
    except Exception as e:
        raise _wrap_error(e, operation="create_record", collection=collection) from e


async def create_records(
    *,
    collection: str,
    records: list[dict[str, Any]],
    skip_conflicts_on: list[str] | None = None,
) -> list[dict[str, Any]]:
    """Insert several records in a single transaction.

    With ``skip_conflicts_on`` rows that collide on that unique index are dropped
    instead of failing the batch; any other constraint violation still fails it.
    Returns the inserted rows (with ids), in input order.
    """
    if not records:
        return []

    try:
        _validate_collection_name(collection)
        on_conflict = ""
        if skip_conflicts_on:
            _validate_fields(skip_conflicts_on)
            on_conflict = f" ON CONFLICT({', '.join(skip_conflicts_on)}) DO NOTHING"
        inserted: list[dict[str, Any]] = []

        async with _bounded("create_records", collection):
            conn = await get_connection()
            try:
                for data in records:
                    columns = list(data.keys())
                    _validate_fields(columns)
                    columns_str = ", ".join(columns)
                    placeholders_str = ", ".join("?" for _ in columns)
                    values = [_serialize_value(data[key]) for key in columns]

                    query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str}){on_conflict}"  # noqa: S608 - collection is validated
                    cursor = await conn.execute(query, values)
                    if cursor.rowcount == 1:
                        inserted.append(_convert_record_ids({"id": cursor.lastrowid, **data}))
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

        logger.info(
            "Created records",
            extra={"collection": collection, "requested": len(records), "inserted": len(inserted)},
        )
        return inserted
    except DatabaseError:
        raise
    except Exception as e:
        raise _wrap_error(e, operation="create_records", collection=collection) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        async with _bounded("get_record", collection):
            conn = await get_connection()

            query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
            cursor = await conn.execute(query, (int(record_id),))
            row = await cursor.fetchone()

            if row is None:
                msg = f"Record not found in {collection}: {record_id}"
                raise RecordNotFoundError(msg)

            columns = [description[0] for description in cursor.description]
            record = dict(zip(columns, row, strict=True))

        return _convert_record_ids(record)
    except (RecordNotFoundError, DatabaseError):
        raise
    except Exception as e:
        raise _wrap_error(e, operation="get_record", collection=collection) from e


async def delete_records(*, collection: str, filter_query: str) -> int:
    """Delete every record matching the filter and return how many were removed."""
    try:
        _validate_collection_name(collection)
        where_clause, params = parse_filter(filter_query)
        if not where_clause:
            msg = "Refusing to delete without a filter"
            raise ValueError(msg)

        async with _bounded("delete_records", collection):
            conn = await get_connection()
            query = f"DELETE FROM {collection} WHERE {where_clause}"  # noqa: S608 - collection is validated
            cursor = await conn.execute(query, params)
            await conn.commit()
            deleted = cursor.rowcount

        logger.info("Deleted records", extra={"collection": collection, "count": deleted})
        return deleted
    except DatabaseError:
        raise
    except Exception as e:
        raise _wrap_error(e, operation="delete_records", collection=collection) from e


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
    fields: list[str] | None = None,
) -> list[dict[str, Any]]:
    """List records with optional filtering, projection, sorting, and pagination."""
    try:
        _validate_collection_name(collection)

        where_clause = ""
        params: list[Any] = []
        if filter_query:
            where_clause, params = parse_filter(filter_query)
            where_clause = f"WHERE {where_clause}"

        select_clause = "*"
        if fields:
            _validate_fields(fields)
            select_clause = ", ".join(fields)

        # Only allow: column_name [ASC|DESC]
        safe_sort = "id ASC"
        if sort:
            sort_pattern = re.match(r"^[A-Za-z_][A-Za-z0-9_]*\s*(ASC|DESC)?$", sort.strip(), re.IGNORECASE)
            if sort_pattern:
                safe_sort = sort.strip()
            else:
                logger.warning("Invalid sort parameter, using default", extra={"sort": sort})

        offset = (page - 1) * per_page

        query = f"SELECT {select_clause} FROM {collection} {where_clause} ORDER BY {safe_sort} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        async with _bounded("list_records", collection):
            conn = await get_connection()
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            columns = [description[0] for description in cursor.description]

        records = [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except DatabaseError:
        raise
    except Exception as e:
        raise _wrap_error(e, operation="list_records", collection=collection) from e


async def get_full_list(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    fields: list[str] | None = None,
    batch_size: int = constants.DEFAULT_PER_PAGE_LIMIT,
) -> list[dict[str, Any]]:
    """Read every matching record, page by page."""
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=batch_size,
            filter_query=filter_query,
            sort=sort,
            fields=fields,
        )
        records.extend(batch)
        if len(batch) < batch_size:
            return records
        page += 1


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, per_page=1, filter_query=filter_query)
    return records[0] if records else None
