"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import pytest

from src.core import db_client
from src.core.config import settings


# 2024-03-15 is a Friday (weekday 5 with Sunday=0)
RUN_DATE = date(2024, 3, 15)
RUN_AT = datetime(2024, 3, 15, 2, 0, tzinfo=UTC)

RecordFactory = Callable[..., Awaitable[dict[str, Any]]]


@pytest.fixture
def today() -> date:
    return RUN_DATE


@pytest.fixture
def now() -> datetime:
    return RUN_AT


@pytest.fixture
async def sqlite_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[str]:
    """Point the store at a fresh SQLite file with the schema applied."""
    db_path = str(tmp_path / "taskgen.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
def make_site(sqlite_db: str) -> RecordFactory:  # noqa: ARG001
    """Factory inserting a site row."""

    async def _make(*, company_id: int | str = 1, name: str = "Central Kitchen", **fields: Any) -> dict[str, Any]:
        return await db_client.create_record(
            collection="sites", data={"company_id": company_id, "name": name, **fields}
        )

    return _make


@pytest.fixture
def make_template(sqlite_db: str) -> RecordFactory:  # noqa: ARG001
    """Factory inserting a task template row (active, daily, company 1 by default)."""

    async def _make(
        *, frequency: str = "daily", company_id: int | str | None = 1, name: str = "Fridge check", **fields: Any
    ) -> dict[str, Any]:
        data = {"company_id": company_id, "name": name, "frequency": frequency, "is_active": True, **fields}
        return await db_client.create_record(collection="task_templates", data=data)

    return _make


@pytest.fixture
def make_asset(sqlite_db: str) -> RecordFactory:  # noqa: ARG001
    """Factory inserting an asset row flagged for maintenance."""

    async def _make(
        *,
        site_id: str,
        company_id: int | str = 1,
        type: str = "refrigeration",  # noqa: A002
        last_maintenance_date: str | None = "2023-01-10",
        maintenance_required: bool = True,
        **fields: Any,
    ) -> dict[str, Any]:
        data = {
            "company_id": company_id,
            "site_id": site_id,
            "name": "Walk-in Fridge",
            "type": type,
            "last_maintenance_date": last_maintenance_date,
            "maintenance_required": maintenance_required,
            **fields,
        }
        return await db_client.create_record(collection="assets", data=data)

    return _make


async def list_instances(**filters: str) -> list[dict[str, Any]]:
    """Read back task instances, optionally filtered by equality on each keyword."""
    filter_query = " && ".join(f'{field} = "{value}"' for field, value in filters.items())
    return await db_client.get_full_list(collection="task_instances", filter_query=filter_query)
