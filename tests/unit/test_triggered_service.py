"""Tests for the maintenance-triggered scan."""

from datetime import date

import pytest

from src.core import db_client
from src.services import template_service, triggered_service
from tests.conftest import list_instances


@pytest.mark.unit
def test_maintenance_threshold_is_six_calendar_months() -> None:
    """Test month arithmetic clamps to the end of shorter months."""
    assert triggered_service.maintenance_threshold(date(2024, 3, 15)) == date(2023, 9, 15)
    assert triggered_service.maintenance_threshold(date(2024, 8, 31)) == date(2024, 2, 29)


@pytest.mark.unit
class TestScanTriggered:
    """Tests for scan_triggered."""

    async def test_overdue_asset_gets_one_task(self, make_site, make_template, make_asset, today, now) -> None:
        site = await make_site()
        await make_template(frequency="triggered", asset_type="refrigeration")
        asset = await make_asset(site_id=site["id"], last_maintenance_date="2023-09-14")

        result = await triggered_service.scan_triggered(today=today, now=now)

        assert result.created == 1
        assert result.errors == []
        rows = await list_instances(asset_id=asset["id"])
        assert len(rows) == 1
        assert rows[0]["priority"] == "high"
        assert rows[0]["expires_at"] is None

    async def test_two_runs_same_day_create_one_task(self, make_site, make_template, make_asset, today, now) -> None:
        site = await make_site()
        await make_template(frequency="triggered", asset_type="refrigeration")
        await make_asset(site_id=site["id"])

        first = await triggered_service.scan_triggered(today=today, now=now)
        second = await triggered_service.scan_triggered(today=today, now=now)

        assert (first.created, second.created, second.skipped) == (1, 0, 1)
        assert len(await list_instances()) == 1

    async def test_assets_not_due_are_ignored(self, make_site, make_template, make_asset, today, now) -> None:
        site = await make_site()
        await make_template(frequency="triggered", asset_type="refrigeration")
        await make_asset(site_id=site["id"], last_maintenance_date="2023-09-15")
        await make_asset(site_id=site["id"], maintenance_required=False)
        await make_asset(site_id=site["id"], last_maintenance_date=None)

        result = await triggered_service.scan_triggered(today=today, now=now)

        assert result.created == 0
        assert await list_instances() == []

    async def test_asset_without_template_skipped_silently(
        self, make_site, make_template, make_asset, today, now
    ) -> None:
        site = await make_site()
        await make_template(frequency="triggered", asset_type="refrigeration")
        await make_asset(site_id=site["id"], type="espresso_machine")

        result = await triggered_service.scan_triggered(today=today, now=now)

        assert (result.created, result.skipped, result.errors) == (0, 0, [])

    async def test_inactive_template_not_used(self, make_site, make_template, make_asset, today, now) -> None:
        site = await make_site()
        await make_template(frequency="triggered", asset_type="refrigeration", is_active=False)
        await make_asset(site_id=site["id"])

        result = await triggered_service.scan_triggered(today=today, now=now)

        assert result.created == 0

    async def test_asset_on_inactive_site_skipped(self, make_site, make_template, make_asset, today, now) -> None:
        site = await make_site(status="inactive")
        await make_template(frequency="triggered", asset_type="refrigeration")
        await make_asset(site_id=site["id"])

        result = await triggered_service.scan_triggered(today=today, now=now)

        assert result.created == 0
        assert result.errors == []

    async def test_one_asset_failure_does_not_stop_scan(
        self, make_site, make_template, make_asset, today, now, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        site = await make_site()
        await make_template(frequency="triggered", asset_type="refrigeration")
        await make_template(frequency="triggered", asset_type="oven", name="Oven service")
        await make_asset(site_id=site["id"], type="oven")
        await make_asset(site_id=site["id"], type="refrigeration")

        real_find = template_service.find_triggered_template

        async def flaky_find(asset_type: str):
            if asset_type == "oven":
                raise db_client.DatabaseTimeoutError("get_first_record on task_templates timed out after 10.0s")
            return await real_find(asset_type)

        monkeypatch.setattr(template_service, "find_triggered_template", flaky_find)

        result = await triggered_service.scan_triggered(today=today, now=now)

        assert result.created == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("triggered_asset [asset=")
        assert "(timeout)" in result.errors[0]

    async def test_scan_query_failure_recorded(self, sqlite_db, today, now, monkeypatch: pytest.MonkeyPatch) -> None:
        async def failing_list(_today: date) -> list:
            raise db_client.DatabaseError("Table 'assets' does not exist. Call init_db() first.")

        monkeypatch.setattr(triggered_service, "list_overdue_assets", failing_list)

        result = await triggered_service.scan_triggered(today=today, now=now)

        assert result.created == 0
        assert result.errors == [
            "triggered_scan (schema): Table 'assets' does not exist. Call init_db() first."
        ]
