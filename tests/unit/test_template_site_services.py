"""Tests for template loading and site resolution."""

import pytest

from src.domain.template import FrequencyClass, TaskTemplate
from src.services import site_service, template_service


@pytest.mark.unit
class TestLoadActiveTemplates:
    """Tests for load_active_templates."""

    async def test_filters_by_class_and_active_flag(self, make_template) -> None:
        daily = await make_template(name="Daily")
        await make_template(name="Off", is_active=False)
        await make_template(name="Weekly", frequency="weekly")

        templates, invalid = await template_service.load_active_templates(FrequencyClass.DAILY)

        assert [t.id for t in templates] == [daily["id"]]
        assert invalid == []

    async def test_columns_normalised(self, make_template) -> None:
        await make_template(dayparts="before_open, during_service", daypart_times={"during_service": "12:00,15:00"})

        templates, _ = await template_service.load_active_templates(FrequencyClass.DAILY)

        assert templates[0].dayparts == ["before_open", "during_service"]
        assert templates[0].daypart_times == {"during_service": ["12:00", "15:00"]}

    async def test_find_triggered_template(self, make_template) -> None:
        await make_template(frequency="triggered", asset_type="oven", name="Oven service")
        fridge = await make_template(frequency="triggered", asset_type="refrigeration", name="Fridge service")

        template = await template_service.find_triggered_template("refrigeration")

        assert template is not None
        assert template.id == fridge["id"]
        assert await template_service.find_triggered_template("dishwasher") is None


@pytest.mark.unit
class TestResolveSites:
    """Tests for site resolution."""

    async def test_unpinned_template_gets_every_active_company_site(self, make_site) -> None:
        north = await make_site(name="North")
        south = await make_site(name="South", status="paused")
        await make_site(name="Closed", status="inactive")
        await make_site(name="Other company", company_id=2)
        template = TaskTemplate(id="1", company_id="1", frequency="daily")

        sites = await site_service.resolve_sites(template)

        assert [s.id for s in sites] == [north["id"], south["id"]]

    async def test_pinned_template_gets_its_site(self, make_site) -> None:
        await make_site(name="North")
        south = await make_site(name="South")
        template = TaskTemplate(id="1", company_id="1", site_id=south["id"], frequency="daily")

        assert [s.id for s in await site_service.resolve_sites(template)] == [south["id"]]

    async def test_pinned_inactive_site_yields_nothing(self, make_site) -> None:
        closed = await make_site(name="Closed", status="inactive")
        template = TaskTemplate(id="1", company_id="1", site_id=closed["id"], frequency="daily")

        assert await site_service.resolve_sites(template) == []

    async def test_list_active_sites_across_companies(self, make_site) -> None:
        await make_site(company_id=1)
        await make_site(company_id=2)

        assert len(await site_service.list_active_sites()) == 2

    async def test_unscoped_template_refused(self, make_site) -> None:
        await make_site(company_id=1)
        await make_site(company_id=2)
        template = TaskTemplate(id="7", frequency="daily")

        with pytest.raises(template_service.UnscopedTemplateError, match="Template 7"):
            await site_service.resolve_sites(template)
