"""Tests for TaskTemplate normalisation and recurrence rule gating."""

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from src.domain.template import DailyRule, FrequencyClass, MonthlyRule, TaskTemplate, TriggeredRule, WeeklyRule


FRIDAY = date(2024, 3, 15)
SUNDAY = date(2024, 3, 17)
MONDAY = date(2024, 3, 18)


def _template(**fields: object) -> TaskTemplate:
    return TaskTemplate.model_validate({"id": "1", "company_id": "1", "frequency": "daily", **fields})


@pytest.mark.unit
class TestTaskTemplateNormalisation:
    """Tests for column normalisation at the model boundary."""

    def test_dayparts_json_array(self) -> None:
        template = _template(dayparts='["before_open", "during_service"]')
        assert template.dayparts == ["before_open", "during_service"]

    def test_dayparts_comma_string(self) -> None:
        template = _template(dayparts="before_open, after_close")
        assert template.dayparts == ["before_open", "after_close"]

    def test_daypart_times_from_json(self) -> None:
        template = _template(daypart_times='{"during_service": "12:00,15:00"}')
        assert template.daypart_times == {"during_service": ["12:00", "15:00"]}

    def test_blank_time_of_day_is_none(self) -> None:
        assert _template(time_of_day="  ").time_of_day is None

    def test_recurrence_pattern_decoded(self) -> None:
        template = _template(frequency="weekly", recurrence_pattern='{"weeks": [1, 3]}')
        assert template.recurrence_pattern == {"weeks": [1, 3]}

    def test_bad_recurrence_pattern_becomes_empty(self) -> None:
        assert _template(recurrence_pattern="not json").recurrence_pattern == {}

    def test_store_integers_coerced(self) -> None:
        template = _template(is_active=1, is_critical=0)
        assert template.is_active is True
        assert template.is_critical is False

    def test_unknown_frequency_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _template(frequency="hourly")

    def test_checklist_items_from_pattern(self) -> None:
        template = _template(recurrence_pattern={"default_checklist_items": ["Lights on", {"text": "Tills"}]})
        assert template.checklist_items == ["Lights on", "Tills"]


@pytest.mark.unit
class TestRuleDispatch:
    """Tests that each frequency class yields its rule variant."""

    def test_daily(self) -> None:
        assert isinstance(_template().rule, DailyRule)

    def test_weekly_with_alias(self) -> None:
        rule = _template(frequency="weekly", recurrence_pattern={"daysOfWeek": [2]}).rule
        assert isinstance(rule, WeeklyRule)
        assert rule.weeks == [2]

    def test_monthly_with_alias(self) -> None:
        rule = _template(frequency="monthly", recurrence_pattern={"dateOfMonth": 20}).rule
        assert isinstance(rule, MonthlyRule)
        assert rule.date_of_month == 20

    def test_triggered_carries_asset_type(self) -> None:
        rule = _template(frequency="triggered", asset_type="refrigeration").rule
        assert isinstance(rule, TriggeredRule)
        assert rule.asset_type == "refrigeration"

    def test_invalid_weekday_raises_on_rule_access(self) -> None:
        template = _template(frequency="weekly", recurrence_pattern={"weeks": [9]})
        with pytest.raises(ValidationError):
            _ = template.rule


@pytest.mark.unit
class TestRecurrenceGate:
    """Tests for is_due across frequency classes."""

    def test_daily_always_due(self) -> None:
        assert DailyRule().is_due(FRIDAY)
        assert DailyRule().is_due(SUNDAY)

    def test_weekly_uses_sunday_zero_numbering(self) -> None:
        rule = WeeklyRule(weeks=[5])
        assert rule.is_due(FRIDAY)
        assert not rule.is_due(MONDAY)

    def test_weekly_sunday_as_zero_or_seven(self) -> None:
        assert WeeklyRule(weeks=[0]).is_due(SUNDAY)
        assert WeeklyRule(weeks=[7]).is_due(SUNDAY)

    def test_weekly_defaults_to_monday(self) -> None:
        rule = _template(frequency="weekly").rule
        assert rule.weeks == [1]
        assert rule.is_due(MONDAY)
        assert not rule.is_due(FRIDAY)

    def test_weekly_explicit_empty_list_never_due(self) -> None:
        rule = _template(frequency="weekly", recurrence_pattern={"weeks": []}).rule
        assert rule.weeks == []
        assert not any(rule.is_due(FRIDAY + timedelta(days=offset)) for offset in range(7))

    def test_monthly_gates_on_day_of_month(self) -> None:
        rule = MonthlyRule(date_of_month=15)
        assert rule.is_due(FRIDAY)
        assert not rule.is_due(MONDAY)

    def test_monthly_defaults_to_first(self) -> None:
        rule = _template(frequency="monthly", recurrence_pattern={"date_of_month": None}).rule
        assert rule.date_of_month == 1
        assert rule.is_due(date(2024, 4, 1))

    def test_triggered_never_calendar_due(self) -> None:
        assert not TriggeredRule(asset_type="refrigeration").is_due(FRIDAY)


@pytest.mark.unit
def test_rule_class_properties() -> None:
    """Test default dayparts, fan-out and expiry per class."""
    assert DailyRule.default_daypart == "before_open"
    assert WeeklyRule.default_daypart == "anytime"
    assert DailyRule.fans_out_times is True
    assert MonthlyRule.fans_out_times is False
    assert DailyRule.expiry_window == timedelta(hours=24)
    assert WeeklyRule.expiry_window == timedelta(days=7)
    assert MonthlyRule.expiry_window == timedelta(days=30)
    assert TriggeredRule.expiry_window is None
    assert FrequencyClass("weekly") is FrequencyClass.WEEKLY
