"""Task template domain models and recurrence rules."""

from datetime import date, timedelta
from enum import StrEnum
from typing import Annotated, Any, ClassVar, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.core.config import Constants
from src.core.recurrence_parser import (
    load_json_field,
    parse_checklist_items,
    parse_daypart_times,
    parse_list_field,
    parse_weekdays,
)


class FrequencyClass(StrEnum):
    """Recurrence class of a template."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    TRIGGERED = "triggered"


class DailyRule(BaseModel):
    """Fires every day; each daypart may fan out to several clock times."""

    kind: Literal[FrequencyClass.DAILY] = FrequencyClass.DAILY

    default_daypart: ClassVar[str] = Constants.DEFAULT_DAILY_DAYPART
    fans_out_times: ClassVar[bool] = True
    expiry_window: ClassVar[timedelta | None] = timedelta(hours=Constants.DAILY_EXPIRY_HOURS)

    def is_due(self, today: date) -> bool:  # noqa: ARG002
        return True


class WeeklyRule(BaseModel):
    """Fires on the listed weekdays (Sunday=0)."""

    kind: Literal[FrequencyClass.WEEKLY] = FrequencyClass.WEEKLY
    weeks: list[int] = Field(
        default_factory=lambda: list(Constants.DEFAULT_WEEKLY_DAYS),
        validation_alias=AliasChoices("weeks", "days_of_week", "daysOfWeek"),
    )

    default_daypart: ClassVar[str] = Constants.DEFAULT_CYCLE_DAYPART
    fans_out_times: ClassVar[bool] = False
    expiry_window: ClassVar[timedelta | None] = timedelta(hours=Constants.WEEKLY_EXPIRY_HOURS)

    @field_validator("weeks", mode="before")
    @classmethod
    def _normalise_weeks(cls, value: Any) -> list[int]:
        if value is None:
            return list(Constants.DEFAULT_WEEKLY_DAYS)
        return parse_weekdays(value)

    def is_due(self, today: date) -> bool:
        # date.weekday() is Monday=0; the stored numbering is Sunday=0
        return (today.weekday() + 1) % 7 in self.weeks


class MonthlyRule(BaseModel):
    """Fires on one day of the month."""

    kind: Literal[FrequencyClass.MONTHLY] = FrequencyClass.MONTHLY
    date_of_month: int = Field(
        default=Constants.DEFAULT_DATE_OF_MONTH,
        validation_alias=AliasChoices("date_of_month", "dateOfMonth"),
    )

    default_daypart: ClassVar[str] = Constants.DEFAULT_CYCLE_DAYPART
    fans_out_times: ClassVar[bool] = False
    expiry_window: ClassVar[timedelta | None] = timedelta(hours=Constants.MONTHLY_EXPIRY_HOURS)

    @field_validator("date_of_month", mode="before")
    @classmethod
    def _default_date(cls, value: Any) -> Any:
        return Constants.DEFAULT_DATE_OF_MONTH if value in (None, "") else value

    def is_due(self, today: date) -> bool:
        return today.day == self.date_of_month


class TriggeredRule(BaseModel):
    """Driven by asset maintenance condition rather than the calendar."""

    kind: Literal[FrequencyClass.TRIGGERED] = FrequencyClass.TRIGGERED
    asset_type: str | None = None

    default_daypart: ClassVar[str] = Constants.DEFAULT_CYCLE_DAYPART
    fans_out_times: ClassVar[bool] = False
    # Triggered tasks persist until resolved
    expiry_window: ClassVar[timedelta | None] = None

    def is_due(self, today: date) -> bool:  # noqa: ARG002
        return False


RecurrenceRule = Annotated[DailyRule | WeeklyRule | MonthlyRule | TriggeredRule, Field(discriminator="kind")]


class _RuleEnvelope(BaseModel):
    rule: RecurrenceRule


class TaskTemplate(BaseModel):
    """Task template as read from the store.

    Column encodings are normalised on the way in: ``dayparts`` and every value of
    ``daypart_times`` become lists of trimmed strings, JSON columns are decoded.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Unique template ID from database")
    company_id: str | None = Field(default=None, description="Owning company")
    site_id: str | None = Field(default=None, description="Pinned site; None applies to every active site")
    name: str = Field(default="", description="Template name")
    frequency: FrequencyClass = Field(..., description="Recurrence class")
    is_active: bool = Field(default=True)
    dayparts: list[str] = Field(default_factory=list, description="Dayparts this template covers")
    daypart: str | None = Field(default=None, description="Legacy singular daypart (may be comma-joined)")
    daypart_times: dict[str, list[str]] = Field(default_factory=dict, description="Clock times per daypart")
    time_of_day: str | None = Field(default=None, description="Fallback clock time")
    recurrence_pattern: dict[str, Any] = Field(default_factory=dict)
    asset_type: str | None = Field(default=None, description="Asset category serviced by triggered templates")
    evidence_types: list[str] = Field(default_factory=list)
    is_critical: bool = Field(default=False)
    assigned_to_role: str | None = None
    assigned_to_user_id: str | None = None

    @field_validator("dayparts", "evidence_types", mode="before")
    @classmethod
    def _normalise_list(cls, value: Any) -> list[str]:
        return parse_list_field(value)

    @field_validator("daypart_times", mode="before")
    @classmethod
    def _normalise_daypart_times(cls, value: Any) -> dict[str, list[str]]:
        return parse_daypart_times(value)

    @field_validator("recurrence_pattern", mode="before")
    @classmethod
    def _decode_pattern(cls, value: Any) -> dict[str, Any]:
        decoded = load_json_field(value)
        return decoded if isinstance(decoded, dict) else {}

    @field_validator("time_of_day", mode="before")
    @classmethod
    def _blank_time_is_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @property
    def rule(self) -> DailyRule | WeeklyRule | MonthlyRule | TriggeredRule:
        """The recurrence rule variant for this template's frequency class."""
        payload: dict[str, Any] = {**self.recurrence_pattern, "kind": self.frequency}
        if self.frequency == FrequencyClass.TRIGGERED:
            payload["asset_type"] = self.asset_type
        return _RuleEnvelope.model_validate({"rule": payload}).rule

    @property
    def checklist_items(self) -> list[str]:
        return parse_checklist_items(self.recurrence_pattern.get("default_checklist_items"))
