"""Domain models and DTOs."""

from src.domain.instance import Candidate, TaskInstance, TaskPriority, TaskStatus
from src.domain.site import Asset, Site, SiteStatus
from src.domain.template import (
    DailyRule,
    FrequencyClass,
    MonthlyRule,
    RecurrenceRule,
    TaskTemplate,
    TriggeredRule,
    WeeklyRule,
)


__all__ = [
    "Asset",
    "Candidate",
    "DailyRule",
    "FrequencyClass",
    "MonthlyRule",
    "RecurrenceRule",
    "Site",
    "SiteStatus",
    "TaskInstance",
    "TaskPriority",
    "TaskStatus",
    "TaskTemplate",
    "TriggeredRule",
    "WeeklyRule",
]
