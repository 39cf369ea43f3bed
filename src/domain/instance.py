"""Task instance domain models and enums."""

from datetime import datetime
from enum import StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(StrEnum):
    """Task instance lifecycle state."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskPriority(StrEnum):
    """Priority assigned at generation time."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


class Candidate(NamedTuple):
    """One (daypart, time) pair a template wants instantiated today."""

    daypart: str
    due_time: str | None


def dedup_key(daypart: str, due_time: str | None, *, include_time: bool) -> str:
    """Serialise a dedup key; daily keys include the time, cycle keys do not."""
    if include_time:
        return f"{daypart}@{due_time or ''}"
    return daypart


def asset_dedup_key(asset_id: str) -> str:
    return f"asset:{asset_id}"


class TaskInstance(BaseModel):
    """A concrete, dated, site-scoped task produced from a template."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(default=None, description="Assigned by the store on insert")
    template_id: str
    company_id: str | None = None
    site_id: str
    asset_id: str | None = None
    due_date: str = Field(..., description="ISO date")
    due_time: str | None = None
    daypart: str
    dedup_key: str
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to_role: str | None = None
    assigned_to_user_id: str | None = None
    generated_at: datetime
    expires_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    task_data: dict[str, Any] | None = None

    def to_record(self) -> dict[str, Any]:
        """Row payload for the store (without the id)."""
        return self.model_dump(exclude={"id"}, mode="python")
