"""Pydantic models for service layer return types.

Each pass of a generation run returns its own PassResult; the orchestrator
merges them into the RunLog it returns.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.domain.template import FrequencyClass


class PassResult(BaseModel):
    """Partial result of one unit or pass of a generation run."""

    created: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)

    def merge(self, other: "PassResult") -> "PassResult":
        """Fold another partial result into this one and return self."""
        self.created += other.created
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        return self


class RunLog(BaseModel):
    """Summary of one generation run, returned as the job's result payload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    run_date: str
    timestamp: datetime
    daily_tasks_created: int = 0
    weekly_tasks_created: int = 0
    monthly_tasks_created: int = 0
    triggered_tasks_created: int = 0
    expired_tasks_deleted: int = 0
    duplicates_skipped: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def total_tasks_created(self) -> int:
        return (
            self.daily_tasks_created
            + self.weekly_tasks_created
            + self.monthly_tasks_created
            + self.triggered_tasks_created
        )

    def record_pass(self, frequency: FrequencyClass, result: PassResult) -> None:
        """Add a frequency pass's counts and errors to the log."""
        field = f"{frequency}_tasks_created"
        setattr(self, field, getattr(self, field) + result.created)
        self.duplicates_skipped += result.skipped
        self.errors.extend(result.errors)

    def to_response(self) -> dict[str, object]:
        """JSON body for the HTTP trigger (camelCase keys)."""
        body = self.model_dump(mode="json", by_alias=True)
        body["totalTasksCreated"] = self.total_tasks_created
        return body
