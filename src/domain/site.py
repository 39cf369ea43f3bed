"""Site and asset domain models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class SiteStatus(StrEnum):
    """Operational status of a site."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Site(BaseModel):
    """A physical location owned by a company."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Unique site ID from database")
    company_id: str = Field(..., description="Owning company")
    name: str = Field(default="")
    status: str = Field(default=SiteStatus.ACTIVE, description="Active unless explicitly inactive")

    @property
    def is_active(self) -> bool:
        return self.status != SiteStatus.INACTIVE


class Asset(BaseModel):
    """A piece of equipment whose maintenance condition can trigger tasks."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Unique asset ID from database")
    site_id: str
    company_id: str
    name: str = Field(default="")
    type: str = Field(..., description="Asset category, matched against triggered templates")
    last_maintenance_date: str | None = Field(default=None, description="ISO date of last service")
    maintenance_required: bool = Field(default=False)
