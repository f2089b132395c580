# This project was developed with assistance from AI tools.
"""Administrative activity (access request) schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sims_db.enums import AdministrativeActivityStatus, AdministrativeActivityType


class AccessRequestCreate(BaseModel):
    """Self-service access request. Extra fields are kept in the stored data."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=255)
    reason: str = Field(default="", max_length=2000)
    role: int | None = Field(default=None, description="Requested system role id.")


class AccessRequestCreated(BaseModel):
    id: int
    date: datetime | None = None


class AccessRequestStanding(BaseModel):
    has_pending_access_request: bool
    belongs_to_one_or_more_projects: bool


class AdministrativeActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: AdministrativeActivityType
    status: AdministrativeActivityStatus
    reported_system_user_id: int | None = None
    assigned_system_user_id: int | None = None
    data: dict[str, Any]
    notes: str | None = None
    create_date: datetime | None = None
    update_date: datetime | None = None


class AccessRequestApproval(BaseModel):
    role_ids: list[int] = Field(default_factory=list)
