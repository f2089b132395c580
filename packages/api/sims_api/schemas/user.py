# This project was developed with assistance from AI tools.
"""System user request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field
from sims_db.enums import IdentitySource


class SystemUserResponse(BaseModel):
    id: int
    user_guid: str | None = None
    user_identifier: str
    identity_source: IdentitySource
    record_end_date: datetime | None = None
    display_name: str | None = None
    email: str | None = None
    agency: str | None = None
    role_ids: list[int] = Field(default_factory=list)
    role_names: list[str] = Field(default_factory=list)


class SystemUserCreate(BaseModel):
    """Pre-register a user ahead of their first login."""

    user_identifier: str = Field(min_length=1, max_length=200)
    identity_source: IdentitySource
    user_guid: str | None = None
    display_name: str | None = None
    email: str | None = None
    role_ids: list[int] = Field(default_factory=list)


class SystemRolesUpdate(BaseModel):
    role_ids: list[int]
