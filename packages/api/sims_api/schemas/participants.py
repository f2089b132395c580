# This project was developed with assistance from AI tools.
"""Project participant request/response schemas."""

from pydantic import BaseModel, Field


class ParticipantResponse(BaseModel):
    project_participation_id: int
    project_id: int
    system_user_id: int
    project_role_ids: list[int] = Field(default_factory=list)
    project_role_names: list[str] = Field(default_factory=list)
    project_role_permissions: list[str] = Field(default_factory=list)


class ParticipantListResponse(BaseModel):
    participants: list[ParticipantResponse]


class ParticipantCreate(BaseModel):
    system_user_id: int
    project_role_id: int


class ParticipantsAdd(BaseModel):
    participants: list[ParticipantCreate] = Field(min_length=1)


class ParticipantRoleUpdate(BaseModel):
    project_role_id: int
