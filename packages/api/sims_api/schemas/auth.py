# This project was developed with assistance from AI tools.
"""Authentication and authorization schemas.

An authorization scheme is a small boolean tree: an ``and``/``or`` group of
requirements, where each requirement is either a leaf rule or another group.
The tree is a closed discriminated union keyed on ``discriminator`` so an
unknown rule kind is rejected at construction time rather than during
evaluation.
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sims_db.enums import IdentitySource

_RULE_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


class KeycloakToken(BaseModel):
    """Decoded JWT token claims from Keycloak.

    Claims differ per identity provider; only the ones the service reads are
    declared. Anything else is kept as an extra attribute.
    """

    model_config = ConfigDict(extra="allow")

    sub: str = ""
    email: str = ""
    preferred_username: str = ""
    name: str = ""
    given_name: str = ""
    family_name: str = ""
    display_name: str = ""
    identity_provider: str = ""
    idir_user_guid: str | None = None
    idir_username: str | None = None
    bceid_user_guid: str | None = None
    bceid_username: str | None = None
    bceid_business_guid: str | None = None
    bceid_business_name: str | None = None
    database_user_guid: str | None = None
    username: str | None = None
    clientId: str | None = None
    azp: str | None = None


class SystemUserContext(BaseModel):
    """The caller's resolved internal user and global roles."""

    model_config = ConfigDict(frozen=True)

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


class ProjectUser(BaseModel):
    """A system user's participation in one project."""

    model_config = ConfigDict(frozen=True)

    project_participation_id: int
    project_id: int
    system_user_id: int
    project_role_ids: list[int] = Field(default_factory=list)
    project_role_names: list[str] = Field(default_factory=list)
    project_role_permissions: list[str] = Field(default_factory=list)
    record_end_date: datetime | None = None


# ---------------------------------------------------------------------------
# Authorization scheme
# ---------------------------------------------------------------------------


class SystemRoleRule(BaseModel):
    """Caller holds any of the listed system roles."""

    model_config = _RULE_CONFIG

    discriminator: Literal["SystemRole"] = "SystemRole"
    valid_system_roles: list[str] = Field(default_factory=list, alias="validSystemRoles")


class SystemUserRule(BaseModel):
    """Caller is a known, active system user."""

    model_config = _RULE_CONFIG

    discriminator: Literal["SystemUser"] = "SystemUser"


class ServiceClientRule(BaseModel):
    """Caller is a service account with one of the listed client ids."""

    model_config = _RULE_CONFIG

    discriminator: Literal["ServiceClient"] = "ServiceClient"
    valid_service_client_ids: list[str] = Field(
        default_factory=list, alias="validServiceClientIDs"
    )


class ProjectRoleRule(BaseModel):
    """Caller holds any of the listed roles on the project."""

    model_config = _RULE_CONFIG

    discriminator: Literal["ProjectRole"] = "ProjectRole"
    project_id: int = Field(alias="projectId")
    valid_project_roles: list[str] = Field(default_factory=list, alias="validProjectRoles")


class ProjectPermissionRule(BaseModel):
    """Caller holds any of the listed permissions on a project or survey.

    Exactly one of ``project_id`` / ``survey_id`` is set. A survey is checked
    through the participation on its parent project.
    """

    model_config = _RULE_CONFIG

    discriminator: Literal["ProjectPermission"] = "ProjectPermission"
    project_id: int | None = Field(default=None, alias="projectId")
    survey_id: int | None = Field(default=None, alias="surveyId")
    valid_project_permissions: list[str] = Field(
        default_factory=list, alias="validProjectPermissions"
    )

    @model_validator(mode="after")
    def _one_scope(self) -> "ProjectPermissionRule":
        if (self.project_id is None) == (self.survey_id is None):
            raise ValueError("Exactly one of projectId or surveyId is required")
        return self


class AllOf(BaseModel):
    """``and`` group: every requirement must hold."""

    model_config = _RULE_CONFIG

    discriminator: Literal["and"] = "and"
    rules: list["Requirement"]


class AnyOf(BaseModel):
    """``or`` group: at least one requirement must hold."""

    model_config = _RULE_CONFIG

    discriminator: Literal["or"] = "or"
    rules: list["Requirement"]


Requirement = Annotated[
    SystemRoleRule
    | SystemUserRule
    | ServiceClientRule
    | ProjectRoleRule
    | ProjectPermissionRule
    | AllOf
    | AnyOf,
    Field(discriminator="discriminator"),
]

AuthorizationScheme = AllOf | AnyOf

AllOf.model_rebuild()
AnyOf.model_rebuild()


class AuthorizationContext(BaseModel):
    """Handed by the request gate to every authorized route handler."""

    model_config = ConfigDict(frozen=True)

    token: KeycloakToken
    system_user: SystemUserContext | None = None
    granted: bool = True
