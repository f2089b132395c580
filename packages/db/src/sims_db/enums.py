# This project was developed with assistance from AI tools.
"""
Domain enums for survey/project access control.

Shared by the SQLAlchemy models (db package) and the Pydantic schemas
(api package). Values match the seeded lookup rows by name.
"""

import enum


class SystemRoleName(str, enum.Enum):
    SYSTEM_ADMIN = "System Administrator"
    DATA_ADMINISTRATOR = "Data Administrator"
    CREATOR = "Creator"


class ProjectRoleName(str, enum.Enum):
    COORDINATOR = "Coordinator"
    COLLABORATOR = "Collaborator"
    OBSERVER = "Observer"

    @classmethod
    def lead_role(cls) -> "ProjectRoleName":
        """The role every project must keep at least one holder of."""
        return cls.COORDINATOR


class ProjectPermissionName(str, enum.Enum):
    COORDINATOR = "Coordinator"
    COLLABORATOR = "Collaborator"
    OBSERVER = "Observer"


class IdentitySource(str, enum.Enum):
    IDIR = "IDIR"
    BCEIDBASIC = "BCEIDBASIC"
    BCEIDBUSINESS = "BCEIDBUSINESS"
    DATABASE = "DATABASE"
    UNVERIFIED = "UNVERIFIED"


class AdministrativeActivityType(str, enum.Enum):
    SYSTEM_ACCESS = "System Access"


class AdministrativeActivityStatus(str, enum.Enum):
    PENDING = "Pending"
    ACTIONED = "Actioned"
    REJECTED = "Rejected"

    @classmethod
    def valid_transitions(
        cls,
    ) -> dict["AdministrativeActivityStatus", frozenset["AdministrativeActivityStatus"]]:
        """Allowed status transitions for an administrative activity."""
        return {
            cls.PENDING: frozenset({cls.ACTIONED, cls.REJECTED}),
            cls.ACTIONED: frozenset(),
            cls.REJECTED: frozenset(),
        }
