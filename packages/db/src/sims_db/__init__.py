# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, SessionLocal, engine, get_db
from .enums import (
    AdministrativeActivityStatus,
    AdministrativeActivityType,
    IdentitySource,
    ProjectPermissionName,
    ProjectRoleName,
    SystemRoleName,
)
from .models import (
    AdministrativeActivity,
    Project,
    ProjectParticipation,
    ProjectPermission,
    ProjectRole,
    ProjectRolePermission,
    Survey,
    SystemRole,
    SystemUser,
    SystemUserRole,
)

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "__version__",
    # Enums
    "AdministrativeActivityStatus",
    "AdministrativeActivityType",
    "IdentitySource",
    "ProjectPermissionName",
    "ProjectRoleName",
    "SystemRoleName",
    # Models
    "AdministrativeActivity",
    "Project",
    "ProjectParticipation",
    "ProjectPermission",
    "ProjectRole",
    "ProjectRolePermission",
    "Survey",
    "SystemRole",
    "SystemUser",
    "SystemUserRole",
]
