# This project was developed with assistance from AI tools.
"""Authorization scheme builders shared by the routers.

Each builder takes the incoming request and returns the scheme for that
call; project and survey ids come from the path.
"""

from fastapi import Request
from sims_db.enums import ProjectPermissionName, SystemRoleName

from ..schemas.auth import AllOf, AnyOf, ProjectPermissionRule, SystemRoleRule

_ANY_PROJECT_PERMISSION = [p.value for p in ProjectPermissionName]


def _data_administrator_rule() -> SystemRoleRule:
    return SystemRoleRule(valid_system_roles=[SystemRoleName.DATA_ADMINISTRATOR.value])


def data_administrator(_request: Request) -> AllOf:
    return AllOf(rules=[_data_administrator_rule()])


def project_member(request: Request) -> AllOf:
    return AllOf(
        rules=[
            ProjectPermissionRule(
                project_id=int(request.path_params["project_id"]),
                valid_project_permissions=_ANY_PROJECT_PERMISSION,
            )
        ]
    )


def project_member_or_data_administrator(request: Request) -> AnyOf:
    return AnyOf(
        rules=[
            ProjectPermissionRule(
                project_id=int(request.path_params["project_id"]),
                valid_project_permissions=_ANY_PROJECT_PERMISSION,
            ),
            _data_administrator_rule(),
        ]
    )


def project_coordinator_or_data_administrator(request: Request) -> AnyOf:
    return AnyOf(
        rules=[
            ProjectPermissionRule(
                project_id=int(request.path_params["project_id"]),
                valid_project_permissions=[ProjectPermissionName.COORDINATOR.value],
            ),
            _data_administrator_rule(),
        ]
    )


def survey_member(request: Request) -> AllOf:
    return AllOf(
        rules=[
            ProjectPermissionRule(
                survey_id=int(request.path_params["survey_id"]),
                valid_project_permissions=_ANY_PROJECT_PERMISSION,
            )
        ]
    )
