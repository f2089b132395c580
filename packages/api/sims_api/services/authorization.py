# This project was developed with assistance from AI tools.
"""Authorization scheme evaluation.

Walks an ``and``/``or`` tree of requirements for a single request and
returns a boolean. "Not authorized" is always ``False``; only backing-store
faults raise, wrapped in AuthorizationEvaluationError so the request gate can
report them as a server error instead of a denial.

One service instance is created per request. Project participation and
survey-to-project lookups are memoized on the instance, so a scheme that
names the same project twice issues a single read.
"""

import logging
from typing import assert_never

from sims_db.enums import SystemRoleName
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_service_client_id, has_at_least_one_valid_value
from ..schemas.auth import (
    AllOf,
    AnyOf,
    AuthorizationScheme,
    KeycloakToken,
    ProjectPermissionRule,
    ProjectRoleRule,
    ProjectUser,
    Requirement,
    ServiceClientRule,
    SystemRoleRule,
    SystemUserContext,
    SystemUserRule,
)
from . import project_participation

logger = logging.getLogger(__name__)


class AuthorizationEvaluationError(RuntimeError):
    """A lookup needed to evaluate a scheme failed."""


class AuthorizationService:
    """Evaluate authorization schemes for one caller."""

    def __init__(
        self,
        session: AsyncSession,
        token: KeycloakToken,
        system_user: SystemUserContext | None = None,
    ):
        self._session = session
        self._token = token
        self._system_user = system_user
        self._project_users: dict[int, ProjectUser | None] = {}
        self._survey_projects: dict[int, int | None] = {}

    @property
    def system_user(self) -> SystemUserContext | None:
        """The caller's system user, or None when it is unknown or deactivated."""
        if self._system_user is None or self._system_user.record_end_date is not None:
            return None
        return self._system_user

    async def authorize(self, scheme: AuthorizationScheme | None = None) -> bool:
        """Decide whether the caller satisfies ``scheme``.

        System administrators always pass. Without a scheme any known system
        user passes.

        Raises:
            AuthorizationEvaluationError: A database lookup failed.
        """
        try:
            if self.is_system_administrator():
                logger.debug("System administrator override for user %s", self._system_user.id)
                return True
            if scheme is None:
                return self.system_user is not None
            return await self._evaluate(scheme)
        except SQLAlchemyError as exc:
            raise AuthorizationEvaluationError("Failed to evaluate authorization scheme") from exc

    def is_system_administrator(self) -> bool:
        user = self.system_user
        return user is not None and SystemRoleName.SYSTEM_ADMIN.value in user.role_names

    async def _evaluate(self, requirement: Requirement) -> bool:
        if isinstance(requirement, AllOf):
            for rule in requirement.rules:
                if not await self._evaluate(rule):
                    return False
            return True
        if isinstance(requirement, AnyOf):
            for rule in requirement.rules:
                if await self._evaluate(rule):
                    return True
            return False
        if isinstance(requirement, SystemRoleRule):
            return self.authorize_by_system_role(requirement)
        if isinstance(requirement, SystemUserRule):
            return self.system_user is not None
        if isinstance(requirement, ServiceClientRule):
            return self.authorize_by_service_client(requirement)
        if isinstance(requirement, ProjectRoleRule):
            return await self.authorize_by_project_role(requirement)
        if isinstance(requirement, ProjectPermissionRule):
            return await self.authorize_by_project_permission(requirement)
        assert_never(requirement)

    # -----------------------------------------------------------------------
    # Predicates
    # -----------------------------------------------------------------------

    def authorize_by_system_role(self, rule: SystemRoleRule) -> bool:
        user = self.system_user
        if user is None:
            return False
        return has_at_least_one_valid_value(rule.valid_system_roles, user.role_names)

    def authorize_by_service_client(self, rule: ServiceClientRule) -> bool:
        client_id = get_service_client_id(self._token)
        if not client_id:
            return False
        return has_at_least_one_valid_value(rule.valid_service_client_ids, [client_id])

    async def authorize_by_project_role(self, rule: ProjectRoleRule) -> bool:
        project_user = await self._get_project_user(rule.project_id)
        if project_user is None or project_user.record_end_date is not None:
            return False
        return has_at_least_one_valid_value(
            rule.valid_project_roles, project_user.project_role_names
        )

    async def authorize_by_project_permission(self, rule: ProjectPermissionRule) -> bool:
        project_id = rule.project_id
        if project_id is None:
            project_id = await self._get_survey_project_id(rule.survey_id)
            if project_id is None:
                return False

        project_user = await self._get_project_user(project_id)
        if project_user is None or project_user.record_end_date is not None:
            return False
        return has_at_least_one_valid_value(
            rule.valid_project_permissions, project_user.project_role_permissions
        )

    # -----------------------------------------------------------------------
    # Memoized lookups
    # -----------------------------------------------------------------------

    async def _get_project_user(self, project_id: int) -> ProjectUser | None:
        user = self.system_user
        if user is None:
            return None
        if project_id not in self._project_users:
            self._project_users[project_id] = await project_participation.get_project_participant(
                self._session, project_id, user.id
            )
        return self._project_users[project_id]

    async def _get_survey_project_id(self, survey_id: int) -> int | None:
        if survey_id not in self._survey_projects:
            self._survey_projects[survey_id] = await project_participation.get_survey_project_id(
                self._session, survey_id
            )
        return self._survey_projects[survey_id]
