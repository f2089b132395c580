# This project was developed with assistance from AI tools.
"""Project participation service.

Reads participants with their project role and the permissions that role
grants, and applies participant changes while keeping every project with at
least one Coordinator (the project lead role).

Writes only flush; the calling route owns the transaction.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from sims_db import (
    Project,
    ProjectParticipation,
    ProjectPermission,
    ProjectRole,
    ProjectRolePermission,
    Survey,
    SystemUser,
)
from sims_db.enums import ProjectRoleName
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import ProjectUser

logger = logging.getLogger(__name__)


class ProjectLeadRequiredError(ValueError):
    """A change would leave a project without a Coordinator."""


class InvalidProjectRoleError(ValueError):
    """The requested project role does not exist."""


class UnknownSystemUserError(ValueError):
    """The system user to add to a project does not exist."""


class ProjectNotFoundError(LookupError):
    """The project does not exist."""


def _participant_stmt():
    return (
        select(
            ProjectParticipation.id.label("project_participation_id"),
            ProjectParticipation.project_id,
            ProjectParticipation.system_user_id,
            ProjectParticipation.project_role_id,
            ProjectRole.name.label("project_role_name"),
            ProjectPermission.name.label("permission_name"),
            SystemUser.record_end_date,
        )
        .join(ProjectRole, ProjectRole.id == ProjectParticipation.project_role_id)
        .join(SystemUser, SystemUser.id == ProjectParticipation.system_user_id)
        .outerjoin(
            ProjectRolePermission,
            ProjectRolePermission.project_role_id == ProjectParticipation.project_role_id,
        )
        .outerjoin(
            ProjectPermission,
            ProjectPermission.id == ProjectRolePermission.project_permission_id,
        )
        .order_by(ProjectParticipation.id)
    )


def _aggregate(rows: Iterable) -> list[ProjectUser]:
    """Fold one-row-per-permission results into ProjectUser objects."""
    grouped: dict[int, dict] = {}
    for row in rows:
        entry = grouped.get(row.project_participation_id)
        if entry is None:
            entry = grouped[row.project_participation_id] = {
                "project_participation_id": row.project_participation_id,
                "project_id": row.project_id,
                "system_user_id": row.system_user_id,
                "project_role_ids": [row.project_role_id],
                "project_role_names": [row.project_role_name],
                "project_role_permissions": [],
                "record_end_date": row.record_end_date,
            }
        if row.permission_name and row.permission_name not in entry["project_role_permissions"]:
            entry["project_role_permissions"].append(row.permission_name)
    return [ProjectUser(**entry) for entry in grouped.values()]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_project_participant(
    session: AsyncSession,
    project_id: int,
    system_user_id: int,
) -> ProjectUser | None:
    """Return the user's participation in a project, or None if they have none."""
    stmt = _participant_stmt().where(
        ProjectParticipation.project_id == project_id,
        ProjectParticipation.system_user_id == system_user_id,
    )
    result = await session.execute(stmt)
    participants = _aggregate(result.all())
    return participants[0] if participants else None


async def get_survey_project_id(session: AsyncSession, survey_id: int) -> int | None:
    """Return the id of the project a survey belongs to, or None if unknown."""
    result = await session.execute(select(Survey.project_id).where(Survey.id == survey_id))
    return result.scalar_one_or_none()


async def get_project_participants(session: AsyncSession, project_id: int) -> list[ProjectUser]:
    result = await session.execute(
        _participant_stmt().where(ProjectParticipation.project_id == project_id)
    )
    return _aggregate(result.all())


async def get_participations_by_system_user(
    session: AsyncSession, system_user_id: int
) -> list[ProjectUser]:
    result = await session.execute(
        _participant_stmt().where(ProjectParticipation.system_user_id == system_user_id)
    )
    return _aggregate(result.all())


async def get_participants_for_projects(
    session: AsyncSession, project_ids: Sequence[int]
) -> list[ProjectUser]:
    """Return every participant of the given projects in one query."""
    if not project_ids:
        return []
    result = await session.execute(
        _participant_stmt().where(ProjectParticipation.project_id.in_(project_ids))
    )
    return _aggregate(result.all())


# ---------------------------------------------------------------------------
# Lead invariant
# ---------------------------------------------------------------------------


async def lock_projects(session: AsyncSession, project_ids: Sequence[int]) -> None:
    """Lock project rows until the transaction ends.

    Participant changes that check the lead invariant take this lock before
    reading participants, so concurrent changes to one project run one after
    the other and each sees the other's result.
    """
    if not project_ids:
        return
    await session.execute(
        select(Project.id)
        .where(Project.id.in_(project_ids))
        .order_by(Project.id)
        .with_for_update()
    )


def project_has_lead(participants: Iterable[ProjectUser]) -> bool:
    lead = ProjectRoleName.lead_role().value
    return any(lead in p.project_role_names for p in participants)


def do_all_projects_have_a_lead_if_user_is_removed(
    participants: Iterable[ProjectUser], system_user_id: int
) -> bool:
    """Check that removing a user leaves every led project with a lead.

    ``participants`` may span several projects. A project that has no lead
    to begin with is not counted against the removal.
    """
    by_project: dict[int, list[ProjectUser]] = defaultdict(list)
    for participant in participants:
        by_project[participant.project_id].append(participant)

    for project_participants in by_project.values():
        remaining = [p for p in project_participants if p.system_user_id != system_user_id]
        if project_has_lead(project_participants) and not project_has_lead(remaining):
            return False
    return True


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def add_project_participant(
    session: AsyncSession,
    project_id: int,
    system_user_id: int,
    project_role_id: int,
    *,
    create_user: int | None = None,
) -> ProjectParticipation:
    participation = ProjectParticipation(
        project_id=project_id,
        system_user_id=system_user_id,
        project_role_id=project_role_id,
        create_user=create_user,
    )
    session.add(participation)
    await session.flush()
    return participation


async def ensure_project_participant(
    session: AsyncSession,
    project_id: int,
    system_user_id: int,
    project_role_id: int,
    *,
    create_user: int | None = None,
) -> bool:
    """Add the user to the project unless they already participate.

    Returns True when a participation row was created.

    Raises:
        ProjectNotFoundError: ``project_id`` does not exist.
        UnknownSystemUserError: ``system_user_id`` does not exist.
        InvalidProjectRoleError: ``project_role_id`` does not exist.
    """
    if await session.get(Project, project_id) is None:
        raise ProjectNotFoundError(f"Project {project_id} not found")
    if await session.get(SystemUser, system_user_id) is None:
        raise UnknownSystemUserError(f"Unknown system user: {system_user_id}")
    if await session.get(ProjectRole, project_role_id) is None:
        raise InvalidProjectRoleError(f"Unknown project role: {project_role_id}")

    existing = await get_project_participant(session, project_id, system_user_id)
    if existing is not None:
        return False
    await add_project_participant(
        session, project_id, system_user_id, project_role_id, create_user=create_user
    )
    return True


async def update_participant_role(
    session: AsyncSession,
    project_id: int,
    project_participation_id: int,
    project_role_id: int,
    *,
    create_user: int | None = None,
) -> ProjectParticipation | None:
    """Change a participant's role by replacing their participation row.

    The post-change participant list is computed before anything is written,
    so a rejected change never touches the database.

    Returns:
        The new participation row, or None if the participation is not part
        of the project.

    Raises:
        InvalidProjectRoleError: ``project_role_id`` does not exist.
        ProjectLeadRequiredError: The change would remove the last Coordinator.
    """
    await lock_projects(session, [project_id])
    participants = await get_project_participants(session, project_id)
    target = next(
        (p for p in participants if p.project_participation_id == project_participation_id),
        None,
    )
    if target is None:
        return None

    role = await session.get(ProjectRole, project_role_id)
    if role is None:
        raise InvalidProjectRoleError(f"Unknown project role: {project_role_id}")

    after = [
        p.model_copy(update={"project_role_ids": [role.id], "project_role_names": [role.name]})
        if p is target
        else p
        for p in participants
    ]
    if project_has_lead(participants) and not project_has_lead(after):
        logger.warning(
            "Rejected role change for participation %s: project %s would lose its last lead",
            project_participation_id,
            project_id,
        )
        raise ProjectLeadRequiredError(
            "Cannot update project user. User is the only Coordinator for the project."
        )

    await session.execute(
        delete(ProjectParticipation).where(ProjectParticipation.id == project_participation_id)
    )
    return await add_project_participant(
        session, project_id, target.system_user_id, project_role_id, create_user=create_user
    )


async def remove_participant(
    session: AsyncSession,
    project_id: int,
    project_participation_id: int,
) -> bool:
    """Remove a participant from a project.

    Returns False if the participation is not part of the project.

    Raises:
        ProjectLeadRequiredError: The participant is the last Coordinator.
    """
    await lock_projects(session, [project_id])
    participants = await get_project_participants(session, project_id)
    target = next(
        (p for p in participants if p.project_participation_id == project_participation_id),
        None,
    )
    if target is None:
        return False

    after = [p for p in participants if p is not target]
    if project_has_lead(participants) and not project_has_lead(after):
        logger.warning(
            "Rejected removal of participation %s: project %s would lose its last lead",
            project_participation_id,
            project_id,
        )
        raise ProjectLeadRequiredError(
            "Cannot delete project user. User is the only Coordinator for the project."
        )

    await session.execute(
        delete(ProjectParticipation).where(ProjectParticipation.id == project_participation_id)
    )
    await session.flush()
    return True


async def remove_all_participations(session: AsyncSession, system_user_id: int) -> None:
    await session.execute(
        delete(ProjectParticipation).where(ProjectParticipation.system_user_id == system_user_id)
    )
