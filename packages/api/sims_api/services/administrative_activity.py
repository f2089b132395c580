# This project was developed with assistance from AI tools.
"""Administrative activity service (system access requests).

A caller without access submits a request; a Data Administrator approves
or rejects it. Approval provisions or reactivates the requester, grants the
chosen system roles and marks the request Actioned, all in the caller's
transaction.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sims_db import AdministrativeActivity, ProjectParticipation
from sims_db.enums import AdministrativeActivityStatus, AdministrativeActivityType, IdentitySource
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import SystemUserContext
from . import user as user_service

logger = logging.getLogger(__name__)


class InvalidStatusTransitionError(ValueError):
    """The activity's current status does not allow the requested change."""


async def create_access_request(
    session: AsyncSession,
    data: dict[str, Any],
    reported_system_user_id: int | None = None,
) -> AdministrativeActivity:
    """Record a pending System Access request."""
    activity = AdministrativeActivity(
        type=AdministrativeActivityType.SYSTEM_ACCESS,
        status=AdministrativeActivityStatus.PENDING,
        reported_system_user_id=reported_system_user_id,
        data=data,
    )
    session.add(activity)
    await session.flush()
    await session.refresh(activity)
    logger.info("Access request %s submitted by %s", activity.id, data.get("username"))
    return activity


async def get_access_request_standing(
    session: AsyncSession,
    user_identifier: str,
    system_user_id: int | None,
) -> dict[str, bool]:
    """Whether the caller has a pending request and whether they belong to any project."""
    pending = await session.execute(
        select(func.count())
        .select_from(AdministrativeActivity)
        .where(
            AdministrativeActivity.type == AdministrativeActivityType.SYSTEM_ACCESS,
            AdministrativeActivity.status == AdministrativeActivityStatus.PENDING,
            func.lower(AdministrativeActivity.data["username"].as_string())
            == user_identifier.lower(),
        )
    )
    has_pending = (pending.scalar() or 0) > 0

    belongs = False
    if system_user_id is not None:
        projects = await session.execute(
            select(func.count())
            .select_from(ProjectParticipation)
            .where(ProjectParticipation.system_user_id == system_user_id)
        )
        belongs = (projects.scalar() or 0) > 0

    return {
        "has_pending_access_request": has_pending,
        "belongs_to_one_or_more_projects": belongs,
    }


async def list_administrative_activities(
    session: AsyncSession,
    *,
    activity_type: AdministrativeActivityType | None = None,
    statuses: Sequence[AdministrativeActivityStatus] | None = None,
) -> list[AdministrativeActivity]:
    stmt = select(AdministrativeActivity).order_by(AdministrativeActivity.create_date.desc())
    if activity_type is not None:
        stmt = stmt.where(AdministrativeActivity.type == activity_type)
    if statuses:
        stmt = stmt.where(AdministrativeActivity.status.in_(list(statuses)))
    result = await session.execute(stmt)
    return list(result.scalars().all())


def _transition(
    activity: AdministrativeActivity, new_status: AdministrativeActivityStatus
) -> None:
    allowed = AdministrativeActivityStatus.valid_transitions().get(activity.status, frozenset())
    if new_status not in allowed:
        raise InvalidStatusTransitionError(
            f"Cannot change administrative activity {activity.id} "
            f"from {activity.status.value} to {new_status.value}"
        )
    activity.status = new_status
    activity.update_date = datetime.now(UTC)


async def approve_access_request(
    session: AsyncSession,
    activity_id: int,
    role_ids: Sequence[int],
    acting_user_id: int | None,
) -> tuple[AdministrativeActivity, SystemUserContext] | None:
    """Approve a pending access request.

    Returns the updated activity and the requester's system user, or None if
    the activity does not exist.

    Raises:
        InvalidStatusTransitionError: The activity is not Pending.
        InvalidSystemRoleError: A role id does not exist.
        ValueError: The request data lacks a usable identity.
    """
    activity = await session.get(AdministrativeActivity, activity_id)
    if activity is None:
        return None
    _transition(activity, AdministrativeActivityStatus.ACTIONED)

    data = activity.data or {}
    username = data.get("username")
    if not username:
        raise ValueError(f"Administrative activity {activity_id} has no username")
    try:
        identity_source = IdentitySource(str(data.get("identitySource", "")).upper())
    except ValueError as exc:
        raise ValueError(
            f"Administrative activity {activity_id} has an invalid identity source"
        ) from exc

    system_user = await user_service.ensure_system_user(
        session,
        data.get("userGuid"),
        username,
        identity_source,
        display_name=data.get("name"),
        email=data.get("email"),
        acting_user_id=acting_user_id,
    )
    if role_ids:
        await user_service.add_system_roles(session, system_user.id, role_ids)
        system_user = await user_service.get_user_by_id(session, system_user.id) or system_user

    activity.assigned_system_user_id = acting_user_id
    await session.flush()
    logger.info("Access request %s approved for system user %s", activity_id, system_user.id)
    return activity, system_user


async def reject_access_request(
    session: AsyncSession,
    activity_id: int,
    acting_user_id: int | None,
) -> AdministrativeActivity | None:
    """Reject a pending access request. Returns None if it does not exist."""
    activity = await session.get(AdministrativeActivity, activity_id)
    if activity is None:
        return None
    _transition(activity, AdministrativeActivityStatus.REJECTED)
    activity.assigned_system_user_id = acting_user_id
    await session.flush()
    logger.info("Access request %s rejected", activity_id)
    return activity
