# This project was developed with assistance from AI tools.
"""System user service.

Resolves identity-provider callers to internal system users, provisioning
or reactivating them on login, and backs the user administration routes.

Writes only flush; the caller (request gate or route) owns the transaction.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from sims_db import SystemRole, SystemUser, SystemUserRole
from sims_db.enums import IdentitySource
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..schemas.auth import SystemUserContext
from . import project_participation
from .project_participation import ProjectLeadRequiredError

logger = logging.getLogger(__name__)


class SystemUserResolutionError(RuntimeError):
    """The acting system user needed for an audited write could not be found."""


class InvalidSystemRoleError(ValueError):
    """One or more requested system roles do not exist."""


def _with_roles():
    # populate_existing: roles may have been rewritten earlier in the session
    return (
        select(SystemUser)
        .options(selectinload(SystemUser.roles).selectinload(SystemUserRole.system_role))
        .execution_options(populate_existing=True)
    )


def _to_context(user: SystemUser) -> SystemUserContext:
    return SystemUserContext(
        id=user.id,
        user_guid=user.user_guid,
        user_identifier=user.user_identifier,
        identity_source=user.identity_source,
        record_end_date=user.record_end_date,
        display_name=user.display_name,
        email=user.email,
        agency=user.agency,
        role_ids=[r.system_role_id for r in user.roles],
        role_names=[r.system_role.name for r in user.roles],
    )


async def _find_user(session: AsyncSession, *criteria) -> SystemUser | None:
    result = await session.execute(_with_roles().where(*criteria))
    return result.scalar_one_or_none()


async def _find_identity(
    session: AsyncSession,
    user_guid: str | None,
    user_identifier: str,
    identity_source: IdentitySource,
) -> SystemUser | None:
    """Find by GUID first, then by identifier and identity source."""
    user = None
    if user_guid:
        user = await _find_user(session, func.lower(SystemUser.user_guid) == user_guid.lower())
    if user is None:
        user = await _find_user(
            session,
            func.lower(SystemUser.user_identifier) == user_identifier.lower(),
            SystemUser.identity_source == identity_source,
        )
    return user


def _is_current(user: SystemUser, user_guid: str | None) -> bool:
    return user.record_end_date is None and bool(user.user_guid or not user_guid)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_user_by_id(session: AsyncSession, system_user_id: int) -> SystemUserContext | None:
    """Return an active system user by id, or None."""
    user = await _find_user(
        session, SystemUser.id == system_user_id, SystemUser.record_end_date.is_(None)
    )
    return _to_context(user) if user else None


async def get_user_by_guid(session: AsyncSession, user_guid: str) -> SystemUserContext | None:
    """Return a system user (active or not) by identity-provider GUID."""
    user = await _find_user(session, func.lower(SystemUser.user_guid) == user_guid.lower())
    return _to_context(user) if user else None


async def get_user_by_identifier(
    session: AsyncSession,
    user_identifier: str,
    identity_source: IdentitySource,
) -> SystemUserContext | None:
    """Return a system user (active or not) by identifier and identity source."""
    user = await _find_user(
        session,
        func.lower(SystemUser.user_identifier) == user_identifier.lower(),
        SystemUser.identity_source == identity_source,
    )
    return _to_context(user) if user else None


async def list_system_users(session: AsyncSession) -> list[SystemUserContext]:
    """Active human users; the service's own DATABASE identities are excluded."""
    stmt = (
        _with_roles()
        .where(
            SystemUser.record_end_date.is_(None),
            SystemUser.identity_source != IdentitySource.DATABASE,
        )
        .order_by(SystemUser.id)
    )
    result = await session.execute(stmt)
    return [_to_context(u) for u in result.scalars().all()]


async def get_api_system_user_id(session: AsyncSession) -> int | None:
    """Return the id of the service's own DATABASE system user."""
    result = await session.execute(
        select(SystemUser.id).where(
            SystemUser.user_identifier == settings.DB_USER_IDENTIFIER,
            SystemUser.identity_source == IdentitySource.DATABASE,
        )
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------


async def add_system_user(
    session: AsyncSession,
    user_guid: str | None,
    user_identifier: str,
    identity_source: IdentitySource,
    *,
    display_name: str | None = None,
    given_name: str | None = None,
    family_name: str | None = None,
    email: str | None = None,
    agency: str | None = None,
    acting_user_id: int,
) -> SystemUserContext:
    """Insert a new active system user with no roles."""
    user = SystemUser(
        user_guid=user_guid,
        user_identifier=user_identifier,
        identity_source=identity_source,
        display_name=display_name,
        given_name=given_name,
        family_name=family_name,
        email=email,
        agency=agency,
        record_end_date=None,
        create_user=acting_user_id,
    )
    session.add(user)
    await session.flush()
    logger.info(
        "Provisioned system user %s (%s, %s)", user.id, user_identifier, identity_source.value
    )
    return SystemUserContext(
        id=user.id,
        user_guid=user_guid,
        user_identifier=user_identifier,
        identity_source=identity_source,
        display_name=display_name,
        email=email,
        agency=agency,
    )


async def ensure_system_user(
    session: AsyncSession,
    user_guid: str | None,
    user_identifier: str,
    identity_source: IdentitySource,
    *,
    display_name: str | None = None,
    given_name: str | None = None,
    family_name: str | None = None,
    email: str | None = None,
    agency: str | None = None,
    acting_user_id: int | None = None,
) -> SystemUserContext:
    """Return the active system user for an identity, creating or reactivating it.

    Unknown identities get a new record with no roles; deactivated records
    are reactivated; active records are returned unchanged. The user is found
    by GUID first and then by identifier and identity source, which picks up
    users an administrator registered before their first login (their GUID
    is filled in).

    Args:
        acting_user_id: System user recorded in the audit columns. Defaults to
            the service's own DATABASE user.

    Two overlapping first logins for one identity both reach the insert; the
    loser's insert is rolled back to a savepoint and the winner's row is
    returned instead.

    Raises:
        SystemUserResolutionError: No acting user id could be determined for a
            write.
    """
    user = await _find_identity(session, user_guid, user_identifier, identity_source)
    if user is not None and _is_current(user, user_guid):
        return _to_context(user)

    if acting_user_id is None:
        acting_user_id = await get_api_system_user_id(session)
    if acting_user_id is None:
        raise SystemUserResolutionError("Failed to identify system user ID")

    if user is None:
        try:
            async with session.begin_nested():
                return await add_system_user(
                    session,
                    user_guid,
                    user_identifier,
                    identity_source,
                    display_name=display_name,
                    given_name=given_name,
                    family_name=family_name,
                    email=email,
                    agency=agency,
                    acting_user_id=acting_user_id,
                )
        except IntegrityError:
            user = await _find_identity(session, user_guid, user_identifier, identity_source)
            if user is None:
                raise
            logger.info(
                "System user %s (%s) was provisioned by a concurrent request",
                user.id,
                user_identifier,
            )
            if _is_current(user, user_guid):
                return _to_context(user)

    if user.user_guid is None and user_guid:
        user.user_guid = user_guid
    if user.record_end_date is not None:
        user.record_end_date = None
        logger.info("Reactivated system user %s (%s)", user.id, user.user_identifier)
    user.update_date = datetime.now(UTC)
    user.update_user = acting_user_id
    await session.flush()
    return _to_context(user)


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


async def _check_system_roles(session: AsyncSession, role_ids: Sequence[int]) -> None:
    if not role_ids:
        return
    result = await session.execute(select(SystemRole.id).where(SystemRole.id.in_(set(role_ids))))
    unknown = set(role_ids) - set(result.scalars().all())
    if unknown:
        raise InvalidSystemRoleError(
            f"Unknown system role: {', '.join(str(r) for r in sorted(unknown))}"
        )


async def add_system_roles(
    session: AsyncSession, system_user_id: int, role_ids: Sequence[int]
) -> None:
    """Grant roles the user does not already hold.

    Raises:
        InvalidSystemRoleError: A role id does not exist.
    """
    await _check_system_roles(session, role_ids)
    result = await session.execute(
        select(SystemUserRole.system_role_id).where(SystemUserRole.system_user_id == system_user_id)
    )
    held = set(result.scalars().all())
    for role_id in dict.fromkeys(role_ids):
        if role_id not in held:
            session.add(SystemUserRole(system_user_id=system_user_id, system_role_id=role_id))
    await session.flush()


async def replace_system_roles(
    session: AsyncSession, system_user_id: int, role_ids: Sequence[int]
) -> None:
    """Replace the user's system roles (delete, then insert the new set).

    Raises:
        InvalidSystemRoleError: A role id does not exist; nothing is changed.
    """
    await _check_system_roles(session, role_ids)
    await session.execute(
        delete(SystemUserRole).where(SystemUserRole.system_user_id == system_user_id)
    )
    for role_id in dict.fromkeys(role_ids):
        session.add(SystemUserRole(system_user_id=system_user_id, system_role_id=role_id))
    await session.flush()


async def _set_end_date(
    session: AsyncSession,
    system_user_id: int,
    end_date: datetime | None,
    acting_user_id: int | None,
) -> bool:
    user = await session.get(SystemUser, system_user_id)
    if user is None:
        return False
    user.record_end_date = end_date
    user.update_date = datetime.now(UTC)
    user.update_user = acting_user_id
    await session.flush()
    return True


async def activate_system_user(
    session: AsyncSession, system_user_id: int, acting_user_id: int | None
) -> bool:
    return await _set_end_date(session, system_user_id, None, acting_user_id)


async def deactivate_system_user(
    session: AsyncSession, system_user_id: int, acting_user_id: int | None
) -> bool:
    return await _set_end_date(session, system_user_id, datetime.now(UTC), acting_user_id)


async def delete_system_user(
    session: AsyncSession, system_user_id: int, acting_user_id: int | None
) -> bool:
    """Remove a user from the system.

    Drops all system roles and project participations and deactivates the
    record. Refused when the user is the only Coordinator of any project.

    Returns False if the user does not exist.

    Raises:
        ProjectLeadRequiredError: The user is the last lead of a project.
    """
    if await session.get(SystemUser, system_user_id) is None:
        return False

    participations = await project_participation.get_participations_by_system_user(
        session, system_user_id
    )
    project_ids = sorted({p.project_id for p in participations})
    await project_participation.lock_projects(session, project_ids)
    participants = await project_participation.get_participants_for_projects(session, project_ids)
    if not project_participation.do_all_projects_have_a_lead_if_user_is_removed(
        participants, system_user_id
    ):
        logger.warning(
            "Rejected removal of system user %s: sole Coordinator of a project", system_user_id
        )
        raise ProjectLeadRequiredError(
            "Cannot remove user. User is the only Coordinator for one or more projects."
        )

    await session.execute(
        delete(SystemUserRole).where(SystemUserRole.system_user_id == system_user_id)
    )
    await project_participation.remove_all_participations(session, system_user_id)
    return await deactivate_system_user(session, system_user_id, acting_user_id)
