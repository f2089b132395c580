# This project was developed with assistance from AI tools.
"""System user provisioning and the request gate against real PostgreSQL."""

from unittest.mock import patch

import pytest
from sims_db import SystemUser
from sims_db.enums import IdentitySource
from sqlalchemy import func, select

from sims_api.core.config import settings
from sims_api.services import user as user_service
from sims_api.services.user import (
    deactivate_system_user,
    ensure_system_user,
    get_api_system_user_id,
    get_user_by_id,
)

from ..factories import make_token

pytestmark = pytest.mark.integration


async def _count(session, identifier: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(SystemUser).where(SystemUser.user_identifier == identifier)
    )
    return result.scalar()


async def test_api_database_user_is_seeded(db_session):
    api_user_id = await get_api_system_user_id(db_session)
    assert api_user_id is not None
    api_user = await db_session.get(SystemUser, api_user_id)
    assert api_user.user_identifier == settings.DB_USER_IDENTIFIER
    assert api_user.identity_source == IdentitySource.DATABASE


async def test_ensure_creates_once(db_session):
    first = await ensure_system_user(
        db_session, "new-guid", "newbie", IdentitySource.IDIR, email="newbie@gov.bc.ca"
    )
    second = await ensure_system_user(db_session, "new-guid", "newbie", IdentitySource.IDIR)

    assert first.id == second.id
    assert first.role_names == []
    assert await _count(db_session, "newbie") == 1

    row = await db_session.get(SystemUser, first.id)
    assert row.create_user == await get_api_system_user_id(db_session)


async def test_ensure_reactivates_deactivated_user(db_session, make_user):
    user = await make_user("returning")
    await deactivate_system_user(db_session, user.id, acting_user_id=None)
    assert await get_user_by_id(db_session, user.id) is None

    resolved = await ensure_system_user(
        db_session, "returning-guid", "returning", IdentitySource.IDIR
    )

    assert resolved.id == user.id
    assert resolved.record_end_date is None
    assert await get_user_by_id(db_session, user.id) is not None


async def test_ensure_backfills_guid_of_preregistered_user(db_session):
    preregistered = await ensure_system_user(db_session, None, "prereg", IdentitySource.IDIR)
    assert preregistered.user_guid is None

    resolved = await ensure_system_user(db_session, "prereg-guid", "prereg", IdentitySource.IDIR)

    assert resolved.id == preregistered.id
    assert resolved.user_guid == "prereg-guid"


async def test_overlapping_first_logins_resolve_to_one_user(db_session, make_user):
    # the other login committed after this one looked the identity up
    winner = await make_user("racer")
    real_find = user_service._find_identity
    lookups = []

    async def stale_then_real(*args):
        lookups.append(args)
        if len(lookups) == 1:
            return None
        return await real_find(*args)

    with patch("sims_api.services.user._find_identity", new=stale_then_real):
        resolved = await ensure_system_user(db_session, "racer-guid", "racer", IdentitySource.IDIR)

    assert resolved.id == winner.id
    assert len(lookups) == 2
    assert await _count(db_session, "racer") == 1
    # the failed insert was rolled back to its savepoint; the session is still usable
    assert await get_user_by_id(db_session, winner.id) is not None


async def test_gate_provisions_caller_on_first_request(client_factory, db_session):
    token = make_token(username="FirstTimer", guid="FIRST-GUID")
    client = await client_factory(token)

    first = await client.get("/api/user/self")
    second = await client.get("/api/user/self")
    await client.aclose()

    assert first.status_code == 200
    assert first.json()["user_identifier"] == "firsttimer"
    assert first.json()["user_guid"] == "first-guid"
    assert second.json()["id"] == first.json()["id"]
    assert await _count(db_session, "firsttimer") == 1


async def test_new_user_is_denied_admin_routes(client_factory):
    client = await client_factory(make_token(username="nobody", guid="NOBODY-GUID"))
    resp = await client.get("/api/user")
    await client.aclose()

    assert resp.status_code == 403


async def test_data_administrator_role_grants_access(client_factory, db_session, role_ids):
    from sims_api.services.user import add_system_roles

    admin = await ensure_system_user(db_session, "da-guid", "dataadmin", IdentitySource.IDIR)
    await add_system_roles(db_session, admin.id, [role_ids["Data Administrator"]])

    client = await client_factory(make_token(username="dataadmin", guid="DA-GUID"))
    resp = await client.get("/api/user")
    await client.aclose()

    assert resp.status_code == 200
    assert "dataadmin" in [u["user_identifier"] for u in resp.json()]
    assert settings.DB_USER_IDENTIFIER not in [u["user_identifier"] for u in resp.json()]
