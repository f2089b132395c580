# This project was developed with assistance from AI tools.
"""Tests for system access request handling."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sims_db import AdministrativeActivity
from sims_db.enums import AdministrativeActivityStatus, AdministrativeActivityType, IdentitySource

from sims_api.services.administrative_activity import (
    InvalidStatusTransitionError,
    approve_access_request,
    create_access_request,
    get_access_request_standing,
    reject_access_request,
)

from .factories import make_system_user

ENSURE = "sims_api.services.user.ensure_system_user"
ADD_ROLES = "sims_api.services.user.add_system_roles"
GET_USER = "sims_api.services.user.get_user_by_id"


def _activity(status=AdministrativeActivityStatus.PENDING, **data):
    payload = {
        "userGuid": "bob-guid",
        "username": "bob",
        "identitySource": "BCEIDBASIC",
        "name": "Bob B",
        "email": "bob@example.com",
    }
    payload.update(data)
    return SimpleNamespace(
        id=3,
        type=AdministrativeActivityType.SYSTEM_ACCESS,
        status=status,
        data=payload,
        assigned_system_user_id=None,
        update_date=None,
    )


def _session(activity=None):
    session = AsyncMock()
    session.get = AsyncMock(return_value=activity)
    session.add = MagicMock()
    return session


def test_only_pending_requests_can_transition():
    transitions = AdministrativeActivityStatus.valid_transitions()
    assert transitions[AdministrativeActivityStatus.PENDING] == {
        AdministrativeActivityStatus.ACTIONED,
        AdministrativeActivityStatus.REJECTED,
    }
    assert not transitions.get(AdministrativeActivityStatus.ACTIONED)
    assert not transitions.get(AdministrativeActivityStatus.REJECTED)


@pytest.mark.asyncio
async def test_create_access_request_is_pending():
    session = _session()

    activity = await create_access_request(session, {"username": "bob"}, reported_system_user_id=4)

    assert isinstance(activity, AdministrativeActivity)
    assert activity.status == AdministrativeActivityStatus.PENDING
    assert activity.type == AdministrativeActivityType.SYSTEM_ACCESS
    assert activity.reported_system_user_id == 4
    session.add.assert_called_once_with(activity)
    session.refresh.assert_awaited_once_with(activity)


@pytest.mark.asyncio
async def test_standing_for_caller_without_system_user():
    session = _session()
    pending = MagicMock()
    pending.scalar.return_value = 1
    session.execute = AsyncMock(return_value=pending)

    standing = await get_access_request_standing(session, "Bob", None)

    assert standing == {
        "has_pending_access_request": True,
        "belongs_to_one_or_more_projects": False,
    }
    session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_standing_counts_projects_for_known_user():
    session = _session()
    none_pending, two_projects = MagicMock(), MagicMock()
    none_pending.scalar.return_value = 0
    two_projects.scalar.return_value = 2
    session.execute = AsyncMock(side_effect=[none_pending, two_projects])

    standing = await get_access_request_standing(session, "bob", 8)

    assert standing["has_pending_access_request"] is False
    assert standing["belongs_to_one_or_more_projects"] is True


class TestApprove:
    @pytest.mark.asyncio
    async def test_approve_provisions_requester_and_grants_roles(self):
        activity = _activity()
        session = _session(activity)
        requester = make_system_user(id=12, identifier="bob", source=IdentitySource.BCEIDBASIC)
        granted = make_system_user(
            id=12, identifier="bob", source=IdentitySource.BCEIDBASIC, roles=["Creator"]
        )

        with (
            patch(ENSURE, new_callable=AsyncMock, return_value=requester) as ensure,
            patch(ADD_ROLES, new_callable=AsyncMock) as add_roles,
            patch(GET_USER, new_callable=AsyncMock, return_value=granted) as reread,
        ):
            result = await approve_access_request(session, 3, [2], acting_user_id=1)

        # the requester is re-read so the granted roles are included
        assert result == (activity, granted)
        assert result[1].role_names == ["Creator"]
        reread.assert_awaited_once_with(session, 12)
        assert activity.status == AdministrativeActivityStatus.ACTIONED
        assert activity.assigned_system_user_id == 1
        assert activity.update_date is not None
        ensure.assert_awaited_once()
        args, kwargs = ensure.call_args
        assert args[1:] == ("bob-guid", "bob", IdentitySource.BCEIDBASIC)
        assert kwargs["acting_user_id"] == 1
        assert kwargs["email"] == "bob@example.com"
        add_roles.assert_awaited_once_with(session, 12, [2])

    @pytest.mark.asyncio
    async def test_approve_without_roles_grants_none(self):
        session = _session(_activity())

        with (
            patch(ENSURE, new_callable=AsyncMock, return_value=make_system_user(id=12)),
            patch(ADD_ROLES, new_callable=AsyncMock) as add_roles,
        ):
            await approve_access_request(session, 3, [], acting_user_id=1)
        add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_approve_actioned_request_conflicts(self):
        session = _session(_activity(status=AdministrativeActivityStatus.ACTIONED))

        with patch(ENSURE, new_callable=AsyncMock) as ensure:
            with pytest.raises(InvalidStatusTransitionError):
                await approve_access_request(session, 3, [2], acting_user_id=1)
        ensure.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_approve_with_bad_identity_source(self):
        session = _session(_activity(identitySource="myspace"))

        with pytest.raises(ValueError, match="invalid identity source"):
            await approve_access_request(session, 3, [2], acting_user_id=1)

    @pytest.mark.asyncio
    async def test_approve_unknown_activity(self):
        assert await approve_access_request(_session(None), 3, [2], acting_user_id=1) is None


class TestReject:
    @pytest.mark.asyncio
    async def test_reject_pending(self):
        activity = _activity()
        session = _session(activity)

        assert await reject_access_request(session, 3, acting_user_id=1) is activity
        assert activity.status == AdministrativeActivityStatus.REJECTED
        session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reject_rejected_conflicts(self):
        session = _session(_activity(status=AdministrativeActivityStatus.REJECTED))

        with pytest.raises(InvalidStatusTransitionError):
            await reject_access_request(session, 3, acting_user_id=1)
        session.flush.assert_not_awaited()
