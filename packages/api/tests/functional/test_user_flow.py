# This project was developed with assistance from AI tools.
"""Functional tests: system user administration."""

import pytest

from ..factories import make_orm_user, make_participant_row
from .mock_db import make_mock_session
from .personas import (
    COORDINATOR_USER_ID,
    PROJECT_ID,
    coordinator,
    data_admin,
    newcomer,
    service_client,
)

pytestmark = pytest.mark.functional


class TestSelf:
    def test_self_returns_resolved_user(self, make_client):
        client = make_client(coordinator(), make_mock_session())

        resp = client.get("/api/user/self")
        assert resp.status_code == 200
        assert resp.json()["id"] == COORDINATOR_USER_ID
        assert resp.json()["identity_source"] == "IDIR"

    def test_service_client_has_no_self(self, make_client):
        client = make_client(service_client(), make_mock_session())

        assert client.get("/api/user/self").status_code == 403


class TestAdministration:
    def test_data_admin_lists_users(self, make_client):
        users = [make_orm_user(id=3, identifier="bob"), make_orm_user(id=4, identifier="carol")]
        client = make_client(data_admin(), make_mock_session(items=users))

        resp = client.get("/api/user")
        assert resp.status_code == 200
        assert [u["user_identifier"] for u in resp.json()] == ["bob", "carol"]

    def test_plain_user_cannot_list(self, make_client):
        client = make_client(newcomer(), make_mock_session())

        assert client.get("/api/user").status_code == 403

    def test_unknown_user_is_not_found(self, make_client):
        client = make_client(data_admin(), make_mock_session(single=None))

        assert client.get("/api/user/999").status_code == 404

    def test_replace_roles(self, make_client):
        user = make_orm_user(id=3, identifier="bob", roles=["Creator"])
        session = make_mock_session(single=user, items=[3])
        client = make_client(data_admin(), session)

        resp = client.put("/api/user/3/system-roles", json={"role_ids": [3]})
        assert resp.status_code == 200
        assert resp.json()["role_names"] == ["Creator"]
        session.commit.assert_awaited_once()

    def test_replace_with_unknown_role_is_rejected(self, make_client):
        user = make_orm_user(id=3, identifier="bob", roles=["Creator"])
        session = make_mock_session(single=user, items=[3])
        client = make_client(data_admin(), session)

        resp = client.put("/api/user/3/system-roles", json={"role_ids": [3, 999]})
        assert resp.status_code == 400
        assert "Unknown system role: 999" in resp.json()["detail"]
        session.commit.assert_not_awaited()

    def test_register_user_with_roles(self, make_client):
        user = make_orm_user(id=3, identifier="bob", guid="bob-guid", roles=["Creator"])
        session = make_mock_session(single=user, items=[3])
        client = make_client(data_admin(), session)

        resp = client.post(
            "/api/user",
            json={"user_identifier": "bob", "identity_source": "IDIR", "role_ids": [3]},
        )
        assert resp.status_code == 201
        assert resp.json()["id"] == 3
        session.commit.assert_awaited_once()

    def test_register_user_with_unknown_role_is_rejected(self, make_client):
        user = make_orm_user(id=3, identifier="bob", guid="bob-guid")
        session = make_mock_session(single=user, items=[])
        client = make_client(data_admin(), session)

        resp = client.post(
            "/api/user",
            json={"user_identifier": "bob", "identity_source": "IDIR", "role_ids": [999]},
        )
        assert resp.status_code == 400
        session.commit.assert_not_awaited()

    def test_sole_coordinator_cannot_be_removed(self, make_client):
        rows = [
            make_participant_row(
                participation_id=10, project_id=PROJECT_ID, system_user_id=COORDINATOR_USER_ID
            )
        ]
        session = make_mock_session(rows=rows, get=make_orm_user(id=COORDINATOR_USER_ID))
        client = make_client(data_admin(), session)

        resp = client.delete(f"/api/user/{COORDINATOR_USER_ID}")
        assert resp.status_code == 400
        assert "only Coordinator" in resp.json()["detail"]
        session.commit.assert_not_awaited()

    def test_remove_user_without_projects(self, make_client):
        orm_user = make_orm_user(id=3)
        session = make_mock_session(rows=[], get=orm_user)
        client = make_client(data_admin(), session)

        assert client.delete("/api/user/3").status_code == 204
        assert orm_user.record_end_date is not None
        session.commit.assert_awaited_once()
