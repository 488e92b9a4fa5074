"""HTTP tests for the authorization gates and the routes they protect."""

import unittest
from typing import Annotated
from unittest.mock import MagicMock

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.api.v1.deps import AuthContext, require_any_permission, require_minimum_role
from app.core.database import get_db
from app.core.errors import register_exception_handlers
from app.models import Role, User
from app.services.presence import presence
from tests.support import ApiTestCase, make_user, override_get_db, session_ids


def build_gated_app() -> FastAPI:
    """A small app whose routes sit behind the any-permission and minimum-level gates."""
    gated = FastAPI()
    register_exception_handlers(gated)

    @gated.get("/reports")
    def reports(
        ctx: Annotated[
            AuthContext, Depends(require_any_permission(["user:read:all", "system:admin"]))
        ],
    ) -> dict:
        return {"user_id": ctx.user.id}

    @gated.get("/team")
    def team(ctx: Annotated[AuthContext, Depends(require_minimum_role(5))]) -> dict:
        return {"user_id": ctx.user.id}

    gated.dependency_overrides[get_db] = override_get_db
    return gated


class TestPermissionGate(ApiTestCase, unittest.TestCase):
    def test_missing_session_is_401_not_403(self) -> None:
        resp = self.client.get("/api/v1/users")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "NO_SESSION")

    def test_insufficient_permission_names_requirement(self) -> None:
        make_user(self.db, "alice", "user")
        s = self.login_ok("alice")
        resp = self.client.get("/api/v1/users", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "INSUFFICIENT_PERMISSIONS")
        self.assertEqual(resp.json()["required"], "user:read:all")

    def test_granted_permission_passes(self) -> None:
        make_user(self.db, "mia", "manager")
        make_user(self.db, "alice", "user")
        s = self.login_ok("mia")
        resp = self.client.get("/api/v1/users", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual({u["username"] for u in resp.json()["users"]}, {"mia", "alice"})

    def test_permission_revoked_mid_session(self) -> None:
        manager = make_user(self.db, "mia", "manager")
        s = self.login_ok("mia")
        role = self.db.get(Role, manager.role_id)
        role.permissions = [p for p in role.permissions if p != "user:read:all"]
        self.db.commit()
        resp = self.client.get("/api/v1/users", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 403)

    def test_deleted_role_fails_closed(self) -> None:
        admin = make_user(self.db, "root", "admin")
        s = self.login_ok("root")
        self.db.query(Role).filter(Role.id == admin.role_id).delete(synchronize_session=False)
        self.db.commit()
        resp = self.client.get("/api/v1/users", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 403)


class TestAnyPermissionGate(ApiTestCase, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.gated = TestClient(build_gated_app())

    def test_missing_session_is_401(self) -> None:
        resp = self.gated.get("/reports")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "NO_SESSION")

    def test_denied_lists_every_alternative(self) -> None:
        make_user(self.db, "alice", "user")
        s = self.login_ok("alice")
        resp = self.gated.get("/reports", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "INSUFFICIENT_PERMISSIONS")
        self.assertEqual(resp.json()["required"], ["user:read:all", "system:admin"])

    def test_one_matching_permission_passes(self) -> None:
        manager = make_user(self.db, "mia", "manager")
        s = self.login_ok("mia")
        resp = self.gated.get("/reports", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user_id"], manager.id)


class TestMinimumRoleGate(ApiTestCase, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.gated = TestClient(build_gated_app())

    def test_missing_session_is_401(self) -> None:
        self.assertEqual(self.gated.get("/team").status_code, 401)

    def test_lower_level_is_rejected(self) -> None:
        make_user(self.db, "alice", "user")
        s = self.login_ok("alice")
        resp = self.gated.get("/team", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "INSUFFICIENT_ROLE")
        self.assertEqual(resp.json()["required"], "Minimum level 5")

    def test_equal_or_higher_level_passes(self) -> None:
        make_user(self.db, "mia", "manager")
        make_user(self.db, "root", "admin")
        for name in ("mia", "root"):
            s = self.login_ok(name)
            self.assertEqual(self.gated.get("/team", headers=self.auth_headers(s)).status_code, 200)


class TestRoleGate(ApiTestCase, unittest.TestCase):
    def test_manager_is_not_admin(self) -> None:
        make_user(self.db, "mia", "manager")
        s = self.login_ok("mia")
        resp = self.client.get("/api/v1/admin/sessions", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "INSUFFICIENT_ROLE")
        self.assertEqual(resp.json()["required"], "admin")

    def test_admin_lists_every_session(self) -> None:
        make_user(self.db, "root", "admin")
        alice = make_user(self.db, "alice", "user")
        admin_session = self.login_ok("root")
        self.login_ok("alice")
        resp = self.client.get("/api/v1/admin/sessions", headers=self.auth_headers(admin_session))
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(len(body["sessions"]), 2)
        self.assertIn(alice.id, {s["user_id"] for s in body["sessions"]})
        self.assertEqual(sum(s["is_current"] for s in body["sessions"]), 1)

    def test_admin_view_reports_presence(self) -> None:
        make_user(self.db, "root", "admin")
        alice = make_user(self.db, "alice", "user")
        admin_session = self.login_ok("root")
        self.login_ok("alice")
        presence.add(alice.id, MagicMock())
        resp = self.client.get("/api/v1/admin/sessions", headers=self.auth_headers(admin_session))
        online = {s["user_id"]: s["online"] for s in resp.json()["sessions"]}
        self.assertTrue(online[alice.id])
        self.assertEqual(sum(online.values()), 1)

    def test_admin_terminates_user_sessions(self) -> None:
        make_user(self.db, "root", "admin")
        alice = make_user(self.db, "alice", "user")
        admin_session = self.login_ok("root")
        self.login_ok("alice")
        self.login_ok("alice")
        resp = self.client.delete(
            f"/api/v1/admin/users/{alice.id}/sessions", headers=self.auth_headers(admin_session)
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["deleted_count"], 2)
        self.assertEqual(session_ids(self.db, alice.id), set())

    def test_admin_terminates_all_sessions(self) -> None:
        root = make_user(self.db, "root", "admin")
        make_user(self.db, "alice", "user")
        admin_session = self.login_ok("root")
        self.login_ok("alice")
        resp = self.client.delete("/api/v1/admin/sessions", headers=self.auth_headers(admin_session))
        self.assertEqual(resp.json()["deleted_count"], 2)
        self.assertEqual(session_ids(self.db, root.id), set())


class TestMySessions(ApiTestCase, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user = make_user(self.db, "alice")

    def test_list_flags_current_and_reports_cap(self) -> None:
        s1 = self.login_ok("alice")
        s2 = self.login_ok("alice")
        resp = self.client.get("/api/v1/sessions", headers=self.auth_headers(s2))
        body = resp.json()
        self.assertEqual(body["max_sessions"], 2)
        current = {s["session_id"]: s["is_current"] for s in body["sessions"]}
        self.assertEqual(current, {s1["session_id"]: False, s2["session_id"]: True})

    def test_terminate_other_session(self) -> None:
        s1 = self.login_ok("alice")
        s2 = self.login_ok("alice")
        resp = self.client.delete(
            f"/api/v1/sessions/{s1['session_id']}", headers=self.auth_headers(s2)
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(session_ids(self.db, self.user.id), {s2["session_id"]})

    def test_cannot_terminate_current_session(self) -> None:
        s1 = self.login_ok("alice")
        resp = self.client.delete(
            f"/api/v1/sessions/{s1['session_id']}", headers=self.auth_headers(s1)
        )
        self.assertEqual(resp.status_code, 400)

    def test_cannot_terminate_someone_elses_session(self) -> None:
        make_user(self.db, "bob")
        mine = self.login_ok("alice")
        theirs = self.login_ok("bob")
        resp = self.client.delete(
            f"/api/v1/sessions/{theirs['session_id']}", headers=self.auth_headers(mine)
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.client.get("/api/v1/sessions/check", headers=self.auth_headers(theirs)).status_code, 200)


class TestRoleManagement(ApiTestCase, unittest.TestCase):
    def test_list_roles_requires_session(self) -> None:
        self.assertEqual(self.client.get("/api/v1/roles").status_code, 401)
        make_user(self.db, "alice")
        s = self.login_ok("alice")
        resp = self.client.get("/api/v1/roles", headers=self.auth_headers(s))
        self.assertEqual({r["name"] for r in resp.json()}, {"admin", "manager", "user"})

    def test_create_duplicate_role_conflicts(self) -> None:
        make_user(self.db, "root", "admin")
        s = self.login_ok("root")
        resp = self.client.post(
            "/api/v1/roles",
            json={"name": "manager", "display_name": "Manager"},
            headers=self.auth_headers(s),
        )
        self.assertEqual(resp.status_code, 409)

    def test_unknown_permission_is_rejected(self) -> None:
        make_user(self.db, "root", "admin")
        s = self.login_ok("root")
        resp = self.client.put(
            "/api/v1/roles/1",
            json={"permissions": ["task:read:own", "task:fly"]},
            headers=self.auth_headers(s),
        )
        self.assertEqual(resp.status_code, 422)

    def test_update_role(self) -> None:
        make_user(self.db, "root", "admin")
        s = self.login_ok("root")
        role = self.db.query(Role).filter(Role.name == "user").one()
        resp = self.client.put(
            f"/api/v1/roles/{role.id}",
            json={"permissions": ["task:read:own", "task:read:own"], "display_name": "Member"},
            headers=self.auth_headers(s),
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["role"]["permissions"], ["task:read:own"])
        self.assertEqual(resp.json()["role"]["display_name"], "Member")

    def test_manager_assigns_user_role_but_not_admin(self) -> None:
        make_user(self.db, "mia", "manager")
        alice = make_user(self.db, "alice", None)
        s = self.login_ok("mia")
        user_role = self.db.query(Role).filter(Role.name == "user").one()
        admin_role = self.db.query(Role).filter(Role.name == "admin").one()

        ok = self.client.post(
            "/api/v1/roles/assign",
            json={"user_id": alice.id, "role_id": user_role.id},
            headers=self.auth_headers(s),
        )
        self.assertEqual(ok.status_code, 200, ok.text)
        self.assertEqual(ok.json()["user"]["role_id"], user_role.id)

        denied = self.client.post(
            "/api/v1/roles/assign",
            json={"user_id": alice.id, "role_id": admin_role.id},
            headers=self.auth_headers(s),
        )
        self.assertEqual(denied.status_code, 403)
        self.assertEqual(denied.json()["required"], "admin")

    def test_manager_cannot_change_a_higher_ranked_users_role(self) -> None:
        make_user(self.db, "mia", "manager")
        root = make_user(self.db, "root", "admin")
        s = self.login_ok("mia")
        user_role = self.db.query(Role).filter(Role.name == "user").one()
        admin_role_id = root.role_id

        resp = self.client.post(
            "/api/v1/roles/assign",
            json={"user_id": root.id, "role_id": user_role.id},
            headers=self.auth_headers(s),
        )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["required"], "role:assign")
        self.db.expire_all()
        self.assertEqual(self.db.get(User, root.id).role_id, admin_role_id)

    def test_manager_can_change_a_peer_managers_role(self) -> None:
        make_user(self.db, "mia", "manager")
        peer = make_user(self.db, "max", "manager")
        s = self.login_ok("mia")
        user_role = self.db.query(Role).filter(Role.name == "user").one()
        resp = self.client.post(
            "/api/v1/roles/assign",
            json={"user_id": peer.id, "role_id": user_role.id},
            headers=self.auth_headers(s),
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["user"]["role_id"], user_role.id)


class TestUserAdministration(ApiTestCase, unittest.TestCase):
    def test_me_reports_role_and_permissions(self) -> None:
        make_user(self.db, "alice")
        s = self.login_ok("alice")
        body = self.client.get("/api/v1/users/me", headers=self.auth_headers(s)).json()
        self.assertEqual(body["user"]["username"], "alice")
        self.assertEqual(body["role"], "user")
        self.assertIn("task:read:own", body["permissions"])

    def test_soft_delete_terminates_sessions_and_blocks_login(self) -> None:
        make_user(self.db, "root", "admin")
        alice = make_user(self.db, "alice")
        admin_session = self.login_ok("root")
        alice_session = self.login_ok("alice")

        resp = self.client.delete(f"/api/v1/users/{alice.id}", headers=self.auth_headers(admin_session))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            self.client.get("/api/v1/sessions/check", headers=self.auth_headers(alice_session)).status_code,
            401,
        )
        self.assertEqual(self.login("alice").status_code, 401)

        resp = self.client.post(
            f"/api/v1/users/{alice.id}/restore", headers=self.auth_headers(admin_session)
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.login("alice").status_code, 200)

    def test_delete_unknown_user(self) -> None:
        make_user(self.db, "root", "admin")
        s = self.login_ok("root")
        resp = self.client.delete("/api/v1/users/9999", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["code"], "USER_NOT_FOUND")

    def test_delete_respects_hierarchy(self) -> None:
        self.db.add(
            Role(
                name="moderator",
                display_name="Moderator",
                permissions=["user:delete:all"],
                hierarchy_level=5,
                is_active=True,
            )
        )
        self.db.commit()
        make_user(self.db, "mod", "moderator")
        root = make_user(self.db, "root", "admin")
        alice = make_user(self.db, "alice")
        s = self.login_ok("mod")

        denied = self.client.delete(f"/api/v1/users/{root.id}", headers=self.auth_headers(s))
        self.assertEqual(denied.status_code, 403)
        self.assertEqual(denied.json()["required"], "user:delete:all")
        self.assertEqual(denied.json()["context"], f"for user {root.id}")
        self.db.expire_all()
        self.assertFalse(self.db.get(User, root.id).is_deleted)

        ok = self.client.delete(f"/api/v1/users/{alice.id}", headers=self.auth_headers(s))
        self.assertEqual(ok.status_code, 200, ok.text)

    def test_delete_non_numeric_id_is_rejected(self) -> None:
        make_user(self.db, "root", "admin")
        s = self.login_ok("root")
        resp = self.client.delete("/api/v1/users/abc", headers=self.auth_headers(s))
        self.assertEqual(resp.status_code, 422)


class TestRegistration(ApiTestCase, unittest.TestCase):
    PAYLOAD = {
        "first_name": "Dana",
        "last_name": "Lee",
        "username": "Dana",
        "email": "Dana@Example.com",
        "password": "a-strong-password",
    }

    def test_register_verify_then_login(self) -> None:
        resp = self.client.post("/api/v1/users/register", json=self.PAYLOAD)
        self.assertEqual(resp.status_code, 201, resp.text)
        self.assertFalse(resp.json()["user"]["is_verified"])
        self.assertEqual(resp.json()["user"]["email"], "dana@example.com")

        self.assertEqual(self.login("dana", "a-strong-password").status_code, 403)

        to, token = self.email.verifications[-1]
        self.assertEqual(to, "dana@example.com")
        self.assertEqual(self.client.get(f"/api/v1/auth/verify-email/{token}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/v1/auth/verify-email/{token}").status_code, 400)
        self.assertEqual(self.login("dana", "a-strong-password").status_code, 200)

    def test_duplicate_registration_conflicts(self) -> None:
        self.client.post("/api/v1/users/register", json=self.PAYLOAD)
        resp = self.client.post("/api/v1/users/register", json=self.PAYLOAD)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["code"], "USER_EXISTS")
        self.assertEqual(self.db.query(User).count(), 1)

    def test_resend_verification_is_generic(self) -> None:
        self.client.post("/api/v1/users/register", json=self.PAYLOAD)
        known = self.client.post("/api/v1/auth/resend-verification", json={"email": "dana@example.com"})
        unknown = self.client.post("/api/v1/auth/resend-verification", json={"email": "x@example.com"})
        self.assertEqual(known.json(), unknown.json())
        self.assertEqual(len(self.email.verifications), 2)


if __name__ == "__main__":
    unittest.main()
