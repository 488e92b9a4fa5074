"""Tests for the bootstrap user script and the health endpoint."""

import unittest

from app.core.security import verify_password
from app.models import User
from app.scripts.create_user import create_user
from tests.support import ApiTestCase, TestingSessionLocal, reset_database


class TestCreateUserScript(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.db = TestingSessionLocal()

    def tearDown(self) -> None:
        self.db.close()

    def test_creates_verified_admin(self) -> None:
        user = create_user(self.db, "Root", "Root@Example.com", "bootstrap-pass", "admin")
        self.db.commit()
        stored = self.db.query(User).filter(User.username == "root").one()
        self.assertEqual(stored.id, user.id)
        self.assertEqual(stored.email, "root@example.com")
        self.assertTrue(stored.is_verified)
        self.assertEqual(stored.role.name, "admin")
        self.assertTrue(verify_password("bootstrap-pass", stored.password_hash))

    def test_rejects_duplicates_and_bad_input(self) -> None:
        create_user(self.db, "root", "root@example.com", "bootstrap-pass", "admin")
        self.db.commit()
        with self.assertRaises(ValueError):
            create_user(self.db, "root", "other@example.com", "bootstrap-pass", "admin")
        with self.assertRaises(ValueError):
            create_user(self.db, "ok-name", "not-an-email", "bootstrap-pass", "user")
        with self.assertRaises(ValueError):
            create_user(self.db, "ok-name", "ok@example.com", "short", "user")


class TestHealth(ApiTestCase, unittest.TestCase):
    def test_health_needs_no_session(self) -> None:
        resp = self.client.get("/api/v1/health/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")
        self.assertEqual(body["realtime_connections"], 0)


if __name__ == "__main__":
    unittest.main()
