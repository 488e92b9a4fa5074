"""Tests for app.services.maintenance and the public/admin maintenance routes."""

import unittest
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from app.models import SystemSetting
from app.services.maintenance import (
    get_maintenance_status,
    maintenance_status_or_none,
    set_maintenance_status,
)
from tests.support import ApiTestCase, TestingSessionLocal, make_user, reset_database


class TestMaintenanceService(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.db = TestingSessionLocal()

    def tearDown(self) -> None:
        self.db.close()

    def test_singleton_created_on_first_read(self) -> None:
        status = get_maintenance_status(self.db)
        self.assertFalse(status.active)
        get_maintenance_status(self.db)
        self.assertEqual(self.db.query(SystemSetting).count(), 1)

    def test_set_records_message_and_actor(self) -> None:
        admin = make_user(self.db, "root", "admin")
        status = set_maintenance_status(self.db, True, "Upgrading", admin.id)
        self.assertTrue(status.active)
        self.assertEqual(status.message, "Upgrading")
        row = self.db.query(SystemSetting).one()
        self.assertEqual(row.updated_by, admin.id)

    def test_message_kept_when_not_supplied(self) -> None:
        set_maintenance_status(self.db, True, "Upgrading", None)
        status = set_maintenance_status(self.db, False, None, None)
        self.assertFalse(status.active)
        self.assertEqual(status.message, "Upgrading")


class TestMaintenanceFailOpen(unittest.TestCase):
    def test_lookup_error_returns_none(self) -> None:
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        self.assertIsNone(maintenance_status_or_none(db))
        db.rollback.assert_called_once()


class TestMaintenanceRoutes(ApiTestCase, unittest.TestCase):
    def test_public_status_and_admin_toggle(self) -> None:
        resp = self.client.get("/api/v1/system/maintenance")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["active"])

        make_user(self.db, "root", "admin")
        s = self.login_ok("root")
        resp = self.client.post(
            "/api/v1/admin/system/maintenance",
            json={"active": True, "message": "Back soon"},
            headers=self.auth_headers(s),
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        public = self.client.get("/api/v1/system/maintenance").json()
        self.assertTrue(public["active"])
        self.assertEqual(public["message"], "Back soon")

    def test_non_admin_cannot_toggle(self) -> None:
        make_user(self.db, "alice")
        s = self.login_ok("alice")
        resp = self.client.post(
            "/api/v1/admin/system/maintenance",
            json={"active": True},
            headers=self.auth_headers(s),
        )
        self.assertEqual(resp.status_code, 403)


if __name__ == "__main__":
    unittest.main()
