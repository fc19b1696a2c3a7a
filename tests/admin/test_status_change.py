from unittest.mock import patch

from tests.admin.base import *  # noqa: F401,F403
from app.services.request_store import StoreError


class AdminStatusChangeTests(AdminRequestsBase):
    def test_pending_to_booked_reaches_next_snapshot(self):
        row = self._create_request()
        snapshots = []
        unsubscribe = self.feed.subscribe(snapshots.append)
        try:
            response = self.client.patch(f"/api/admin/requests/{row.id}/status", json={"status": "booked"})
        finally:
            unsubscribe()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok", "request_id": str(row.id), "new_status": "booked"})
        self.assertEqual(self._status_of(row.id), "booked")
        self.assertEqual(snapshots[0][0].status, "pending")
        self.assertEqual(snapshots[-1][0].status, "booked")

    def test_only_status_changes(self):
        row = self._create_request(comments="σχόλιο")
        self.client.patch(f"/api/admin/requests/{row.id}/status", json={"status": "cancelled"})
        detail = self.client.get(f"/api/admin/requests/{row.id}").json()
        self.assertEqual(detail["status"], "cancelled")
        self.assertEqual(detail["comments"], "σχόλιο")
        self.assertEqual(detail["created_at"][:16], row.created_at.isoformat()[:16])

    def test_terminal_status_can_be_reopened(self):
        row = self._create_request(status="completed")
        with self.assertLogs("app.admin", level="WARNING") as logs:
            response = self.client.patch(f"/api/admin/requests/{row.id}/status", json={"status": "pending"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._status_of(row.id), "pending")
        self.assertIn("reopened", logs.output[0])

    def test_unknown_status_is_400(self):
        row = self._create_request()
        response = self.client.patch(f"/api/admin/requests/{row.id}/status", json={"status": "archived"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._status_of(row.id), "pending")

    def test_unknown_request_is_404(self):
        response = self.client.patch(f"/api/admin/requests/{uuid4()}/status", json={"status": "booked"})
        self.assertEqual(response.status_code, 404)

    def test_change_in_flight_for_same_row_is_409(self):
        row = self._create_request()
        other = self._create_request()
        with self.guard.hold(str(row.id)):
            blocked = self.client.patch(f"/api/admin/requests/{row.id}/status", json={"status": "booked"})
            allowed = self.client.patch(f"/api/admin/requests/{other.id}/status", json={"status": "booked"})
        self.assertEqual(blocked.status_code, 409)
        self.assertEqual(allowed.status_code, 200)
        self.assertEqual(self._status_of(row.id), "pending")
        self.assertFalse(self.guard.is_in_flight(str(row.id)))

    def test_store_failure_keeps_prior_status(self):
        row = self._create_request()
        with patch("app.api.admin.requests.update_status", side_effect=StoreError("down")):
            response = self.client.patch(f"/api/admin/requests/{row.id}/status", json={"status": "booked"})
        self.assertEqual(response.status_code, 503)
        self.assertEqual(self._status_of(row.id), "pending")
        self.assertFalse(self.guard.is_in_flight(str(row.id)))
