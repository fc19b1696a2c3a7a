import asyncio
import threading
import unittest
from datetime import date, datetime, timezone

from app.client.admin_board import LOAD_ERROR_MESSAGE, STATUS_ERROR_MESSAGE, AdminBoard
from app.services.request_feed import RequestFeed
from app.services.request_filters import RequestFilters
from app.services.request_store import RequestSnapshot

TODAY = date(2026, 3, 10)


def _snap(row_id, status="pending"):
    return RequestSnapshot(
        id=row_id,
        pickup_text="Λάρισα",
        dest_text="Βόλος",
        date="2026-03-10",
        time_from=None,
        time_to=None,
        ambulance_type=None,
        is_emergency=False,
        email=None,
        full_name=None,
        phone=None,
        comments=None,
        status=status,
        source="ambugo-web",
        public_token=None,
        created_at=datetime(2026, 3, 10, tzinfo=timezone.utc),
    )


class InMemoryStore:
    def __init__(self):
        self.rows = {"r1": "pending", "r2": "pending"}
        self.fail = False
        self.offline = False
        self.gate = None
        self.feed = None

    def load(self):
        if self.offline:
            raise RuntimeError("offline")
        return [_snap(row_id, status) for row_id, status in reversed(list(self.rows.items()))]

    def change(self, request_id, status):
        if self.gate is not None:
            self.gate.wait(timeout=2)
        if self.fail:
            raise RuntimeError("write failed")
        self.rows[request_id] = status
        self.feed.notify_changed()


class AdminBoardTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.store = InMemoryStore()
        self.feed = RequestFeed(self.store.load)
        self.store.feed = self.feed
        self.board = AdminBoard(self.feed, self.store.change)
        self.board.open()

    async def asyncTearDown(self):
        self.board.close()

    async def test_open_loads_snapshot(self):
        self.assertFalse(self.board.loading)
        view = self.board.view(TODAY)
        self.assertEqual([row.id for row in view.rows], ["r2", "r1"])

    async def test_status_change_arrives_through_feed(self):
        ok = await self.board.change_status("r1", "booked")
        self.assertTrue(ok)
        statuses = {row.id: row.status for row in self.board.snapshot}
        self.assertEqual(statuses["r1"], "booked")
        self.assertEqual(self.board.updating_ids, set())

    async def test_row_in_flight_cannot_be_edited_again(self):
        self.store.gate = threading.Event()
        first = asyncio.create_task(self.board.change_status("r1", "booked"))
        await asyncio.sleep(0.02)
        self.assertFalse(self.board.can_edit("r1"))
        self.assertTrue(self.board.can_edit("r2"))
        self.assertFalse(await self.board.change_status("r1", "cancelled"))
        self.store.gate.set()
        self.assertTrue(await first)
        self.assertTrue(self.board.can_edit("r1"))
        self.assertEqual(self.store.rows["r1"], "booked")

    async def test_failed_change_keeps_prior_status_and_shows_banner(self):
        self.store.fail = True
        ok = await self.board.change_status("r1", "booked")
        self.assertFalse(ok)
        self.assertEqual(self.board.error_message, STATUS_ERROR_MESSAGE)
        self.assertEqual({row.id: row.status for row in self.board.snapshot}["r1"], "pending")
        self.assertTrue(self.board.can_edit("r1"))

    async def test_unknown_status_is_refused_locally(self):
        self.assertFalse(await self.board.change_status("r1", "archived"))
        self.assertEqual(self.store.rows["r1"], "pending")

    async def test_feed_error_keeps_loaded_rows(self):
        loaded = self.board.snapshot
        self.store.offline = True
        self.feed.notify_changed()
        self.assertEqual(self.board.error_message, LOAD_ERROR_MESSAGE)
        self.assertEqual(self.board.snapshot, loaded)
        self.board.dismiss_error()
        self.assertIsNone(self.board.error_message)

    async def test_filters_apply_to_view(self):
        await self.board.change_status("r2", "offered")
        self.board.set_filters(RequestFilters(status="offered"))
        self.assertEqual([row.id for row in self.board.view(TODAY).rows], ["r2"])

    async def test_sort_toggle_reverses_order_only(self):
        newest_first = [row.id for row in self.board.view(TODAY).rows]
        self.board.toggle_sort()
        self.assertEqual(self.board.filters.sort, "asc")
        self.assertEqual([row.id for row in self.board.view(TODAY).rows], ["r1", "r2"])
        self.board.toggle_sort()
        self.assertEqual([row.id for row in self.board.view(TODAY).rows], newest_first)

    async def test_close_releases_subscription(self):
        self.assertEqual(self.feed.subscriber_count, 1)
        self.board.close()
        self.board.close()
        self.assertEqual(self.feed.subscriber_count, 0)
        self.assertFalse(self.board.is_open)


if __name__ == "__main__":
    unittest.main()
