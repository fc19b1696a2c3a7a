import unittest
from datetime import date

from app.services.request_filters import (
    EMPTY_NO_MATCHES,
    EMPTY_NO_REQUESTS,
    InvalidFilter,
    RequestFilters,
    filter_requests,
)

TODAY = date(2026, 3, 10)


def _row(row_id, *, status="pending", day="2026-03-10", emergency=False):
    return {"id": row_id, "status": status, "date": day, "is_emergency": emergency}


# Newest first, as delivered by the store.
SNAPSHOT = [
    _row("r5", status="booked", day="2026-03-10", emergency=True),
    _row("r4", status="pending", day="2026-03-10T08:30"),
    _row("r3", status="cancelled", day="2026-03-09", emergency=True),
    _row("r2", status=None, day="2026-03-09"),
    _row("r1", status="completed", day="2026-02-28"),
]


def _ids(view):
    return [row["id"] for row in view.rows]


class RequestFilterEngineTests(unittest.TestCase):
    def test_defaults_show_today_newest_first(self):
        view = filter_requests(SNAPSHOT, RequestFilters(), today=TODAY)
        self.assertEqual(_ids(view), ["r5", "r4"])
        self.assertEqual(view.total, 5)
        self.assertEqual(view.matched, 2)
        self.assertIsNone(view.empty_reason)

    def test_all_dates_keeps_input_order(self):
        view = filter_requests(SNAPSHOT, RequestFilters(date_filter="all"), today=TODAY)
        self.assertEqual(_ids(view), ["r5", "r4", "r3", "r2", "r1"])

    def test_ascending_is_reverse_of_descending(self):
        desc = filter_requests(SNAPSHOT, RequestFilters(date_filter="all"), today=TODAY)
        asc = filter_requests(SNAPSHOT, RequestFilters(date_filter="all", sort="asc"), today=TODAY)
        self.assertEqual(_ids(asc), list(reversed(_ids(desc))))

    def test_filter_does_not_mutate_snapshot(self):
        before = list(SNAPSHOT)
        filter_requests(SNAPSHOT, RequestFilters(date_filter="all", sort="asc"), today=TODAY)
        self.assertEqual(SNAPSHOT, before)

    def test_yesterday(self):
        view = filter_requests(SNAPSHOT, RequestFilters(date_filter="yesterday"), today=TODAY)
        self.assertEqual(_ids(view), ["r3", "r2"])

    def test_missing_status_counts_as_pending(self):
        view = filter_requests(SNAPSHOT, RequestFilters(status="pending", date_filter="all"), today=TODAY)
        self.assertEqual(_ids(view), ["r4", "r2"])

    def test_emergency_filters_partition_the_list(self):
        urgent = filter_requests(SNAPSHOT, RequestFilters(emergency="emergency", date_filter="all"), today=TODAY)
        routine = filter_requests(SNAPSHOT, RequestFilters(emergency="nonEmergency", date_filter="all"), today=TODAY)
        self.assertEqual(_ids(urgent), ["r5", "r3"])
        self.assertEqual(_ids(routine), ["r4", "r2", "r1"])

    def test_range_bounds_are_inclusive(self):
        view = filter_requests(
            SNAPSHOT,
            RequestFilters(date_filter="range", date_from="2026-03-09", date_to="2026-03-09"),
            today=TODAY,
        )
        self.assertEqual(_ids(view), ["r3", "r2"])

    def test_range_with_one_bound(self):
        view = filter_requests(SNAPSHOT, RequestFilters(date_filter="range", date_from="2026-03-01"), today=TODAY)
        self.assertEqual(_ids(view), ["r5", "r4", "r3", "r2"])
        view = filter_requests(SNAPSHOT, RequestFilters(date_filter="range", date_to="2026-03-01"), today=TODAY)
        self.assertEqual(_ids(view), ["r1"])

    def test_range_without_bounds_keeps_everything(self):
        view = filter_requests(SNAPSHOT, RequestFilters(date_filter="range"), today=TODAY)
        self.assertEqual(view.matched, 5)

    def test_filters_combine(self):
        view = filter_requests(
            SNAPSHOT,
            RequestFilters(status="cancelled", emergency="emergency", date_filter="yesterday"),
            today=TODAY,
        )
        self.assertEqual(_ids(view), ["r3"])

    def test_attribute_rows_are_supported(self):
        class Row:
            def __init__(self, **kwargs):
                self.__dict__.update(kwargs)

        rows = [Row(id="a", status="offered", date="2026-03-10", is_emergency=False)]
        view = filter_requests(rows, RequestFilters(status="offered"), today=TODAY)
        self.assertEqual(view.matched, 1)

    def test_empty_snapshot_reports_no_requests(self):
        view = filter_requests([], RequestFilters(), today=TODAY)
        self.assertEqual(view.rows, [])
        self.assertEqual(view.empty_reason, EMPTY_NO_REQUESTS)
        self.assertTrue(view.empty_message)

    def test_everything_filtered_out_reports_no_matches(self):
        view = filter_requests(SNAPSHOT, RequestFilters(status="offered", date_filter="all"), today=TODAY)
        self.assertEqual(view.rows, [])
        self.assertEqual(view.empty_reason, EMPTY_NO_MATCHES)
        self.assertNotEqual(view.empty_message, filter_requests([], RequestFilters(), today=TODAY).empty_message)

    def test_sort_toggled_twice_restores_order(self):
        filters = RequestFilters(date_filter="all")
        once = filters.with_sort_toggled()
        twice = once.with_sort_toggled()
        self.assertEqual(once.sort, "asc")
        self.assertEqual(twice, filters)
        self.assertEqual(
            _ids(filter_requests(SNAPSHOT, once, today=TODAY)),
            ["r1", "r2", "r3", "r4", "r5"],
        )
        self.assertEqual(_ids(filter_requests(SNAPSHOT, twice, today=TODAY)), _ids(filter_requests(SNAPSHOT, filters, today=TODAY)))

    def test_range_excludes_rows_without_a_date(self):
        rows = [
            {"id": "jan", "status": "pending", "date": "2024-01-15", "is_emergency": False},
            {"id": "feb", "status": "pending", "date": "2024-02-01", "is_emergency": False},
            {"id": "blank", "status": "pending", "date": "", "is_emergency": False},
            {"id": "nodate", "status": "pending", "is_emergency": False},
        ]
        view = filter_requests(
            rows,
            RequestFilters(date_filter="range", date_from="2024-01-01", date_to="2024-01-31"),
            today=TODAY,
        )
        self.assertEqual(_ids(view), ["jan"])
        only_from = filter_requests(rows, RequestFilters(date_filter="range", date_from="2024-01-01"), today=TODAY)
        self.assertEqual(_ids(only_from), ["jan", "feb"])

    def test_missing_status_and_emergency_keys(self):
        rows = [{"id": "bare", "date": "2026-03-10"}]
        self.assertEqual(_ids(filter_requests(rows, RequestFilters(status="pending"), today=TODAY)), ["bare"])
        self.assertEqual(_ids(filter_requests(rows, RequestFilters(emergency="nonEmergency"), today=TODAY)), ["bare"])
        urgent = filter_requests(rows, RequestFilters(emergency="emergency"), today=TODAY)
        self.assertEqual(urgent.empty_reason, EMPTY_NO_MATCHES)
        self.assertEqual(filter_requests(rows, RequestFilters(status="booked"), today=TODAY).matched, 0)

    def test_invalid_selections_are_rejected(self):
        for filters in (
            RequestFilters(status="archived"),
            RequestFilters(emergency="maybe"),
            RequestFilters(date_filter="tomorrow"),
            RequestFilters(sort="random"),  # type: ignore[arg-type]
            RequestFilters(date_filter="range", date_from="10/03/2026"),
        ):
            with self.assertRaises(InvalidFilter):
                filter_requests(SNAPSHOT, filters, today=TODAY)


if __name__ == "__main__":
    unittest.main()
