import os
import unittest
from unittest.mock import patch

import httpx

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

from app.services.geocoding import (
    GeocodeResult,
    GeocodingError,
    GoogleMapsGeocoder,
    coordinates_text,
    is_plus_code_address,
    resolve_coordinates,
)

_RealClient = httpx.Client


class GoogleMapsGeocoderTests(unittest.TestCase):
    def setUp(self):
        self.requests = []
        self.reply = {"status": "OK", "results": []}
        self.status_code = 200

    def _handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.reply)

    def _patched_client(self):
        transport = httpx.MockTransport(self._handler)
        return patch(
            "app.services.geocoding.httpx.Client",
            side_effect=lambda **kwargs: _RealClient(transport=transport, **kwargs),
        )

    def _geocoder(self, **kwargs):
        params = {"api_key": "test-key", "language": "el", "countries": ["gr", "cy"], "timeout": 1.0}
        params.update(kwargs)
        return GoogleMapsGeocoder(**params)

    def test_geocode_returns_first_located_result(self):
        self.reply = {
            "status": "OK",
            "results": [
                {"formatted_address": "no geometry"},
                {"formatted_address": "Ερμού 1, Αθήνα", "geometry": {"location": {"lat": 37.976, "lng": 23.735}}},
            ],
        }
        with self._patched_client():
            result = self._geocoder().geocode("Ερμού 1")
        self.assertEqual(result, GeocodeResult(lat=37.976, lng=23.735, formatted="Ερμού 1, Αθήνα"))
        params = self.requests[0].url.params
        self.assertEqual(params["address"], "Ερμού 1")
        self.assertEqual(params["components"], "country:gr|country:cy")
        self.assertEqual(params["language"], "el")
        self.assertEqual(params["key"], "test-key")

    def test_geocode_zero_results_is_none(self):
        self.reply = {"status": "ZERO_RESULTS", "results": []}
        with self._patched_client():
            self.assertIsNone(self._geocoder().geocode("Nowhere"))

    def test_provider_errors_raise_geocoding_error(self):
        self.reply = {"status": "REQUEST_DENIED", "error_message": "bad key"}
        with self._patched_client():
            with self.assertRaises(GeocodingError):
                self._geocoder().geocode("Ερμού 1")

        self.status_code = 500
        self.reply = {}
        with self._patched_client():
            with self.assertRaises(GeocodingError):
                self._geocoder().geocode("Ερμού 1")

    def test_non_object_reply_is_a_geocoding_error(self):
        self.reply = []
        with self._patched_client():
            with self.assertRaises(GeocodingError):
                self._geocoder().geocode("Μαρούσι")
            self.assertEqual(resolve_coordinates(self._geocoder(), "Μαρούσι", None, None), (None, None))

    def test_missing_api_key_never_calls_provider(self):
        with self._patched_client():
            with self.assertRaises(GeocodingError):
                self._geocoder(api_key="").geocode("Ερμού 1")
        self.assertEqual(self.requests, [])

    def test_reverse_geocode_skips_plus_codes(self):
        self.reply = {
            "status": "OK",
            "results": [
                {"formatted_address": "8G6X+2M Αθήνα", "types": ["plus_code"]},
                {"formatted_address": "Πλατεία Συντάγματος, Αθήνα 105 63", "types": ["route"]},
            ],
        }
        with self._patched_client():
            place = self._geocoder().reverse_geocode(37.9755, 23.7348)
        self.assertEqual(place.text, "Πλατεία Συντάγματος, Αθήνα 105 63")
        self.assertEqual((place.lat, place.lng), (37.9755, 23.7348))
        self.assertEqual(self.requests[0].url.params["latlng"], "37.9755,23.7348")

    def test_reverse_geocode_falls_back_to_coordinates(self):
        self.reply = {"status": "OK", "results": [{"formatted_address": "8G6X+2M Αθήνα"}]}
        with self._patched_client():
            place = self._geocoder().reverse_geocode(37.9755, 23.7348)
        self.assertEqual(place.text, "37.975500, 23.734800")

    def test_autocomplete_drops_incomplete_predictions(self):
        self.reply = {
            "status": "OK",
            "predictions": [
                {"description": "Πατησίων 10, Αθήνα", "place_id": "p1"},
                {"description": "", "place_id": "p2"},
                {"description": "Πατησίων 12, Αθήνα", "place_id": ""},
                {"description": "Πατησίων 14, Αθήνα", "place_id": "p4"},
            ],
        }
        with self._patched_client():
            suggestions = self._geocoder().autocomplete("Πατ", session_token="sess-1")
        self.assertEqual([item.place_id for item in suggestions], ["p1", "p4"])
        self.assertEqual(self.requests[0].url.params["sessiontoken"], "sess-1")

    def test_autocomplete_short_input_skips_provider(self):
        with self._patched_client():
            self.assertEqual(self._geocoder().autocomplete("Πα"), [])
        self.assertEqual(self.requests, [])

    def test_place_details(self):
        self.reply = {
            "status": "OK",
            "result": {
                "formatted_address": "Λεωφόρος Βασιλίσσης Σοφίας 1, Αθήνα",
                "geometry": {"location": {"lat": 37.9769, "lng": 23.7405}},
            },
        }
        with self._patched_client():
            place = self._geocoder().place_details("p1")
        self.assertEqual(place.text, "Λεωφόρος Βασιλίσσης Σοφίας 1, Αθήνα")
        self.assertEqual((place.lat, place.lng), (37.9769, 23.7405))

        self.reply = {"status": "OK", "result": {}}
        with self._patched_client():
            self.assertIsNone(self._geocoder().place_details("p1"))


class ResolveCoordinatesTests(unittest.TestCase):
    class _Provider:
        def __init__(self, result=None, error=None):
            self.result = result
            self.error = error
            self.calls = 0

        def geocode(self, text):
            self.calls += 1
            if self.error:
                raise self.error
            return self.result

    def test_known_coordinates_win(self):
        provider = self._Provider(result=GeocodeResult(1.0, 2.0, None))
        self.assertEqual(resolve_coordinates(provider, "x", 37.5, 23.5), (37.5, 23.5))
        self.assertEqual(provider.calls, 0)

    def test_partial_coordinates_are_geocoded(self):
        provider = self._Provider(result=GeocodeResult(1.0, 2.0, None))
        self.assertEqual(resolve_coordinates(provider, "x", 37.5, None), (1.0, 2.0))

    def test_failures_become_null(self):
        self.assertEqual(resolve_coordinates(self._Provider(error=GeocodingError("x")), "x", None, None), (None, None))
        self.assertEqual(resolve_coordinates(self._Provider(result=None), "x", None, None), (None, None))
        self.assertEqual(resolve_coordinates(None, "x", None, None), (None, None))

    def test_unexpected_provider_faults_become_null(self):
        provider = self._Provider(error=AttributeError("list has no get"))
        with self.assertLogs("app.geocoding", level="WARNING"):
            self.assertEqual(resolve_coordinates(provider, "Μαρούσι", None, None), (None, None))


class PlusCodeTests(unittest.TestCase):
    def test_detection(self):
        self.assertTrue(is_plus_code_address("8G6X+2M Αθήνα"))
        self.assertTrue(is_plus_code_address("MG2C+W8"))
        self.assertFalse(is_plus_code_address("Ερμού 1, Αθήνα 105 63"))

    def test_coordinates_text(self):
        self.assertEqual(coordinates_text(37.0, 23.5), "37.000000, 23.500000")


if __name__ == "__main__":
    unittest.main()
