import unittest

import httpx

from rapport.data_sources.zippopotam_client import lookup_zip
from rapport.errors import TransportFailure


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


SCOTTSDALE = {
    "post code": "85260",
    "country": "United States",
    "places": [
        {
            "place name": "Scottsdale",
            "longitude": "-111.8863",
            "state": "Arizona",
            "state abbreviation": "AZ",
            "latitude": "33.6013",
        }
    ],
}


class TestLookupZip(unittest.IsolatedAsyncioTestCase):
    async def test_maps_first_place(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json=SCOTTSDALE)

        async with _client(handler) as client:
            geo = await lookup_zip("85260", client=client)

        self.assertEqual(seen["url"], "https://api.zippopotam.us/us/85260")
        self.assertEqual(geo.zip, "85260")
        self.assertEqual(geo.city, "Scottsdale")
        self.assertEqual(geo.state, "AZ")
        self.assertAlmostEqual(geo.latitude, 33.6013)
        self.assertAlmostEqual(geo.longitude, -111.8863)
        self.assertTrue(geo.has_coordinates)

    async def test_404_is_not_found(self):
        async with _client(lambda request: httpx.Response(404, json={})) as client:
            self.assertIsNone(await lookup_zip("00000", client=client))

    async def test_empty_places_is_not_found(self):
        async with _client(lambda request: httpx.Response(200, json={"post code": "00000", "places": []})) as client:
            self.assertIsNone(await lookup_zip("00000", client=client))

    async def test_server_error_raises_transport_failure(self):
        async with _client(lambda request: httpx.Response(500, text="oops")) as client:
            with self.assertRaises(TransportFailure):
                await lookup_zip("85260", client=client)

    async def test_network_error_raises_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            with self.assertRaises(TransportFailure):
                await lookup_zip("85260", client=client)

    async def test_malformed_json_raises_transport_failure(self):
        async with _client(lambda request: httpx.Response(200, text="<html>")) as client:
            with self.assertRaises(TransportFailure):
                await lookup_zip("85260", client=client)

    async def test_unparseable_coordinates_become_none(self):
        payload = {
            "post code": "12345",
            "places": [{"place name": "Somewhere", "state": "New York", "latitude": "n/a", "longitude": ""}],
        }
        async with _client(lambda request: httpx.Response(200, json=payload)) as client:
            geo = await lookup_zip("12345", client=client)
        self.assertEqual(geo.state, "New York")
        self.assertIsNone(geo.latitude)
        self.assertFalse(geo.has_coordinates)

    async def test_non_finite_coordinates_become_none(self):
        payload = {
            "post code": "12345",
            "places": [{"place name": "Somewhere", "state": "New York", "latitude": "NaN", "longitude": "inf"}],
        }
        async with _client(lambda request: httpx.Response(200, json=payload)) as client:
            geo = await lookup_zip("12345", client=client)
        self.assertIsNone(geo.latitude)
        self.assertIsNone(geo.longitude)
        self.assertFalse(geo.has_coordinates)


if __name__ == "__main__":
    unittest.main()
