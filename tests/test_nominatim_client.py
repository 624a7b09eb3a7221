import unittest

import httpx

from rapport.data_sources.nominatim_client import (
    PLACE_QUERIES,
    build_viewbox,
    fetch_local_places,
    haversine_miles,
    merge_places,
    parse_places,
)
from rapport.domain import LocalPlace

LAT, LON = 33.6013, -111.8863


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGeometry(unittest.TestCase):
    def test_haversine_zero_distance(self):
        self.assertEqual(haversine_miles(LAT, LON, LAT, LON), 0.0)

    def test_haversine_known_distance(self):
        # Phoenix Sky Harbor to Tucson International, roughly 110 miles.
        miles = haversine_miles(33.4342, -112.0116, 32.1161, -110.9410)
        self.assertAlmostEqual(miles, 110, delta=3)

    def test_haversine_symmetric(self):
        there = haversine_miles(LAT, LON, 32.1161, -110.9410)
        back = haversine_miles(32.1161, -110.9410, LAT, LON)
        self.assertAlmostEqual(there, back, places=9)
        self.assertGreater(there, 0)

    def test_viewbox_order(self):
        self.assertEqual(build_viewbox(10.0, 20.0, 0.5), "19.5,10.5,20.5,9.5")


class TestParsePlaces(unittest.TestCase):
    def test_maps_fields(self):
        items = [
            {
                "display_name": "McCormick-Stillman Railroad Park, Scottsdale, Arizona",
                "lat": "33.5386",
                "lon": "-111.9224",
                "wikipedia": "en:McCormick-Stillman Railroad Park",
            },
            {"display_name": "Unnamed Park", "lat": "bad", "lon": None, "website": 42},
            {"lat": "33.5", "lon": "-111.9"},
        ]
        places = parse_places(items, "Park", LAT, LON)
        self.assertEqual(len(places), 2)
        first, second = places
        self.assertEqual(first.name, "McCormick-Stillman Railroad Park")
        self.assertEqual(first.category, "Park")
        self.assertEqual(first.url, "en:McCormick-Stillman Railroad Park")
        self.assertEqual(first.distance_miles, round(first.distance_miles, 1))
        self.assertGreater(first.distance_miles, 0)
        self.assertIsNone(second.distance_miles)
        self.assertIsNone(second.url)

    def test_merge_places_dedups_by_name_first_wins(self):
        a = LocalPlace(name="Old Town", category="Shopping Destination")
        b = LocalPlace(name="old town ", category="Museum")
        c = LocalPlace(name="Pinnacle Peak", category="Trail")
        merged = merge_places([[a], [b, c]])
        self.assertEqual([p.category for p in merged], ["Shopping Destination", "Trail"])


class TestFetchLocalPlaces(unittest.IsolatedAsyncioTestCase):
    async def test_no_coordinates_means_no_requests(self):
        def handler(request):  # pragma: no cover - must not be called
            raise AssertionError("unexpected request")

        async with _client(handler) as client:
            self.assertEqual(await fetch_local_places(None, LON, client=client), [])
            self.assertEqual(await fetch_local_places(LAT, None, client=client), [])

    async def test_failing_category_is_skipped(self):
        queries = []
        flags = set()

        def handler(request: httpx.Request) -> httpx.Response:
            params = request.url.params
            queries.append(params["q"])
            flags.add((params["bounded"], params["format"]))
            if params["q"] == "trail":
                return httpx.Response(500, text="overloaded")
            if params["q"] == "park":
                return httpx.Response(
                    200,
                    json=[
                        {"display_name": "Chaparral Park, Scottsdale", "lat": "33.51", "lon": "-111.91"},
                        {"display_name": "Indian Bend Wash, Scottsdale", "lat": "33.52", "lon": "-111.92"},
                    ],
                )
            if params["q"] == "lake":
                return httpx.Response(200, json=[{"display_name": "Chaparral Park", "lat": "33.51", "lon": "-111.91"}])
            return httpx.Response(200, json=[])

        async with _client(handler) as client:
            places = await fetch_local_places(LAT, LON, client=client, concurrency=2)

        self.assertEqual(flags, {("1", "json")})
        self.assertEqual(sorted(queries), sorted(q for q, _ in PLACE_QUERIES))
        self.assertEqual([p.name for p in places], ["Chaparral Park", "Indian Bend Wash"])
        self.assertTrue(all(p.category == "Park" for p in places))

    async def test_limit_applies_per_category(self):
        rows = [{"display_name": f"Spot {i}", "lat": "33.6", "lon": "-111.9"} for i in range(8)]

        def handler(request):
            if request.url.params["q"] == "museum":
                return httpx.Response(200, json=rows)
            return httpx.Response(200, json=[])

        async with _client(handler) as client:
            places = await fetch_local_places(LAT, LON, client=client, limit=5)
        self.assertEqual(len(places), 5)


if __name__ == "__main__":
    unittest.main()
