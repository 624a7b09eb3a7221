import unittest

from rapport.domain import LocalPlace
from rapport.place_enricher import enrich_local_places, summarize_place


class TestSummarizePlace(unittest.TestCase):
    def test_full_metadata(self):
        place = LocalPlace(name="Chaparral Park", category="Park", distance_miles=2.0, url="https://example.org")
        self.assertEqual(
            summarize_place(place),
            "Chaparral Park is a park, 2 miles from the ZIP center that residents often mention online.",
        )

    def test_fractional_distance_without_url(self):
        place = LocalPlace(name="Old Town", category="Shopping Destination", distance_miles=3.4)
        self.assertEqual(summarize_place(place), "Old Town is a shopping destination, 3.4 miles from the ZIP center.")

    def test_no_descriptors(self):
        self.assertEqual(summarize_place(LocalPlace(name="Mystery Spot")), "Mystery Spot is a local favorite.")


class TestEnrichLocalPlaces(unittest.IsolatedAsyncioTestCase):
    async def test_top_n_get_searched_highlights_and_order_is_kept(self):
        calls = []

        async def snippets(query, limit=3):
            calls.append((query, limit))
            if query.startswith("Why do locals love"):
                return [f"Highlight for {query.split(' love ')[1].split(' in ')[0]}."]
            return []

        places = [LocalPlace(name=f"Place {i}", category="Park") for i in range(5)]
        enriched = await enrich_local_places(places, "Scottsdale", "AZ", query_snippets=snippets, top_n=3)

        self.assertEqual([p.name for p in enriched], [p.name for p in places])
        self.assertEqual(enriched[0].summary, "Highlight for Place 0.")
        self.assertEqual(enriched[2].summary, "Highlight for Place 2.")
        self.assertEqual(enriched[3].summary, "Place 3 is a park.")
        self.assertEqual(len(calls), 3)
        self.assertTrue(all(limit == 1 for _, limit in calls))
        # Input records are left untouched.
        self.assertIsNone(places[0].summary)

    async def test_second_query_used_when_first_is_empty(self):
        calls = []

        async def snippets(query, limit=3):
            calls.append(query)
            if query.endswith("popular activities"):
                return ["Families picnic here every weekend."]
            return []

        enriched = await enrich_local_places(
            [LocalPlace(name="Chaparral Park")], "Scottsdale", "AZ", query_snippets=snippets
        )
        self.assertEqual(enriched[0].summary, "Families picnic here every weekend.")
        self.assertEqual(
            calls,
            [
                "Why do locals love Chaparral Park in Scottsdale, AZ?",
                "Chaparral Park Scottsdale AZ popular activities",
            ],
        )

    async def test_no_search_without_city(self):
        async def snippets(query, limit=3):  # pragma: no cover - must not be called
            raise AssertionError("unexpected search")

        enriched = await enrich_local_places(
            [LocalPlace(name="Chaparral Park", distance_miles=1.5)], "", "AZ", query_snippets=snippets
        )
        self.assertEqual(enriched[0].summary, "Chaparral Park is a 1.5 miles from the ZIP center.")

    async def test_empty_input(self):
        async def snippets(query, limit=3):  # pragma: no cover
            return []

        self.assertEqual(await enrich_local_places([], "Scottsdale", "AZ", query_snippets=snippets), [])


if __name__ == "__main__":
    unittest.main()
