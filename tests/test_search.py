"""
Search tests against a real SQLite listings store.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio

import pytest

from core.search import (
    QueryComposer,
    RemoteFetchError,
    SearchFilters,
    SearchLimits,
    SearchStrategy,
    normalize_term,
    select_strategy,
)
from db.models import ListingStatus, ListingType
from db.store import Store, StoreError
from factories import add_listing, at, open_store

LIMITS = SearchLimits(recent=12, browse=50, search=50, candidate_window=200, featured=6)


class FailingSource:
    async def fetch_listings(self, query):
        raise StoreError("connection reset by peer")


class TestStrategySelection:
    def test_normalize_term(self):
        assert normalize_term(None) is None
        assert normalize_term("   ") is None
        assert normalize_term("  Karachi ") == "Karachi"

    def test_precedence(self):
        assert select_strategy(None, None) is SearchStrategy.RECENT
        assert select_strategy("Karachi", None) is SearchStrategy.LOCATION
        assert select_strategy(None, "cotton") is SearchStrategy.TEXT
        assert select_strategy("Karachi", "cotton") is SearchStrategy.COMBINED

    def test_blank_search_term_falls_back_to_location(self):
        composer = QueryComposer(FailingSource(), LIMITS)
        strategy, query = composer.compose("Karachi", "   ")
        assert strategy is SearchStrategy.LOCATION
        assert query.max_rows == 50

    def test_caps_per_strategy(self):
        composer = QueryComposer(FailingSource(), LIMITS)
        assert composer.compose(None, None)[1].max_rows == 12
        assert composer.compose(None, None, recent_limit=50)[1].max_rows == 50
        assert composer.compose("Lahore", None)[1].max_rows == 50
        assert composer.compose(None, "steel")[1].max_rows == 50
        assert composer.compose("Lahore", "steel")[1].max_rows == 200

    def test_every_strategy_filters_active(self):
        composer = QueryComposer(FailingSource(), LIMITS)
        for location, text in [(None, None), ("Lahore", None), (None, "steel"), ("Lahore", "steel")]:
            _, query = composer.compose(location, text)
            sql, params = query.to_sql()
            assert "status = ?" in sql
            assert params[0] == "active"


class TestSearch:
    def test_recent_excludes_inactive(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(store, "T1", hours=1)
            await add_listing(store, "T2", hours=2)
            await add_listing(store, "T3", hours=3)
            await add_listing(store, "T4", hours=4, status=ListingStatus.INACTIVE)
            results = await QueryComposer(store, LIMITS).search()
            await store.close()
            return results

        results = asyncio.run(scenario())
        assert [item.material_name for item in results] == ["T3", "T2", "T1"]

    def test_recent_capped_and_descending(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            for hour in range(15):
                await add_listing(store, f"Item {hour}", hours=hour)
            composer = QueryComposer(store, LIMITS)
            recent = await composer.search()
            browse = await composer.search(recent_limit=LIMITS.browse)
            await store.close()
            return recent, browse

        recent, browse = asyncio.run(scenario())
        assert len(recent) == 12
        assert len(browse) == 15
        stamps = [item.created_at for item in recent]
        assert stamps == sorted(stamps, reverse=True)
        assert recent[0].material_name == "Item 14"

    def test_location_predicate(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(store, "City match", city="KARACHI", hours=1)
            await add_listing(store, "Area match", city="Hub", location="Near Karachi Port", hours=2)
            await add_listing(store, "Partial city", city="Karachi East", hours=3)
            await add_listing(store, "Elsewhere", city="Lahore", location="Gulberg", hours=4)
            await add_listing(
                store, "Inactive", city="Karachi", hours=5, status=ListingStatus.INACTIVE
            )
            results = await QueryComposer(store, LIMITS).search(location_term=" karachi ")
            await store.close()
            return results

        results = asyncio.run(scenario())
        assert [item.material_name for item in results] == ["Area match", "City match"]
        for item in results:
            assert item.status is ListingStatus.ACTIVE
            assert item.city.lower() == "karachi" or "karachi" in item.location.lower()

    def test_text_predicate(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(store, "Cotton Scraps", hours=1)
            await add_listing(store, "Bales", description="Clean cotton offcuts", hours=2)
            await add_listing(store, "Mixed", category="Cotton Waste", hours=3)
            await add_listing(store, "Steel Scrap", city="Cotton Town", hours=4)
            results = await QueryComposer(store, LIMITS).search(search_term="COTTON")
            await store.close()
            return results

        results = asyncio.run(scenario())
        assert [item.material_name for item in results] == ["Mixed", "Bales", "Cotton Scraps"]

    def test_combined_concrete_scenario(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(store, "Cotton Scraps", city="Karachi", hours=3)
            await add_listing(store, "Steel Scrap", city="Karachi", hours=2)
            await add_listing(store, "Cotton Bale", city="Lahore", hours=1)
            composer = QueryComposer(store, LIMITS)
            combined = await composer.search("Karachi", "cotton")
            location_only = await composer.search("Karachi", None)
            await store.close()
            return combined, location_only

        combined, location_only = asyncio.run(scenario())
        assert [item.material_name for item in combined] == ["Cotton Scraps"]
        assert combined[0].created_at == at(3)
        assert {item.id for item in combined} <= {item.id for item in location_only}

    def test_combined_truncates_to_fifty(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            for hour in range(60):
                await add_listing(store, f"Cotton {hour}", city="Karachi", hours=hour)
            results = await QueryComposer(store, LIMITS).search("Karachi", "cotton")
            await store.close()
            return results

        results = asyncio.run(scenario())
        assert len(results) == 50
        assert results[0].material_name == "Cotton 59"

    def test_combined_window_is_not_refetched(self, tmp_path):
        limits = SearchLimits(recent=12, browse=50, search=3, candidate_window=4, featured=6)

        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(store, "Cotton old", city="Karachi", hours=0)
            for hour in range(1, 5):
                await add_listing(store, f"Steel {hour}", city="Karachi", hours=hour)
            results = await QueryComposer(store, limits).search("Karachi", "cotton")
            await store.close()
            return results

        assert asyncio.run(scenario()) == []

    def test_wildcards_are_literal(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(store, "Pure cotton", hours=1)
            await add_listing(store, "Cotton 100% pure", hours=2)
            results = await QueryComposer(store, LIMITS).search(search_term="100%")
            await store.close()
            return results

        results = asyncio.run(scenario())
        assert [item.material_name for item in results] == ["Cotton 100% pure"]

    def test_non_ascii_case_insensitive(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(store, "ÉMAIL Scrap", city="ÖRNEK", hours=1)
            composer = QueryComposer(store, LIMITS)
            text = await composer.search(search_term="émail")
            location = await composer.search(location_term="örnek")
            combined = await composer.search("ÖRNEK", "émail")
            await store.close()
            return text, location, combined

        text, location, combined = asyncio.run(scenario())
        assert [item.material_name for item in text] == ["ÉMAIL Scrap"]
        assert [item.material_name for item in location] == ["ÉMAIL Scrap"]
        assert [item.material_name for item in combined] == ["ÉMAIL Scrap"]

    def test_same_query_same_result(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            for hour in range(5):
                await add_listing(store, f"Cotton {hour}", city="Karachi", hours=hour % 2)
            composer = QueryComposer(store, LIMITS)
            first = await composer.search("Karachi", "cotton")
            second = await composer.search("Karachi", "cotton")
            await store.close()
            return first, second

        first, second = asyncio.run(scenario())
        assert [item.id for item in first] == [item.id for item in second]


class TestFailures:
    def test_store_failure_raises_remote_fetch_error(self):
        composer = QueryComposer(FailingSource(), LIMITS)
        for location, text in [(None, None), ("Karachi", None), (None, "cotton"), ("Karachi", "cotton")]:
            with pytest.raises(RemoteFetchError, match="connection reset"):
                asyncio.run(composer.search(location, text))

    def test_disconnected_store(self, tmp_path):
        composer = QueryComposer(Store(tmp_path / "never-opened.db"), LIMITS)
        with pytest.raises(RemoteFetchError):
            asyncio.run(composer.search())

    def test_empty_result_is_not_an_error(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            results = await QueryComposer(store, LIMITS).search("Quetta", "copper")
            await store.close()
            return results

        assert asyncio.run(scenario()) == []


class TestAdvancedSearch:
    def test_filters_combine(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(
                store, "PET bottles", city="Lahore", category="Plastic Waste",
                price=20000, hours=1,
            )
            await add_listing(
                store, "PET flakes", city="Lahore", category="Plastic Waste",
                price=90000, hours=2,
            )
            await add_listing(
                store, "PET wanted", city="Lahore", category="Plastic Waste",
                price=10000, listing_type=ListingType.BUY, hours=3,
            )
            await add_listing(
                store, "PET bottles", city="Karachi", category="Plastic Waste",
                price=15000, hours=4,
            )
            composer = QueryComposer(store, LIMITS)
            results = await composer.advanced_search(
                SearchFilters(
                    search="pet",
                    city="lahore",
                    location="ignored when city given",
                    category="Plastic Waste",
                    listing_type=ListingType.SELL,
                    min_price=5000,
                    max_price=50000,
                )
            )
            await store.close()
            return results

        results = asyncio.run(scenario())
        assert [(item.material_name, item.city) for item in results] == [("PET bottles", "Lahore")]

    def test_location_used_without_city(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            await add_listing(store, "Husk", city="Multan", location="Vehari Road", hours=1)
            await add_listing(store, "Straw", city="Multan", location="Bosan Road", hours=2)
            results = await QueryComposer(store, LIMITS).advanced_search(
                SearchFilters(location="vehari")
            )
            await store.close()
            return results

        results = asyncio.run(scenario())
        assert [item.material_name for item in results] == ["Husk"]

    def test_price_bounds_validated(self):
        with pytest.raises(ValueError):
            SearchFilters(min_price=100, max_price=10)


class TestFeatured:
    def test_most_viewed_first(self, tmp_path):
        async def scenario():
            store = await open_store(tmp_path)
            quiet = await add_listing(store, "Quiet", hours=3)
            busy = await add_listing(store, "Busy", hours=1)
            hidden = await add_listing(store, "Hidden", hours=2, status=ListingStatus.INACTIVE)
            for _ in range(3):
                await store.increment_views(busy.id)
                await store.increment_views(hidden.id)
            await store.increment_views(quiet.id)
            results = await QueryComposer(store, LIMITS).featured()
            await store.close()
            return results

        results = asyncio.run(scenario())
        assert [(item.material_name, item.views_count) for item in results] == [
            ("Busy", 3),
            ("Quiet", 1),
        ]
