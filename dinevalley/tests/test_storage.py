from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from dinevalley.filters.models import FilterOptions, Restaurant
from dinevalley.storage.preferences import (
    CHAT_FILTERS_KEY,
    FAVORITES_KEY,
    MAX_RECENTLY_VIEWED,
    MAX_VISITS,
    apply_favorites,
    get_favorite_ids,
    get_favorites,
    get_recently_viewed,
    get_theme,
    get_visits,
    load_filters,
    record_recently_viewed,
    record_visit,
    sanitize_filters,
    save_filters,
    set_theme,
    toggle_favorite,
)
from dinevalley.storage.store import InMemoryStore, SessionStore


def _r(rid: str, **kwargs) -> Restaurant:
    return Restaurant(id=rid, name=kwargs.pop("name", f"Place {rid}"), **kwargs)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


# ── Stores ───────────────────────────────────────────────────────────────


class TestStores:
    def test_in_memory_copies_values(self, store):
        value = ["a"]
        store.set("k", value)
        value.append("b")
        assert store.get("k") == ["a"]
        store.get("k").append("c")
        assert store.get("k") == ["a"]
        assert store.get("missing", "fallback") == "fallback"

    def test_session_store_isolated_per_session(self):
        registry: dict = {}
        first_cookie: dict = {}
        second_cookie: dict = {}
        SessionStore(first_cookie, registry).set("theme", "dark")

        assert SessionStore(first_cookie, registry).get("theme") == "dark"
        assert SessionStore(second_cookie, registry).get("theme") is None
        assert first_cookie["sid"] != second_cookie["sid"]
        assert list(first_cookie) == ["sid"]


# ── Favorites ────────────────────────────────────────────────────────────


class TestFavorites:
    def test_toggle_on_and_off(self, store):
        luigi = _r("p1", rating=4.5)

        added = toggle_favorite(store, luigi)
        assert added.is_favorite is True
        assert get_favorite_ids(store) == ["p1"]
        assert [f.id for f in get_favorites(store)] == ["p1"]
        assert get_favorites(store)[0].is_favorite is True

        removed = toggle_favorite(store, added)
        assert removed.is_favorite is False
        assert get_favorite_ids(store) == []
        assert get_favorites(store) == []

    def test_saved_order(self, store):
        for rid in ("c", "a", "b"):
            toggle_favorite(store, _r(rid))
        assert [f.id for f in get_favorites(store)] == ["c", "a", "b"]

    def test_apply_favorites(self, store):
        toggle_favorite(store, _r("p1"))
        marked = apply_favorites(store, [_r("p1"), _r("p2", is_favorite=True)])
        assert [r.is_favorite for r in marked] == [True, False]

    def test_corrupt_ids_ignored(self, store):
        store.set(FAVORITES_KEY, ["ok", 5, None])
        assert get_favorite_ids(store) == ["ok"]
        store.set(FAVORITES_KEY, "nonsense")
        assert get_favorite_ids(store) == []


# ── Recently viewed & visits ─────────────────────────────────────────────


class TestHistory:
    def test_recent_newest_first_without_duplicates(self, store):
        for rid in ("a", "b", "a"):
            record_recently_viewed(store, _r(rid))
        assert [r.id for r in get_recently_viewed(store)] == ["a", "b"]

    def test_recent_capped(self, store):
        for i in range(MAX_RECENTLY_VIEWED + 3):
            record_recently_viewed(store, _r(str(i)))
        recent = get_recently_viewed(store)
        assert len(recent) == MAX_RECENTLY_VIEWED
        assert recent[0].id == str(MAX_RECENTLY_VIEWED + 2)

    def test_visits(self, store):
        start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        record_visit(store, _r("a"), now=start)
        second = record_visit(store, _r("a"), now=start + timedelta(hours=1))

        visits = get_visits(store)
        assert [v.id for v in visits][0] == second.id
        assert len(visits) == 2
        assert visits[1].timestamp == "2024-05-01T12:00:00+00:00"
        assert visits[0].snapshot.id == "a"

    def test_visits_capped(self, store):
        for i in range(MAX_VISITS + 5):
            record_visit(store, _r(str(i)))
        assert len(get_visits(store)) == MAX_VISITS

    def test_unreadable_snapshots_dropped(self, store):
        store.set("recentlyViewed", [{"id": "ok", "name": "Fine"}, {"name": "no id"}, "junk"])
        assert [r.id for r in get_recently_viewed(store)] == ["ok"]


# ── Saved filters ────────────────────────────────────────────────────────


class TestFilters:
    def test_round_trip(self, store):
        saved = save_filters(store, FilterOptions(cuisines=["Thai"], price_ranges=["$$"], open_now=True))
        loaded = load_filters(store)
        assert loaded == saved
        assert load_filters(store, CHAT_FILTERS_KEY) == FilterOptions()

    def test_sanitize_repairs_garbage(self):
        repaired = sanitize_filters({
            "cuisines": "Thai",
            "priceRanges": ["$", "$$$$$"],
            "dietary": None,
            "minRating": math.nan,
            "openNow": "yes",
            "distanceMiles": math.inf,
        })
        assert repaired.cuisines == []
        assert repaired.price_ranges == ["$"]
        assert repaired.dietary == []
        assert repaired.min_rating == 0.0
        assert repaired.open_now is False
        assert repaired.distance_miles == 10.0

    def test_sanitize_non_dict(self):
        assert sanitize_filters("broken") == FilterOptions()
        assert sanitize_filters(None) == FilterOptions()

    def test_snake_case_keys(self):
        assert sanitize_filters({"min_rating": 4, "distance_miles": 3}).distance_miles == 3.0


# ── Theme ────────────────────────────────────────────────────────────────


class TestTheme:
    def test_default_and_set(self, store):
        assert get_theme(store) == "light"
        assert set_theme(store, "dark") == "dark"
        assert get_theme(store) == "dark"

    def test_rejects_unknown(self, store):
        with pytest.raises(ValueError):
            set_theme(store, "neon")
        store.set("theme", "neon")
        assert get_theme(store) == "light"
