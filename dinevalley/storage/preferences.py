from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import Field, ValidationError

from ..filters.models import (
    DEFAULT_DISTANCE_MILES,
    MIN_RATING,
    CamelModel,
    FilterOptions,
    Restaurant,
    create_default_filters,
)
from .store import KeyValueStore

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"
FAVORITE_SNAPSHOTS_KEY = "favoriteSnapshots"
RECENTLY_VIEWED_KEY = "recentlyViewed"
VISITS_KEY = "visitHistory"
FILTERS_KEY = "filters"
CHAT_FILTERS_KEY = "chatFilters"
THEME_KEY = "theme"

MAX_RECENTLY_VIEWED = 12
MAX_VISITS = 50
THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class Visit(CamelModel):
    id: str
    restaurant_id: str
    timestamp: str
    snapshot: Restaurant


def _dump(restaurant: Restaurant) -> dict[str, Any]:
    return restaurant.model_dump(mode="json", by_alias=True)


def _load_restaurants(raw: Any) -> list[Restaurant]:
    if not isinstance(raw, list):
        return []
    restaurants: list[Restaurant] = []
    for item in raw:
        try:
            restaurants.append(Restaurant.model_validate(item))
        except ValidationError:
            logger.warning("Dropping unreadable stored restaurant snapshot")
    return restaurants


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------


def get_favorite_ids(store: KeyValueStore) -> list[str]:
    raw = store.get(FAVORITES_KEY, [])
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str)]


def get_favorites(store: KeyValueStore) -> list[Restaurant]:
    """Favorite snapshots in the order they were saved."""
    snapshots = store.get(FAVORITE_SNAPSHOTS_KEY, {})
    if not isinstance(snapshots, dict):
        snapshots = {}
    favorites = _load_restaurants([snapshots[i] for i in get_favorite_ids(store) if i in snapshots])
    return [r.model_copy(update={"is_favorite": True}) for r in favorites]


def toggle_favorite(store: KeyValueStore, restaurant: Restaurant) -> Restaurant:
    """Add or remove *restaurant*; returns it with the new favorite flag."""
    ids = get_favorite_ids(store)
    snapshots = store.get(FAVORITE_SNAPSHOTS_KEY, {})
    if not isinstance(snapshots, dict):
        snapshots = {}

    if restaurant.id in ids:
        ids = [i for i in ids if i != restaurant.id]
        snapshots.pop(restaurant.id, None)
        updated = restaurant.model_copy(update={"is_favorite": False})
    else:
        ids.append(restaurant.id)
        updated = restaurant.model_copy(update={"is_favorite": True})
        snapshots[restaurant.id] = _dump(updated)

    store.set(FAVORITES_KEY, ids)
    store.set(FAVORITE_SNAPSHOTS_KEY, snapshots)
    return updated


def apply_favorites(store: KeyValueStore, restaurants: Iterable[Restaurant]) -> list[Restaurant]:
    ids = set(get_favorite_ids(store))
    return [r.model_copy(update={"is_favorite": r.id in ids}) for r in restaurants]


# ---------------------------------------------------------------------------
# Recently viewed & visits
# ---------------------------------------------------------------------------


def get_recently_viewed(store: KeyValueStore) -> list[Restaurant]:
    return _load_restaurants(store.get(RECENTLY_VIEWED_KEY, []))


def record_recently_viewed(store: KeyValueStore, restaurant: Restaurant) -> list[Restaurant]:
    """Move *restaurant* to the front, keeping at most 12 distinct entries."""
    others = [r for r in get_recently_viewed(store) if r.id != restaurant.id]
    recent = [restaurant, *others][:MAX_RECENTLY_VIEWED]
    store.set(RECENTLY_VIEWED_KEY, [_dump(r) for r in recent])
    return recent


def get_visits(store: KeyValueStore) -> list[Visit]:
    raw = store.get(VISITS_KEY, [])
    if not isinstance(raw, list):
        return []
    visits: list[Visit] = []
    for item in raw:
        try:
            visits.append(Visit.model_validate(item))
        except ValidationError:
            logger.warning("Dropping unreadable stored visit")
    return visits


def record_visit(store: KeyValueStore, restaurant: Restaurant, now: datetime | None = None) -> Visit:
    moment = now or datetime.now(timezone.utc)
    visit = Visit(
        id=uuid.uuid4().hex,
        restaurant_id=restaurant.id,
        timestamp=moment.astimezone(timezone.utc).isoformat(),
        snapshot=restaurant,
    )
    visits = [visit, *get_visits(store)][:MAX_VISITS]
    store.set(VISITS_KEY, [v.model_dump(mode="json", by_alias=True) for v in visits])
    return visit


# ---------------------------------------------------------------------------
# Saved filters
# ---------------------------------------------------------------------------


def _finite_or(value: Any, default: float) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isfinite(value):
        return default
    return value


def sanitize_filters(raw: Any) -> FilterOptions:
    """Rebuild FilterOptions from stored data, repairing anything malformed."""
    if not isinstance(raw, dict):
        return create_default_filters()

    def _list(name: str, alias: str) -> list[Any]:
        value = raw.get(alias, raw.get(name))
        return value if isinstance(value, list) else []

    return FilterOptions(
        cuisines=_list("cuisines", "cuisines"),
        price_ranges=_list("price_ranges", "priceRanges"),
        dietary=_list("dietary", "dietary"),
        min_rating=_finite_or(raw.get("minRating", raw.get("min_rating")), MIN_RATING),
        open_now=raw.get("openNow", raw.get("open_now")) is True,
        distance_miles=_finite_or(raw.get("distanceMiles", raw.get("distance_miles")), DEFAULT_DISTANCE_MILES),
    )


def load_filters(store: KeyValueStore, key: str = FILTERS_KEY) -> FilterOptions:
    return sanitize_filters(store.get(key))


def save_filters(store: KeyValueStore, filters: FilterOptions, key: str = FILTERS_KEY) -> FilterOptions:
    store.set(key, filters.model_dump(mode="json", by_alias=True))
    return filters.clone()


# ---------------------------------------------------------------------------
# Theme
# ---------------------------------------------------------------------------


class ThemeUpdate(CamelModel):
    theme: str = Field(..., pattern="^(light|dark)$")


def get_theme(store: KeyValueStore) -> str:
    theme = store.get(THEME_KEY, DEFAULT_THEME)
    return theme if theme in THEMES else DEFAULT_THEME


def set_theme(store: KeyValueStore, theme: str) -> str:
    if theme not in THEMES:
        raise ValueError(f"Unknown theme {theme!r}")
    store.set(THEME_KEY, theme)
    return theme
