from __future__ import annotations

import math
from typing import Iterable

from .models import PRICE_RANGE_TO_LEVEL, FilterOptions, ProviderQuery, Restaurant

METERS_PER_MILE = 1609.34
DEFAULT_KEYWORD = "restaurant"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def translate(
    filters: FilterOptions,
    free_text: str = "",
    page_token: str | None = None,
) -> ProviderQuery:
    """Map filter facets and free text to provider query parameters.

    Pure: identical inputs always give an equal query, which is what lets
    the search cache and the paging controller compare queries.
    """
    keyword_parts: list[str] = []
    trimmed = (free_text or "").strip()
    if trimmed:
        keyword_parts.append(trimmed)
    if filters.cuisines:
        keyword_parts.append(" ".join(filters.cuisines))
    keyword = " ".join(keyword_parts).strip() or DEFAULT_KEYWORD

    levels = [PRICE_RANGE_TO_LEVEL[r] for r in filters.price_ranges if r in PRICE_RANGE_TO_LEVEL]
    min_price = min(levels) if levels else None
    max_price = max(levels) if levels else None

    radius_meters = _round_half_up(max(1.0, filters.distance_miles) * METERS_PER_MILE)

    return ProviderQuery(
        keyword=keyword,
        min_price=min_price,
        max_price=max_price,
        open_now=filters.open_now,
        radius_meters=radius_meters,
        page_token=page_token,
    )


def normalize_dietary_tag(value: str) -> str:
    return value.replace("_", " ").lower()


def matches_filters(restaurant: Restaurant, filters: FilterOptions) -> bool:
    rating = restaurant.rating if restaurant.rating is not None else 0.0
    if rating < filters.min_rating:
        return False

    if not filters.dietary:
        return True

    # No dietary data never satisfies a dietary filter.
    tags = {normalize_dietary_tag(tag) for tag in restaurant.dietary}
    if not tags:
        return False
    return all(normalize_dietary_tag(wanted) in tags for wanted in filters.dietary)


def apply_post_filters(
    results: Iterable[Restaurant],
    filters: FilterOptions,
) -> list[Restaurant]:
    """Drop results failing the rating or dietary facets; order is kept."""
    return [r for r in results if matches_filters(r, filters)]
