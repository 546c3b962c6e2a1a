from __future__ import annotations

from typing import Iterable, Sequence

from ..filters.models import Restaurant

MIN_RECOMMENDED_RATING = 4.0
MAX_RECOMMENDATIONS = 12


def _dedupe(items: Iterable[Restaurant]) -> list[Restaurant]:
    seen: set[str] = set()
    result: list[Restaurant] = []
    for item in items:
        if item.id not in seen:
            seen.add(item.id)
            result.append(item)
    return result


def type_overlap(restaurant: Restaurant, favorite_types: Sequence[str]) -> int:
    """Number of the restaurant's types that also appear among favorites."""
    if not favorite_types:
        return 0
    wanted = set(favorite_types)
    return sum(1 for t in restaurant.types if t in wanted)


def recommend(
    candidates: Sequence[Restaurant],
    favorites: Sequence[Restaurant],
    recently_viewed: Sequence[Restaurant] = (),
    limit: int = MAX_RECOMMENDATIONS,
) -> list[Restaurant]:
    """
    Rank well-rated, not-yet-saved candidates by how many types they share
    with the user's favorites, breaking ties by rating.

    With nothing to rank, fall back to recently viewed non-favorites.
    """
    favorite_ids = {f.id for f in favorites}
    favorite_types = [t for f in favorites for t in f.types]

    eligible = _dedupe(
        r for r in candidates
        if (r.rating or 0.0) >= MIN_RECOMMENDED_RATING and r.id not in favorite_ids
    )
    ranked = sorted(
        eligible,
        key=lambda r: (type_overlap(r, favorite_types), r.rating or 0.0),
        reverse=True,
    )[:limit]
    if ranked:
        return ranked

    return _dedupe(r for r in recently_viewed if r.id not in favorite_ids)[:limit]
