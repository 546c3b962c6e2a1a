"""
Deterministic comparison heuristics.

Each category scores every restaurant; the highest score wins unless the
runner-up is within ``TIE_THRESHOLD``, which reports a split decision.
The hints ground the LLM comparison prompt and are the local fallback
when the LLM answer is missing or unusable.
"""
from __future__ import annotations

from typing import Callable, Sequence

from ..filters.models import Restaurant
from .models import (
    CATEGORY_ORDER,
    MAX_COMPARE,
    MIN_COMPARE,
    SPLIT_DECISION,
    CategoryHint,
    ComparisonCategory,
    ScoreResult,
)

TIE_THRESHOLD = 0.05
DEFAULT_PRICE_LEVEL = 2.5

GROUP_TYPES = frozenset({"bar", "restaurant", "cafe", "meal_takeaway"})
QUICK_SERVICE_TYPES = frozenset({"meal_takeaway", "meal_delivery", "meal_takeout", "fast_food"})

Scorer = Callable[[Restaurant], tuple[float, str]]


def _rating(restaurant: Restaurant) -> float:
    return restaurant.rating if restaurant.rating is not None else 0.0


def _price_label(level: int | None) -> str:
    if not level or level <= 0:
        return "unknown"
    return "$" * min(level, 4)


def _has_type(restaurant: Restaurant, wanted: frozenset[str]) -> bool:
    return any(t in wanted for t in restaurant.types)


# ---------------------------------------------------------------------------
# Category scores
# ---------------------------------------------------------------------------


def value_score(restaurant: Restaurant) -> tuple[float, str]:
    rating = _rating(restaurant)
    level = restaurant.price_level
    price = level if level and level > 0 else DEFAULT_PRICE_LEVEL
    score = rating / price
    return score, f"Value score {score:.2f} (rating {rating:.1f}, price {_price_label(level)})"


def dietary_score(restaurant: Restaurant) -> tuple[float, str]:
    rating = _rating(restaurant)
    count = len(restaurant.dietary)
    score = count + rating / 10
    return score, f"Dietary score {score:.2f} ({count} dietary tags, rating {rating:.1f})"


def group_score(restaurant: Restaurant) -> tuple[float, str]:
    rating = _rating(restaurant)
    friendly = _has_type(restaurant, GROUP_TYPES)
    score = (1.0 if friendly else 0.0) + rating
    venue = "group-friendly venue" if friendly else "no group-friendly venue type"
    return score, f"Group score {score:.2f} ({venue}, rating {rating:.1f})"


def quick_service_score(restaurant: Restaurant) -> tuple[float, str]:
    rating = _rating(restaurant)
    quick = _has_type(restaurant, QUICK_SERVICE_TYPES)
    score = (1.5 if quick else 0.0) + rating / 2
    service = "takeaway or delivery" if quick else "no takeaway or delivery"
    return score, f"Quick-service score {score:.2f} ({service}, rating {rating:.1f})"


def popularity_score(restaurant: Restaurant) -> tuple[float, str]:
    rating = _rating(restaurant)
    score = restaurant.review_count + rating
    return score, f"Popularity score {score:.2f} ({restaurant.review_count} reviews, rating {rating:.1f})"


CATEGORY_SCORERS: dict[ComparisonCategory, Scorer] = {
    ComparisonCategory.best_value: value_score,
    ComparisonCategory.dietary_needs: dietary_score,
    ComparisonCategory.groups: group_score,
    ComparisonCategory.quick_service: quick_service_score,
    ComparisonCategory.popular_dishes: popularity_score,
}


# ---------------------------------------------------------------------------
# Winner selection
# ---------------------------------------------------------------------------


def pick_winner(
    category: ComparisonCategory,
    restaurants: Sequence[Restaurant],
) -> CategoryHint:
    scorer = CATEGORY_SCORERS[category]
    scored = [(scorer(r), r) for r in restaurants]
    # sorted() is stable, so equal scores keep input order.
    ranked = sorted(scored, key=lambda item: item[0][0], reverse=True)

    (top_score, top_evidence), top = ranked[0]
    (runner_score, _), runner = ranked[1]

    if top_score - runner_score < TIE_THRESHOLD:
        return CategoryHint(
            category=category,
            winner=SPLIT_DECISION,
            rationale=(
                f"{SPLIT_DECISION} between {top.name} and {runner.name} "
                f"({top_score:.2f} vs {runner_score:.2f})"
            ),
            tie=True,
            winner_ids=[top.id, runner.id],
        )

    return CategoryHint(
        category=category,
        winner=top.name,
        rationale=top_evidence,
        winner_ids=[top.id],
    )


def score(restaurants: Sequence[Restaurant]) -> ScoreResult:
    """Compute one hint per comparison category for 2 to 5 restaurants."""
    if not MIN_COMPARE <= len(restaurants) <= MAX_COMPARE:
        raise ValueError(
            f"Comparison needs between {MIN_COMPARE} and {MAX_COMPARE} restaurants, got {len(restaurants)}"
        )

    hints = [pick_winner(category, restaurants) for category in CATEGORY_ORDER]
    summary = "\n".join(f"{hint.category.value}: {hint.text}" for hint in hints)
    return ScoreResult(hints=hints, summary=summary)
