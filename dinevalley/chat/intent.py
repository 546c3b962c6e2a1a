from __future__ import annotations

import re
from typing import Iterable

from ..filters.models import (
    KNOWN_CUISINES,
    KNOWN_DIETARY_OPTIONS,
    MAX_DISTANCE_MILES,
    MAX_RATING,
    MIN_DISTANCE_MILES,
    MIN_RATING,
    FilterOptions,
    Restaurant,
    clamp,
)
from .models import DerivedFilters

MIN_TOKEN_LENGTH = 3
MAX_KEYWORDS = 8
MAX_SEMANTIC_KEYWORDS = 5
NEARBY_DISTANCE_MILES = 5.0
HIGHLY_RATED_MIN = 4.5

STOP_WORDS: frozenset[str] = frozenset({
    "restaurant",
    "restaurants",
    "food",
    "foods",
    "place",
    "places",
    "spot",
    "spots",
    "eat",
    "eats",
    "eating",
    "dining",
    "dinner",
    "lunch",
    "breakfast",
    "cuisine",
    "cuisines",
    "recommendation",
    "recommendations",
    "find",
    "finding",
    "looking",
    "nearby",
    "around",
    "good",
    "best",
    "please",
    "thanks",
    "another",
    "option",
    "options",
})

# ---------------------------------------------------------------------------
# Price Mapping
# ---------------------------------------------------------------------------

# Checked in order; the first word found wins.
_PRICE_KEYWORDS: dict[str, list[str]] = {
    "cheap": ["$"],
    "budget": ["$"],
    "affordable": ["$", "$$"],
    "casual": ["$", "$$"],
    "moderate": ["$$"],
    "mid": ["$$"],
    "pricey": ["$$$", "$$$$"],
    "expensive": ["$$$", "$$$$"],
    "fancy": ["$$$", "$$$$"],
    "upscale": ["$$$", "$$$$"],
    "luxury": ["$$$", "$$$$"],
}

_PRICE_SYMBOL_RE = re.compile(r"(?<![\w$])\${1,4}(?![\w$])")
_AMOUNT_RE = re.compile(r"(?:under|below|less than)\s*\$?\s*(\d+)", re.IGNORECASE)
_DISTANCE_RE = re.compile(r"(?:within|under|less than)\s*(\d+)\s*(?:miles?|mi)\b", re.IGNORECASE)
_NEARBY_RE = re.compile(r"\bnear me\b|\bnearby\b")
_RATING_RE = re.compile(r"(\d(?:\.\d)?)\s*(?:stars?|rating)", re.IGNORECASE)
_HIGHLY_RATED_RE = re.compile(r"\bhighly rated\b|\bhigher rated\b|\bfive star\b")
_OPEN_NOW_RE = re.compile(r"\bopen now\b|\bcurrently open\b")

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(value: str) -> str:
    lowered = _NON_ALNUM_RE.sub(" ", value.lower())
    return _WHITESPACE_RE.sub(" ", lowered).strip()


def tokenize(value: str | None) -> list[str]:
    if not value:
        return []
    normalized = normalize_text(value)
    if not normalized:
        return []
    return [token for token in normalized.split(" ") if len(token) >= MIN_TOKEN_LENGTH]


def _map_amount_to_buckets(amount: int) -> list[str]:
    if amount <= 20:
        return ["$"]
    if amount <= 40:
        return ["$", "$$"]
    if amount <= 70:
        return ["$$", "$$$"]
    return ["$$$", "$$$$"]


def _detect_price_ranges(question: str, lowered: str) -> list[str] | None:
    symbols = _PRICE_SYMBOL_RE.findall(question)
    if symbols:
        return symbols

    for keyword, buckets in _PRICE_KEYWORDS.items():
        if keyword in lowered:
            return list(buckets)

    match = _AMOUNT_RE.search(question)
    if match:
        return _map_amount_to_buckets(int(match.group(1)))

    return None


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


# ---------------------------------------------------------------------------
# Question → filters
# ---------------------------------------------------------------------------


def derive_filters(question: str, previous_filters: FilterOptions) -> DerivedFilters:
    """Derive filter facets, grounding keywords and a search term from a chat question.

    Starts from a clone of *previous_filters*. Cuisine matches replace the
    selected cuisines, dietary matches are added to the selected ones, and
    price, distance, rating and open-now signals override their facet. When
    two price signals conflict, literal ``$`` tokens beat price words, which
    beat an "under $N" amount.
    """
    lowered = question.lower()
    tokens = tokenize(question)
    semantic_tokens = [token for token in tokens if token not in STOP_WORDS]
    filters = previous_filters.clone()

    cuisines = [c for c in KNOWN_CUISINES if c.lower() in lowered]
    if cuisines:
        filters.cuisines = cuisines

    dietary = [d for d in KNOWN_DIETARY_OPTIONS if d.lower() in lowered]
    if dietary:
        filters.dietary = [*filters.dietary, *dietary]

    price_ranges = _detect_price_ranges(question, lowered)
    if price_ranges is not None:
        filters.price_ranges = price_ranges

    distance_match = _DISTANCE_RE.search(question)
    if distance_match:
        miles = float(distance_match.group(1))
        filters.distance_miles = clamp(miles, MIN_DISTANCE_MILES, MAX_DISTANCE_MILES)
    elif _NEARBY_RE.search(lowered):
        filters.distance_miles = min(filters.distance_miles, NEARBY_DISTANCE_MILES)

    rating_match = _RATING_RE.search(question)
    if rating_match:
        filters.min_rating = clamp(float(rating_match.group(1)), MIN_RATING, MAX_RATING)
    elif _HIGHLY_RATED_RE.search(lowered):
        filters.min_rating = max(filters.min_rating, HIGHLY_RATED_MIN)

    if _OPEN_NOW_RE.search(lowered):
        filters.open_now = True

    keywords = _unique([
        *(item.lower() for item in filters.cuisines),
        *(item.lower() for item in filters.dietary),
        *semantic_tokens[:MAX_SEMANTIC_KEYWORDS],
    ])[:MAX_KEYWORDS]

    if semantic_tokens:
        search_term = " ".join(semantic_tokens)
    elif filters.cuisines:
        search_term = filters.cuisines[0]
    else:
        search_term = question

    return DerivedFilters(filters=filters, keywords=keywords, search_term=search_term)


# ---------------------------------------------------------------------------
# Answer → recommended restaurants
# ---------------------------------------------------------------------------


def extract_recommendations(answer: str, candidates: list[Restaurant]) -> list[Restaurant]:
    """Return the candidates whose name appears in *answer*, once each."""
    normalized_answer = normalize_text(answer or "")
    if not normalized_answer:
        return []

    seen: set[str] = set()
    matches: list[Restaurant] = []
    for restaurant in candidates:
        name = normalize_text(restaurant.name)
        if name and name in normalized_answer and restaurant.id not in seen:
            seen.add(restaurant.id)
            matches.append(restaurant)
    return matches
