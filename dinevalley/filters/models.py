from __future__ import annotations

import math
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

KNOWN_CUISINES: list[str] = [
    "American",
    "Italian",
    "Mexican",
    "Chinese",
    "Japanese",
    "Indian",
    "Thai",
    "French",
    "Mediterranean",
    "Greek",
    "Spanish",
    "Korean",
    "Vietnamese",
    "Lebanese",
    "Turkish",
    "Brazilian",
    "Caribbean",
    "Ethiopian",
    "Moroccan",
    "BBQ",
    "Seafood",
    "Sushi",
    "Steakhouse",
]

KNOWN_DIETARY_OPTIONS: list[str] = [
    "Vegetarian",
    "Vegan",
    "Gluten-Free",
    "Dairy-Free",
    "Nut-Free",
    "Egg-Free",
    "Soy-Free",
    "Shellfish-Free",
]

PRICE_RANGE_TO_LEVEL: dict[str, int] = {
    "$": 1,
    "$$": 2,
    "$$$": 3,
    "$$$$": 4,
}

MIN_RATING = 0.0
MAX_RATING = 5.0
MIN_DISTANCE_MILES = 1.0
MAX_DISTANCE_MILES = 30.0
DEFAULT_DISTANCE_MILES = 10.0
_MAX_REVIEW_COUNT = 10**9


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def clamp_number(value: Any, low: float, high: float, default: float) -> float:
    """Coerce *value* to a float inside ``[low, high]``.

    ``None``, unparsable input and NaN give *default*; infinities land on
    the nearest bound.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return clamp(number, low, high)


def unique_strings(values: Iterable[Any] | None) -> list[str]:
    """Drop non-strings, blanks and repeats; first occurrence wins."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    seen: set[str] = set()
    result: list[str] = []
    for item in values:
        if not isinstance(item, str):
            continue
        item = item.strip()
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Filter facets
# ---------------------------------------------------------------------------


class FilterOptions(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    cuisines: list[str] = Field(default_factory=list)
    price_ranges: list[str] = Field(default_factory=list)
    dietary: list[str] = Field(default_factory=list)
    min_rating: float = MIN_RATING
    open_now: bool = False
    distance_miles: float = DEFAULT_DISTANCE_MILES

    @field_validator("cuisines", "dietary", mode="before")
    @classmethod
    def _dedupe(cls, value: Any) -> list[str]:
        return unique_strings(value)

    @field_validator("price_ranges", mode="before")
    @classmethod
    def _known_price_ranges(cls, value: Any) -> list[str]:
        return [r for r in unique_strings(value) if r in PRICE_RANGE_TO_LEVEL]

    @field_validator("min_rating", mode="before")
    @classmethod
    def _clamp_rating(cls, value: Any) -> float:
        return clamp_number(value, MIN_RATING, MAX_RATING, MIN_RATING)

    @field_validator("distance_miles", mode="before")
    @classmethod
    def _clamp_distance(cls, value: Any) -> float:
        return clamp_number(value, MIN_DISTANCE_MILES, MAX_DISTANCE_MILES, DEFAULT_DISTANCE_MILES)

    @field_validator("open_now", mode="before")
    @classmethod
    def _coerce_open_now(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)

    def clone(self) -> FilterOptions:
        """Independent copy; the list facets are never shared."""
        return self.model_copy(deep=True)


def create_default_filters() -> FilterOptions:
    return FilterOptions()


# ---------------------------------------------------------------------------
# Candidate restaurants
# ---------------------------------------------------------------------------


class Review(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    text: str = ""
    rating: float | None = None
    author_name: str | None = None
    relative_time_description: str | None = None


class Restaurant(CamelModel):
    """A place as returned by the provider, possibly merged with a snapshot.

    Instances are frozen; updates go through ``model_copy(update=...)``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    rating: float | None = None
    review_count: int = 0
    price_level: int | None = Field(default=None, ge=0, le=4)
    address: str = ""
    types: list[str] = Field(default_factory=list)
    dietary: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    image_url: str | None = None
    business_status: str | None = None
    reviews: list[Review] = Field(default_factory=list)

    @field_validator("rating", mode="before")
    @classmethod
    def _clamp_rating(cls, value: Any) -> float | None:
        if value is None:
            return None
        number = clamp_number(value, MIN_RATING, MAX_RATING, math.nan)
        return None if math.isnan(number) else number

    @field_validator("review_count", mode="before")
    @classmethod
    def _non_negative_count(cls, value: Any) -> int:
        return int(clamp_number(value, 0, _MAX_REVIEW_COUNT, 0))

    @field_validator("types", "dietary", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        return [item for item in value if isinstance(item, str)]


# ---------------------------------------------------------------------------
# Provider query
# ---------------------------------------------------------------------------


class ProviderQuery(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    keyword: str
    min_price: int | None = None
    max_price: int | None = None
    open_now: bool = False
    radius_meters: int
    page_token: str | None = None

    def with_page_token(self, page_token: str | None) -> ProviderQuery:
        return self.model_copy(update={"page_token": page_token})
