from __future__ import annotations

from pydantic import Field

from ..filters.models import CamelModel, FilterOptions, ProviderQuery, Restaurant, Review, create_default_filters


class SearchPage(CamelModel):
    results: list[Restaurant] = Field(default_factory=list)
    next_page_token: str | None = None


class Coordinates(CamelModel):
    lat: float
    lng: float


class ReviewSummary(CamelModel):
    total: int = 0
    average: float | None = None


class PlaceDetails(CamelModel):
    id: str
    name: str = ""
    rating: float | None = None
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    opening_hours: list[str] = Field(default_factory=list)
    reviews: list[Review] = Field(default_factory=list)
    image_url: str
    photo_urls: list[str] = Field(default_factory=list)
    google_maps_url: str | None = None
    map_image_url: str | None = None
    coordinates: Coordinates | None = None
    types: list[str] = Field(default_factory=list)
    review_summary: ReviewSummary = Field(default_factory=ReviewSummary)


class PhotoResponse(CamelModel):
    content: bytes
    content_type: str | None = None
    cache_control: str | None = None


class SearchResponse(CamelModel):
    """Result of one filtered search: the query sent and what survived."""

    query: ProviderQuery
    results: list[Restaurant] = Field(default_factory=list)
    next_page_token: str | None = None
    dropped_count: int = 0


class SearchRequest(CamelModel):
    filters: FilterOptions = Field(default_factory=create_default_filters)
    search: str = ""
    page_token: str | None = None
