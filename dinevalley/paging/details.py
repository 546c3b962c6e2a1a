from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from ..filters.models import Restaurant
from ..places.models import PlaceDetails

logger = logging.getLogger(__name__)

FetchDetails = Callable[[str], Union[PlaceDetails, Awaitable[PlaceDetails]]]


@dataclass(frozen=True)
class DetailsTicket:
    place_id: str
    generation: int


class DetailsTracker:
    """Last-request-wins guard for details loading.

    Only the most recent ``begin`` ticket may deliver a result; earlier
    requests still run to completion but their outcome is dropped.
    """

    def __init__(self) -> None:
        self.generation = 0
        self.current_id: str | None = None

    def begin(self, place_id: str) -> DetailsTicket:
        self.generation += 1
        self.current_id = place_id
        return DetailsTicket(place_id=place_id, generation=self.generation)

    def is_current(self, ticket: DetailsTicket) -> bool:
        return ticket.generation == self.generation

    async def load(self, place_id: str, fetch: FetchDetails) -> PlaceDetails | None:
        """Fetch details for *place_id*; None if a newer request superseded it."""
        ticket = self.begin(place_id)
        try:
            details = fetch(place_id)
            if inspect.isawaitable(details):
                details = await details
        except Exception:
            if not self.is_current(ticket):
                logger.debug("Ignoring failure of superseded details request for %s", place_id)
                return None
            raise
        if not self.is_current(ticket):
            logger.debug("Discarding superseded details for %s", place_id)
            return None
        return details


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == []


def merge_restaurant(fresh: Restaurant, cached: Restaurant | None) -> Restaurant:
    """New value with fields the provider omitted filled from *cached*.

    The favorite flag always comes from the snapshot.
    """
    if cached is None:
        return fresh
    updates: dict[str, Any] = {
        name: getattr(cached, name)
        for name in Restaurant.model_fields
        if _is_missing(getattr(fresh, name)) and not _is_missing(getattr(cached, name))
    }
    updates["is_favorite"] = cached.is_favorite
    return fresh.model_copy(update=updates)


def display_restaurant(details: PlaceDetails | None, fallback: Restaurant | None) -> Restaurant | None:
    """Restaurant to render on the details view."""
    if details is None:
        return fallback

    rating = details.rating
    if rating is None:
        rating = fallback.rating if fallback and fallback.rating is not None else 0.0

    return Restaurant(
        id=details.id,
        name=details.name or (fallback.name if fallback else ""),
        rating=rating,
        review_count=fallback.review_count if fallback else 0,
        address=details.address or (fallback.address if fallback else ""),
        price_level=fallback.price_level if fallback else None,
        types=fallback.types if fallback else [],
        dietary=fallback.dietary if fallback else [],
        image_url=details.image_url,
        is_favorite=fallback.is_favorite if fallback else False,
        business_status=fallback.business_status if fallback else None,
        reviews=details.reviews,
    )
