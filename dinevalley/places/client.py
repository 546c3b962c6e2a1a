from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..filters.models import ProviderQuery, Restaurant, Review
from .config import DEFAULT_PLACES_CONFIG, STATIC_MAP_URL, PlacesConfig
from .models import Coordinates, PhotoResponse, PlaceDetails, ReviewSummary, SearchPage

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = ("OK", "ZERO_RESULTS")
DETAILS_FIELDS = (
    "name,rating,formatted_address,formatted_phone_number,opening_hours,"
    "website,review,photo,url,geometry,types"
)


class PlacesError(RuntimeError):
    """The Places API failed or answered with a non-success status."""


class PlacesNotConfigured(PlacesError):
    """GOOGLE_PLACES_API_KEY is missing."""


class PlacesNotFound(PlacesError):
    """Details were requested for a place the API does not know."""


def photo_url(base_url: str, reference: str, max_width: int) -> str:
    return f"{base_url.rstrip('/')}/place-photo/{quote(reference, safe='')}?maxwidth={max_width}"


def static_map_url(lat: float, lng: float, api_key: str) -> str:
    return (
        f"{STATIC_MAP_URL}?center={lat},{lng}&zoom=14&size=600x320&scale=2&maptype=roadmap"
        f"&markers=color:red%7C{lat},{lng}&key={api_key}"
    )


def validate_status(data: Any, label: str) -> dict[str, Any]:
    """Return *data* when its status is OK or ZERO_RESULTS, else raise PlacesError."""
    if not isinstance(data, dict) or not data.get("status"):
        logger.error("%s error: missing status in Google Places response", label)
        raise PlacesError("Unexpected response from Google Places API")

    status = data["status"]
    if status not in SUCCESS_STATUSES:
        message = data.get("error_message")
        logger.error("%s error: status=%s message=%s", label, status, message)
        raise PlacesError(message or f"Google Places responded with status {status}")
    return data


class PlacesClient:
    """Synchronous Google Places client.

    An ``httpx.Client`` may be injected; tests pass one built on
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: PlacesConfig = DEFAULT_PLACES_CONFIG,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self._http = http_client or httpx.Client(timeout=config.timeout)

    def close(self) -> None:
        self._http.close()

    def clamp_radius(self, radius: float | None) -> int:
        if radius is None:
            return self.config.default_radius
        return int(min(max(radius, self.config.min_radius), self.config.max_radius))

    def _require_key(self) -> None:
        if not self.config.available:
            raise PlacesNotConfigured("GOOGLE_PLACES_API_KEY is not configured on the server")

    def _get(self, path: str, params: dict[str, Any], label: str, **kwargs: Any) -> httpx.Response:
        self._require_key()
        url = f"{self.config.base_url}/{path}"
        try:
            response = self._http.get(url, params={**params, "key": self.config.api_key}, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("%s request failed: %s", label, exc)
            raise PlacesError(f"{label} request failed: {exc}") from exc
        return response

    def _get_json(self, path: str, params: dict[str, Any], label: str) -> dict[str, Any]:
        response = self._get(path, params, label)
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("%s error: response was not JSON", label)
            raise PlacesError("Unexpected response from Google Places API") from exc
        return validate_status(data, label)

    # ---------------------------------------------------------------------------
    # Nearby search
    # ---------------------------------------------------------------------------

    def search(self, query: ProviderQuery, base_url: str = "") -> SearchPage:
        params: dict[str, Any] = {
            "location": self.config.location,
            "radius": self.clamp_radius(query.radius_meters),
            "type": "restaurant",
            "keyword": query.keyword,
        }
        if query.min_price is not None:
            params["minprice"] = query.min_price
        if query.max_price is not None:
            params["maxprice"] = query.max_price
        if query.open_now:
            params["opennow"] = "true"
        if query.page_token:
            params["pagetoken"] = query.page_token

        data = self._get_json("nearbysearch/json", params, "Nearby")
        results = [
            self._map_summary(place, base_url)
            for place in data.get("results") or []
            if isinstance(place, dict) and place.get("place_id")
        ]
        logger.info("Nearby search %r returned %d results", query.keyword, len(results))
        return SearchPage(results=results, next_page_token=data.get("next_page_token") or None)

    def _map_summary(self, place: dict[str, Any], base_url: str) -> Restaurant:
        photos = place.get("photos") or []
        reference = photos[0].get("photo_reference") if photos and isinstance(photos[0], dict) else None
        image_url = (
            photo_url(base_url, reference, self.config.search_photo_width)
            if reference
            else self.config.search_fallback_image
        )
        return Restaurant(
            id=place["place_id"],
            name=place.get("name") or "",
            image_url=image_url,
            rating=place.get("rating"),
            review_count=place.get("user_ratings_total") or 0,
            address=place.get("vicinity") or "",
            price_level=place.get("price_level"),
            business_status=place.get("business_status") or "UNKNOWN",
            types=place.get("types") or [],
        )

    # ---------------------------------------------------------------------------
    # Details
    # ---------------------------------------------------------------------------

    def details(self, place_id: str, base_url: str = "") -> PlaceDetails:
        data = self._get_json(
            "details/json",
            {"place_id": place_id, "fields": DETAILS_FIELDS},
            "Details",
        )
        place = data.get("result")
        if not isinstance(place, dict):
            raise PlacesNotFound(f"No details found for place {place_id}")

        photo_urls = [
            photo_url(base_url, photo["photo_reference"], self.config.details_photo_width)
            for photo in (place.get("photos") or [])[: self.config.max_detail_photos]
            if isinstance(photo, dict) and photo.get("photo_reference")
        ]

        location = (place.get("geometry") or {}).get("location") or {}
        lat, lng = location.get("lat"), location.get("lng")
        has_coordinates = lat is not None and lng is not None

        raw_reviews = [r for r in place.get("reviews") or [] if isinstance(r, dict)]
        reviews = [
            Review(
                text=r.get("text") or "",
                rating=r.get("rating"),
                author_name=r.get("author_name"),
                relative_time_description=r.get("relative_time_description"),
            )
            for r in raw_reviews
        ]
        total = place.get("user_ratings_total")

        return PlaceDetails(
            id=place.get("place_id") or place_id,
            name=place.get("name") or "",
            rating=place.get("rating"),
            address=place.get("formatted_address"),
            phone=place.get("formatted_phone_number"),
            website=place.get("website"),
            opening_hours=(place.get("opening_hours") or {}).get("weekday_text") or [],
            reviews=reviews,
            image_url=photo_urls[0] if photo_urls else self.config.details_fallback_image,
            photo_urls=photo_urls,
            google_maps_url=place.get("url"),
            map_image_url=static_map_url(lat, lng, self.config.api_key) if has_coordinates else None,
            coordinates=Coordinates(lat=lat, lng=lng) if has_coordinates else None,
            types=place.get("types") or [],
            review_summary=ReviewSummary(
                total=total if total is not None else len(raw_reviews),
                average=place.get("rating"),
            ),
        )

    # ---------------------------------------------------------------------------
    # Photos
    # ---------------------------------------------------------------------------

    def photo(self, reference: str, max_width: int | None = None, max_height: int | None = None) -> PhotoResponse:
        if not reference:
            raise ValueError("Missing photo reference")
        params: dict[str, Any] = {"photoreference": reference}
        if max_width:
            params["maxwidth"] = max_width
        if max_height:
            params["maxheight"] = max_height

        response = self._get("photo", params, "Photo", follow_redirects=True)

        return PhotoResponse(
            content=response.content,
            content_type=response.headers.get("content-type"),
            cache_control=response.headers.get("cache-control"),
        )
