from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"
DEFAULT_LOCATION = "40.6084,-75.4902"  # Lehigh Valley, PA


@dataclass(frozen=True)
class PlacesConfig:
    api_key: str = os.getenv("GOOGLE_PLACES_API_KEY", "").strip()
    base_url: str = PLACES_BASE_URL
    location: str = os.getenv("PLACES_LOCATION", DEFAULT_LOCATION)
    timeout: float = 15.0

    # Radius bounds in meters
    min_radius: int = 500
    max_radius: int = 50000
    default_radius: int = 20000

    search_photo_width: int = 400
    details_photo_width: int = 800
    max_detail_photos: int = 8

    search_fallback_image: str = "https://source.unsplash.com/400x300/?restaurant,food"
    details_fallback_image: str = "https://source.unsplash.com/600x400/?restaurant,food"

    @property
    def available(self) -> bool:
        return bool(self.api_key)


DEFAULT_PLACES_CONFIG = PlacesConfig()
