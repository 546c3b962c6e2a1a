from __future__ import annotations

from pydantic import Field

from ..filters.models import CamelModel, Restaurant


class RecommendationRequest(CamelModel):
    restaurants: list[Restaurant] = Field(default_factory=list, description="Candidates currently on screen")
