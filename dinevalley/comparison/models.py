from __future__ import annotations

from enum import Enum

from pydantic import Field

from ..filters.models import CamelModel, Restaurant

MIN_COMPARE = 2
MAX_COMPARE = 5
SPLIT_DECISION = "Split decision"


class ComparisonCategory(str, Enum):
    best_value = "Best value"
    dietary_needs = "Most options for dietary needs"
    groups = "Best for groups"
    quick_service = "Best for quick service"
    popular_dishes = "Most popular dishes"


# Enum definition order is the display order.
CATEGORY_ORDER: list[ComparisonCategory] = list(ComparisonCategory)


class CategoryHint(CamelModel):
    category: ComparisonCategory
    winner: str
    rationale: str
    tie: bool = False
    winner_ids: list[str] = Field(default_factory=list)

    @property
    def text(self) -> str:
        if self.tie:
            return self.rationale
        return f"{self.winner}: {self.rationale}"


class ScoreResult(CamelModel):
    hints: list[CategoryHint]
    summary: str

    @property
    def per_category_hint(self) -> dict[str, str]:
        return {hint.category.value: hint.text for hint in self.hints}


class ComparisonInsight(CamelModel):
    category: str
    winner: str
    rationale: str


class ComparisonResult(CamelModel):
    overview: str | None = None
    insights: list[ComparisonInsight] = Field(default_factory=list)


class CompareRequest(CamelModel):
    restaurants: list[Restaurant] = Field(..., min_length=MIN_COMPARE, max_length=MAX_COMPARE)
    question: str | None = Field(default=None, max_length=1000)


class CompareResponse(CamelModel):
    overview: str
    insights: list[ComparisonInsight]
    hints: dict[str, str]
    summary: str
    source: str
