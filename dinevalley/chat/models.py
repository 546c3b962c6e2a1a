from __future__ import annotations

from enum import Enum

from pydantic import Field

from ..comparison.models import ComparisonResult
from ..filters.models import CamelModel, FilterOptions, Restaurant


class AssistantUseCase(str, Enum):
    restaurant_recs = "restaurant_recs"
    filter_help = "filter_help"
    product_help = "product_help"
    comparison_tool = "comparison_tool"


class ChatHistoryItem(CamelModel):
    role: str
    content: str


class ChatFilters(CamelModel):
    keywords: list[str] = Field(default_factory=list)


class ChatRequest(CamelModel):
    question: str = Field(..., min_length=1, max_length=4000)
    history: list[ChatHistoryItem] = Field(default_factory=list)
    restaurants: list[Restaurant] = Field(default_factory=list)
    filters: ChatFilters | None = None
    focus_restaurant_id: str | None = None
    use_case: AssistantUseCase = AssistantUseCase.restaurant_recs


class StructuredAnswer(CamelModel):
    summary: str | None = None
    highlights: list[str] | None = None
    filters: list[str] | None = None
    follow_up: str | None = None


class ChatResponse(CamelModel):
    answer: str
    structured: StructuredAnswer | None = None
    comparison: ComparisonResult | None = None
    usage: dict | None = None


class DerivedFilters(CamelModel):
    filters: FilterOptions
    keywords: list[str] = Field(default_factory=list)
    search_term: str


class ConciergeRequest(CamelModel):
    question: str = Field(..., min_length=1, max_length=1000)
    history: list[ChatHistoryItem] = Field(default_factory=list)
    restaurants: list[Restaurant] = Field(default_factory=list)


class ConciergeResponse(CamelModel):
    answer: str
    structured: StructuredAnswer | None = None
    derived: DerivedFilters
    recommendations: list[Restaurant] = Field(default_factory=list)
    context_source: str
