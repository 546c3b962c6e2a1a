from __future__ import annotations

import logging
from typing import Sequence

from ..chat.models import AssistantUseCase
from ..filters.models import Restaurant
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import LLMError, complete_chat
from ..llm.parsing import parse_comparison_answer
from ..llm.prompts import build_messages
from .models import CATEGORY_ORDER, CompareResponse, ComparisonInsight, ComparisonResult, ScoreResult
from .scorer import score

logger = logging.getLogger(__name__)

DEFAULT_COMPARE_QUESTION = "Compare these restaurants across every category."

SOURCE_LLM = "llm"
SOURCE_PARTIAL = "partial"
SOURCE_LOCAL = "local"


def _local_insights(scored: ScoreResult) -> list[ComparisonInsight]:
    return [
        ComparisonInsight(category=hint.category.value, winner=hint.winner, rationale=hint.rationale)
        for hint in scored.hints
    ]


def merge_insights(parsed: ComparisonResult, scored: ScoreResult) -> tuple[list[ComparisonInsight], int]:
    """Return insights in category order and how many came from the model."""
    by_category = {}
    for insight in parsed.insights:
        by_category.setdefault(insight.category.strip().lower(), insight)

    merged: list[ComparisonInsight] = []
    from_llm = 0
    for hint in scored.hints:
        insight = by_category.get(hint.category.value.lower())
        if insight is not None:
            merged.append(insight.model_copy(update={"category": hint.category.value}))
            from_llm += 1
        else:
            merged.append(
                ComparisonInsight(category=hint.category.value, winner=hint.winner, rationale=hint.rationale)
            )
    return merged, from_llm


def _ask_llm(
    restaurants: Sequence[Restaurant],
    question: str,
    scored: ScoreResult,
    config: LLMConfig,
) -> ComparisonResult | None:
    bundle = build_messages(
        question,
        [],
        restaurants,
        use_case=AssistantUseCase.comparison_tool,
        evidence=scored.summary,
        max_history=config.max_history,
        max_restaurants=config.max_restaurants,
    )
    answer, _ = complete_chat(bundle.messages, config)
    parsed = parse_comparison_answer(answer)
    if parsed is None:
        logger.warning("Comparison answer was not usable JSON, using local hints")
    return parsed


def compare(
    restaurants: Sequence[Restaurant],
    question: str | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> CompareResponse:
    """
    Compare 2 to 5 restaurants.

    The scorer always runs. Its hints ground the LLM prompt and fill any
    category the model leaves out. Without a usable model answer the
    response is built from the hints alone.
    """
    scored = score(restaurants)
    hints = scored.per_category_hint

    parsed: ComparisonResult | None = None
    if config.available:
        try:
            parsed = _ask_llm(restaurants, (question or "").strip() or DEFAULT_COMPARE_QUESTION, scored, config)
        except LLMError:
            logger.warning("Comparison LLM call failed, using local hints", exc_info=True)

    if parsed is None:
        return CompareResponse(
            overview=scored.summary,
            insights=_local_insights(scored),
            hints=hints,
            summary=scored.summary,
            source=SOURCE_LOCAL,
        )

    insights, from_llm = merge_insights(parsed, scored)
    source = SOURCE_LLM if from_llm == len(CATEGORY_ORDER) else SOURCE_PARTIAL
    return CompareResponse(
        overview=parsed.overview or scored.summary,
        insights=insights,
        hints=hints,
        summary=scored.summary,
        source=source,
    )
