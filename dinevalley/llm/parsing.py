"""
Tolerant parsers for model replies.

The model is asked for JSON but may wrap it in a Markdown fence, surround
it with prose, or ignore the instruction entirely. Every parser here
returns ``None`` instead of raising so callers can fall back to the raw
answer text.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..chat.models import StructuredAnswer
from ..comparison.models import ComparisonInsight, ComparisonResult

logger = logging.getLogger(__name__)

MAX_LIST_ITEMS = 3

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def extract_json_payload(raw: str | None) -> str | None:
    """Return the first balanced ``{...}`` block in *raw*, unwrapping fences."""
    if not raw or not raw.strip():
        return None
    text = raw.strip()
    fence_match = _FENCE_RE.search(text)
    if fence_match:
        text = fence_match.group(1).strip()

    start = text.find("{")
    while start != -1:
        depth = 0
        for idx in range(start, len(text)):
            ch = text[idx]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start: idx + 1]
        start = text.find("{", start + 1)
    return None


def _load_object(raw: str | None) -> dict[str, Any] | None:
    payload = extract_json_payload(raw)
    if payload is None:
        return None
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Model reply contained malformed JSON", exc_info=True)
        return None
    return parsed if isinstance(parsed, dict) else None


def _clean_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _clean_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items[:MAX_LIST_ITEMS] or None


def parse_structured_answer(raw: str | None) -> StructuredAnswer | None:
    parsed = _load_object(raw)
    if parsed is None:
        return None

    answer = StructuredAnswer(
        summary=_clean_text(parsed.get("summary")),
        highlights=_clean_list(parsed.get("highlights")),
        filters=_clean_list(parsed.get("filters")),
        follow_up=_clean_text(parsed.get("followUp", parsed.get("follow_up"))),
    )
    if not any([answer.summary, answer.highlights, answer.filters, answer.follow_up]):
        return None
    return answer


def parse_comparison_answer(raw: str | None) -> ComparisonResult | None:
    parsed = _load_object(raw)
    if parsed is None:
        return None

    overview = _clean_text(parsed.get("overview"))
    raw_insights = parsed.get("insights")
    if not isinstance(raw_insights, list):
        return ComparisonResult(overview=overview) if overview else None

    insights: list[ComparisonInsight] = []
    for entry in raw_insights:
        if not isinstance(entry, dict):
            continue
        category = _clean_text(entry.get("category"))
        winner = _clean_text(entry.get("winner"))
        rationale = _clean_text(entry.get("rationale"))
        if category and winner and rationale:
            insights.append(ComparisonInsight(category=category, winner=winner, rationale=rationale))

    if not insights and not overview:
        return None
    return ComparisonResult(overview=overview, insights=insights)
