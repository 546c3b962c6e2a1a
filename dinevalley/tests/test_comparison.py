from __future__ import annotations

import json
from unittest.mock import patch

from dinevalley.comparison.models import CATEGORY_ORDER, ComparisonCategory
from dinevalley.comparison.service import compare
from dinevalley.filters.models import Restaurant
from dinevalley.llm.config import LLMConfig
from dinevalley.llm.groq_client import LLMError

ENABLED = LLMConfig(api_key="test-key", enabled=True)
DISABLED = LLMConfig(api_key="", enabled=True)

RESTAURANTS = [
    Restaurant(id="a", name="Alpha", rating=4.8, price_level=1, review_count=300, types=["meal_takeaway"]),
    Restaurant(id="b", name="Bravo", rating=4.0, price_level=3, review_count=40, dietary=["Vegan"], types=["bar"]),
]


def _answer(categories: list[str], overview: str | None = "Alpha edges it.") -> str:
    payload = {
        "insights": [{"category": c, "winner": "Alpha", "rationale": f"Model says {c}"} for c in categories],
    }
    if overview:
        payload["overview"] = overview
    return json.dumps(payload)


class TestCompare:
    @patch("dinevalley.comparison.service.complete_chat")
    def test_without_key_uses_local_hints(self, mock_complete):
        result = compare(RESTAURANTS, config=DISABLED)

        mock_complete.assert_not_called()
        assert result.source == "local"
        assert [i.category for i in result.insights] == [c.value for c in CATEGORY_ORDER]
        assert result.insights[0].winner == "Alpha"
        assert result.overview == result.summary
        assert set(result.hints) == {c.value for c in CATEGORY_ORDER}

    @patch("dinevalley.comparison.service.complete_chat")
    def test_full_model_answer(self, mock_complete):
        mock_complete.return_value = (_answer([c.value for c in CATEGORY_ORDER]), None)

        result = compare(RESTAURANTS, "Which is better?", config=ENABLED)

        assert result.source == "llm"
        assert result.overview == "Alpha edges it."
        assert all(i.rationale.startswith("Model says") for i in result.insights)
        messages = mock_complete.call_args.args[0]
        assert "Which is better?" in messages[-1]["content"]
        assert "Local scoring hints" in messages[-1]["content"]

    @patch("dinevalley.comparison.service.complete_chat")
    def test_missing_categories_filled_from_hints(self, mock_complete):
        mock_complete.return_value = (_answer(["best value", "Best for groups"], overview=None), None)

        result = compare(RESTAURANTS, config=ENABLED)

        assert result.source == "partial"
        assert result.overview == result.summary
        by_category = {i.category: i for i in result.insights}
        assert by_category[ComparisonCategory.best_value.value].rationale == "Model says best value"
        assert by_category[ComparisonCategory.dietary_needs.value].winner == "Bravo"
        assert [i.category for i in result.insights] == [c.value for c in CATEGORY_ORDER]

    @patch("dinevalley.comparison.service.complete_chat")
    def test_unusable_answer_falls_back(self, mock_complete):
        mock_complete.return_value = ("I think Alpha is nicer.", None)
        assert compare(RESTAURANTS, config=ENABLED).source == "local"

    @patch("dinevalley.comparison.service.complete_chat")
    def test_llm_failure_falls_back(self, mock_complete):
        mock_complete.side_effect = LLMError("timeout")
        result = compare(RESTAURANTS, config=ENABLED)
        assert result.source == "local"
        assert len(result.insights) == 5
