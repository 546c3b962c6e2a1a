from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from dinevalley.chat.models import AssistantUseCase, ChatHistoryItem
from dinevalley.filters.models import Restaurant, Review
from dinevalley.llm.config import LLMConfig
from dinevalley.llm.groq_client import LLMError, LLMNotConfigured, complete_chat
from dinevalley.llm.prompts import (
    COMPARISON_SYSTEM_PROMPT,
    CONCIERGE_SYSTEM_PROMPT,
    build_messages,
    build_review_context,
    describe_restaurant,
    filter_by_keywords,
    sanitize_history,
    sanitize_restaurants,
)

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)
MESSAGES = [{"role": "user", "content": "hi"}]

LUIGI = Restaurant(
    id="1",
    name="Luigi's",
    rating=4.5,
    review_count=120,
    price_level=2,
    address="1 Main St",
    types=["italian_restaurant", "bar"],
    dietary=["Vegan"],
    is_favorite=True,
)
ORCHID = Restaurant(id="2", name="Thai Orchid", rating=4.1, types=["thai_restaurant"])


def _mock_groq_response(content: str | None) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    response.usage = {"total_tokens": 42}
    return response


# ── Groq client ──────────────────────────────────────────────────────────


class TestCompleteChat:
    @patch("dinevalley.llm.groq_client.Groq")
    def test_returns_answer_and_usage(self, mock_groq_cls):
        mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("  Try Luigi's.  ")

        answer, usage = complete_chat(MESSAGES, ENABLED_CONFIG)

        assert answer == "Try Luigi's."
        assert usage == {"total_tokens": 42}
        mock_groq_cls.assert_called_once_with(api_key="test-key", timeout=20.0)
        kwargs = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == ENABLED_CONFIG.model
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 512
        assert kwargs["messages"] == MESSAGES

    @patch("dinevalley.llm.groq_client.Groq")
    def test_api_error_raises(self, mock_groq_cls):
        mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

        with pytest.raises(LLMError):
            complete_chat(MESSAGES, ENABLED_CONFIG)

    @patch("dinevalley.llm.groq_client.Groq")
    def test_empty_completion_raises(self, mock_groq_cls):
        mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("   ")

        with pytest.raises(LLMError, match="did not return a completion"):
            complete_chat(MESSAGES, ENABLED_CONFIG)

    @patch("dinevalley.llm.groq_client.Groq")
    def test_disabled_never_calls_groq(self, mock_groq_cls):
        with pytest.raises(LLMNotConfigured):
            complete_chat(MESSAGES, DISABLED_CONFIG)
        with pytest.raises(LLMNotConfigured):
            complete_chat(MESSAGES, LLMConfig(api_key=""))
        mock_groq_cls.assert_not_called()


# ── Sanitizing ───────────────────────────────────────────────────────────


class TestSanitize:
    def test_history_keeps_last_user_and_assistant_turns(self):
        history = [ChatHistoryItem(role="system", content="ignore me")]
        history += [ChatHistoryItem(role="user" if i % 2 else "assistant", content=str(i)) for i in range(10)]

        kept = sanitize_history(history, 8)

        assert len(kept) == 8
        assert [m["content"] for m in kept] == [str(i) for i in range(2, 10)]
        assert all(m["role"] in ("user", "assistant") for m in kept)

    def test_reviews_trimmed(self):
        reviews = [Review(text=""), Review(text="x" * 400, rating=9, author_name="a" * 100)]
        reviews += [Review(text=f"review {i}") for i in range(5)]
        restaurant = Restaurant(id="1", name="R", reviews=reviews)

        sanitized = sanitize_restaurants([restaurant], 8)[0].reviews

        assert len(sanitized) == 4
        assert len(sanitized[0].text) == 320
        assert sanitized[0].rating == 5.0
        assert len(sanitized[0].author_name) == 80
        assert sanitized[1].text == "review 0"

    def test_restaurants_capped(self):
        restaurants = [Restaurant(id=str(i), name=f"R{i}") for i in range(12)]
        assert len(sanitize_restaurants(restaurants, 8)) == 8


# ── Context formatting ───────────────────────────────────────────────────


class TestContext:
    def test_describe_restaurant(self):
        assert describe_restaurant(LUIGI, 0) == (
            "1. Luigi's | Rating 4.5/5 | 120 reviews | $$ | 1 Main St | "
            "Tags: italian restaurant, bar | Dietary: Vegan | Favorite"
        )

    def test_describe_minimal(self):
        assert describe_restaurant(Restaurant(id="9", name=""), 2) == "3. Unknown | 0 reviews"

    def test_keyword_narrowing(self):
        assert filter_by_keywords([LUIGI, ORCHID], ["italian"]) == [LUIGI]
        assert filter_by_keywords([LUIGI, ORCHID], ["vegan", "thai"]) == [LUIGI, ORCHID]
        assert filter_by_keywords([LUIGI, ORCHID], []) == [LUIGI, ORCHID]
        assert filter_by_keywords([LUIGI, ORCHID], ["sushi"]) == []

    def test_review_context(self):
        restaurant = Restaurant(
            id="1",
            name="Luigi's",
            reviews=[Review(text="Great gnocchi", rating=5, author_name="Ann", relative_time_description="a week ago")],
        )
        assert build_review_context([restaurant]) == "Luigi's: Rated 5.0 Great gnocchi - Ann (a week ago)"
        assert build_review_context([LUIGI]) is None


# ── Message assembly ─────────────────────────────────────────────────────


class TestBuildMessages:
    def test_concierge_layout(self):
        history = [ChatHistoryItem(role="user", content="hello"), ChatHistoryItem(role="assistant", content="hi!")]
        bundle = build_messages("Where for pasta?", history, [LUIGI, ORCHID], keywords=["Italian"])

        assert bundle.messages[0] == {"role": "system", "content": CONCIERGE_SYSTEM_PROMPT}
        assert bundle.messages[1:3] == [{"role": "user", "content": "hello"}, {"role": "assistant", "content": "hi!"}]
        user = bundle.messages[-1]
        assert user["role"] == "user"
        assert "User question: Where for pasta?" in user["content"]
        assert "Luigi's" in user["content"]
        assert "Thai Orchid" not in user["content"]
        assert "Recommend only places that match: italian." in user["content"]
        assert '"followUp"' in user["content"]
        assert bundle.restaurants == [LUIGI]

    def test_no_keyword_match_says_so(self):
        bundle = build_messages("sushi?", [], [LUIGI], keywords=["sushi"])
        assert bundle.restaurants == []
        assert "Nothing in the current results matches: sushi." in bundle.messages[-1]["content"]

    def test_focus_restaurant(self):
        bundle = build_messages("Is this place loud?", [], [LUIGI, ORCHID], focus_restaurant_id="2")
        assert "The user is viewing Thai Orchid." in bundle.messages[-1]["content"]

    def test_comparison_layout(self):
        bundle = build_messages(
            "Compare",
            [],
            [LUIGI, ORCHID],
            use_case=AssistantUseCase.comparison_tool,
            evidence="Best value: Luigi's: Value score 2.25",
        )
        assert bundle.messages[0]["content"] == COMPARISON_SYSTEM_PROMPT
        content = bundle.messages[-1]["content"]
        assert "Restaurants to compare:" in content
        assert "Best value: Luigi's: Value score 2.25" in content
        assert '"followUp"' not in content
