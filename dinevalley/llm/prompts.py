from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..chat.models import AssistantUseCase, ChatHistoryItem
from ..comparison.models import CATEGORY_ORDER
from ..filters.models import MAX_RATING, MIN_RATING, Restaurant, Review, clamp

_ALLOWED_ROLES = ("user", "assistant")
_MAX_REVIEWS = 4
_MAX_REVIEW_TEXT = 320
_MAX_AUTHOR = 80
_MAX_RELATIVE_TIME = 60
_REVIEW_CONTEXT_RESTAURANTS = 6
_REVIEWS_PER_RESTAURANT = 3
_DESCRIBED_TAGS = 5

_CATEGORY_LIST = ", ".join(category.value for category in CATEGORY_ORDER)

# ---------------------------------------------------------------------------
# LLM Prompts
# ---------------------------------------------------------------------------

CONCIERGE_SYSTEM_PROMPT = " ".join([
    "You are the dining concierge of Dine Valley, an app for discovering restaurants in the Lehigh Valley.",
    "Keep replies short and warm; either explain how the app works or draw on the restaurant context you are given.",
    "If review snippets are present, quote them when asked about signature dishes, service or atmosphere.",
    "For dining questions use only the supplied restaurant list; when something is unknown, say so "
    "and point to where the app shows it.",
    "Do not name any restaurant that is absent from the context. If nothing fits the request, say that directly.",
    "Recommend one restaurant unless the user asks for several or for alternatives.",
    "Suggest changing filters or trying another cuisine only when no restaurant in context fits.",
    "Mention cuisine types, dietary tags, price level and favorite status where they explain a pick.",
    "For questions about the product, describe smart filters, favorites, recently viewed places "
    "and the Google Places data behind them.",
    "Reply in at most two sentences.",
])

COMPARISON_SYSTEM_PROMPT = " ".join([
    "You are the side-by-side restaurant comparison assistant of Dine Valley.",
    "Compare only the restaurants listed in the context; never add others.",
    "Reply with JSON only, shaped like:",
    '{ "overview": "one upbeat sentence", "insights": [ { "category": "Best value", '
    '"winner": "Restaurant name or \\"Split decision\\"", "rationale": "reason under 110 characters" } ] }',
    f"Give exactly one insight for each category: {_CATEGORY_LIST}.",
    'When the data cannot settle a category, use "Split decision" as the winner with a brief reason.',
    "Base the reasons on ratings, review counts, price symbols, cuisine types, dietary tags "
    "and takeaway or delivery signals.",
    "Write nothing outside the JSON object.",
])

STRUCTURED_RESPONSE_GUIDE = """\
Reply with a single JSON object of this form:
{
  "summary": "a direct answer in at most two short sentences",
  "highlights": ["up to 3 brief takeaways or next steps"],
  "filters": ["up to 3 filter or tag ideas that fit the request"],
  "followUp": "one short prompt inviting the user to keep exploring"
}
- Every string stays under 160 characters.
- Use "" or [] for fields that do not apply.
- Only name restaurants that appear in the context.
- No markdown and no text outside the JSON."""


# ---------------------------------------------------------------------------
# Sanitizing
# ---------------------------------------------------------------------------


def sanitize_history(history: Sequence[ChatHistoryItem], limit: int) -> list[dict[str, str]]:
    kept = [
        {"role": item.role, "content": item.content}
        for item in history
        if item.role in _ALLOWED_ROLES and isinstance(item.content, str)
    ]
    return kept[-limit:] if limit > 0 else []


def _trimmed(value: str | None, limit: int) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()[:limit]


def sanitize_reviews(reviews: Sequence[Review]) -> list[Review]:
    sanitized: list[Review] = []
    for review in reviews:
        text = _trimmed(review.text, _MAX_REVIEW_TEXT)
        if not text:
            continue
        rating = clamp(review.rating, MIN_RATING, MAX_RATING) if review.rating is not None else None
        sanitized.append(Review(
            text=text,
            rating=rating,
            author_name=_trimmed(review.author_name, _MAX_AUTHOR),
            relative_time_description=_trimmed(review.relative_time_description, _MAX_RELATIVE_TIME),
        ))
        if len(sanitized) >= _MAX_REVIEWS:
            break
    return sanitized


def sanitize_restaurants(restaurants: Sequence[Restaurant], limit: int) -> list[Restaurant]:
    return [
        r.model_copy(update={"reviews": sanitize_reviews(r.reviews)})
        for r in list(restaurants)[:limit]
    ]


def restaurant_search_text(restaurant: Restaurant) -> str:
    parts = [restaurant.name, *(t.replace("_", " ") for t in restaurant.types), *restaurant.dietary]
    return " ".join(p for p in parts if p).lower()


def filter_by_keywords(restaurants: Sequence[Restaurant], keywords: Sequence[str]) -> list[Restaurant]:
    """Keep restaurants mentioning any keyword; no keywords keeps everything."""
    if not keywords:
        return list(restaurants)
    return [r for r in restaurants if any(k in restaurant_search_text(r) for k in keywords)]


def normalize_keywords(keywords: Sequence[str] | None) -> list[str]:
    if not keywords:
        return []
    return [k.lower().strip() for k in keywords if isinstance(k, str) and k.strip()]


# ---------------------------------------------------------------------------
# Context formatting
# ---------------------------------------------------------------------------


def describe_restaurant(restaurant: Restaurant, index: int) -> str:
    parts = [f"{index + 1}. {restaurant.name.strip() or 'Unknown'}"]
    if restaurant.rating is not None:
        parts.append(f"Rating {restaurant.rating:.1f}/5")
    parts.append(f"{restaurant.review_count} reviews")
    if restaurant.price_level:
        parts.append("$" * min(max(1, restaurant.price_level), 4))
    if restaurant.address:
        parts.append(restaurant.address)
    if restaurant.types:
        tags = ", ".join(t.replace("_", " ") for t in restaurant.types[:_DESCRIBED_TAGS])
        parts.append(f"Tags: {tags}")
    if restaurant.dietary:
        parts.append(f"Dietary: {', '.join(restaurant.dietary[:_DESCRIBED_TAGS])}")
    if restaurant.is_favorite:
        parts.append("Favorite")
    return " | ".join(parts)


def build_restaurant_context(restaurants: Sequence[Restaurant]) -> str | None:
    if not restaurants:
        return None
    return "\n".join(describe_restaurant(r, i) for i, r in enumerate(restaurants))


def build_review_context(restaurants: Sequence[Restaurant]) -> str | None:
    lines: list[str] = []
    for restaurant in [r for r in restaurants if r.name][:_REVIEW_CONTEXT_RESTAURANTS]:
        for review in restaurant.reviews[:_REVIEWS_PER_RESTAURANT]:
            parts = [f"{restaurant.name}:"]
            if review.rating:
                parts.append(f"Rated {review.rating:.1f}")
            parts.append(review.text)
            if review.author_name:
                parts.append(f"- {review.author_name}")
            if review.relative_time_description:
                parts.append(f"({review.relative_time_description})")
            lines.append(" ".join(parts))
    return "\n".join(lines) if lines else None


# ---------------------------------------------------------------------------
# Message assembly
# ---------------------------------------------------------------------------


@dataclass
class PromptBundle:
    messages: list[dict[str, str]]
    restaurants: list[Restaurant] = field(default_factory=list)


def build_messages(
    question: str,
    history: Sequence[ChatHistoryItem],
    restaurants: Sequence[Restaurant],
    *,
    keywords: Sequence[str] | None = None,
    focus_restaurant_id: str | None = None,
    use_case: AssistantUseCase = AssistantUseCase.restaurant_recs,
    evidence: str | None = None,
    max_history: int = 8,
    max_restaurants: int = 8,
) -> PromptBundle:
    """Assemble the system prompt, trimmed history and user turn."""
    is_comparison = use_case == AssistantUseCase.comparison_tool
    keywords = normalize_keywords(keywords)
    sanitized = sanitize_restaurants(restaurants, max_restaurants)
    for_prompt = filter_by_keywords(sanitized, keywords)

    restaurant_context = build_restaurant_context(for_prompt)
    review_context = build_review_context(for_prompt)
    focus = next((r for r in for_prompt if r.id == focus_restaurant_id), None) if focus_restaurant_id else None

    user_parts: list[str | None] = [f"User question: {question.strip()}"]
    if is_comparison:
        user_parts += [
            f"Restaurants to compare:\n{restaurant_context}" if restaurant_context else "No restaurants provided.",
            f"Google review snippets:\n{review_context}" if review_context else None,
            f"Local scoring hints (prefer these unless the data contradicts them):\n{evidence}" if evidence else None,
            f"Return JSON only. Categories: {_CATEGORY_LIST}.",
        ]
    else:
        user_parts += [
            f"Restaurant context:\n{restaurant_context}" if restaurant_context else None,
            f"Google review snippets:\n{review_context}" if review_context else None,
            (
                f"The user is viewing {focus.name}. Questions about \"this place\" or its menu refer to it; "
                "do not suggest other restaurants unless asked."
            ) if focus else None,
        ]
        if keywords and for_prompt:
            user_parts.append(f"Recommend only places that match: {', '.join(keywords)}.")
        if keywords and not for_prompt:
            user_parts.append(
                f"Nothing in the current results matches: {', '.join(keywords)}. Say so, suggest adjusting "
                "the filters and do not make up places."
            )
        if keywords:
            user_parts.append("Stay within the requested cuisine or category unless the user asks for something else.")
        else:
            user_parts.append("When asked for suggestions, pick the most relevant restaurants from the list.")
        user_parts.append(f"Use-case: {use_case.value}.\n{STRUCTURED_RESPONSE_GUIDE}")

    system_prompt = COMPARISON_SYSTEM_PROMPT if is_comparison else CONCIERGE_SYSTEM_PROMPT
    messages = [
        {"role": "system", "content": system_prompt},
        *sanitize_history(history, max_history),
        {"role": "user", "content": "\n\n".join(p for p in user_parts if p)},
    ]
    return PromptBundle(messages=messages, restaurants=for_prompt)
