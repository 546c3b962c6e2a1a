from __future__ import annotations

import json

from dinevalley.llm.parsing import extract_json_payload, parse_comparison_answer, parse_structured_answer

COMPARISON = {
    "overview": "Both are solid picks.",
    "insights": [
        {"category": "Best value", "winner": "Alpha", "rationale": "Cheaper with a higher rating."},
        {"category": "Best for groups", "winner": "Bravo", "rationale": "Big bar area."},
    ],
}


# ── Payload extraction ───────────────────────────────────────────────────


class TestExtractJsonPayload:
    def test_json_fence(self):
        raw = "Here you go:\n```json\n{\"a\": 1}\n```\nEnjoy!"
        assert extract_json_payload(raw) == '{"a": 1}'

    def test_bare_fence(self):
        assert extract_json_payload("```\n{\"a\": {\"b\": 2}}\n```") == '{"a": {"b": 2}}'

    def test_prose_around_object(self):
        assert extract_json_payload('Sure! {"a": 1} Hope that helps.') == '{"a": 1}'

    def test_nothing_found(self):
        assert extract_json_payload("no json here") is None
        assert extract_json_payload("") is None
        assert extract_json_payload(None) is None
        assert extract_json_payload("{ never closed") is None


# ── Structured answers ───────────────────────────────────────────────────


class TestStructuredAnswer:
    def test_full_answer(self):
        raw = json.dumps({
            "summary": "  Go to Alpha.  ",
            "highlights": ["a", "", 3, "b", "c", "d"],
            "filters": ["Vegan"],
            "followUp": "Want more?",
        })
        parsed = parse_structured_answer(raw)
        assert parsed is not None
        assert parsed.summary == "Go to Alpha."
        assert parsed.highlights == ["a", "b", "c"]
        assert parsed.filters == ["Vegan"]
        assert parsed.follow_up == "Want more?"

    def test_empty_fields_become_none(self):
        parsed = parse_structured_answer('{"summary": "Hi", "highlights": [], "filters": "x", "followUp": " "}')
        assert parsed is not None
        assert parsed.highlights is None
        assert parsed.filters is None
        assert parsed.follow_up is None

    def test_nothing_usable(self):
        assert parse_structured_answer('{"summary": "", "highlights": []}') is None
        assert parse_structured_answer("Just a plain sentence.") is None
        assert parse_structured_answer('{"summary": "broken",}') is None


# ── Comparison answers ───────────────────────────────────────────────────


class TestComparisonAnswer:
    def test_fenced(self):
        parsed = parse_comparison_answer(f"```json\n{json.dumps(COMPARISON)}\n```")
        assert parsed is not None
        assert parsed.overview == "Both are solid picks."
        assert [i.winner for i in parsed.insights] == ["Alpha", "Bravo"]

    def test_unfenced(self):
        parsed = parse_comparison_answer(json.dumps(COMPARISON))
        assert parsed is not None
        assert len(parsed.insights) == 2

    def test_incomplete_entries_dropped(self):
        raw = json.dumps({
            "insights": [
                {"category": "Best value", "winner": "Alpha", "rationale": "ok"},
                {"category": "Best for groups", "winner": "", "rationale": "missing winner"},
                {"category": "Most popular dishes", "winner": "Bravo"},
                "not an object",
            ]
        })
        parsed = parse_comparison_answer(raw)
        assert parsed is not None
        assert parsed.overview is None
        assert [i.category for i in parsed.insights] == ["Best value"]

    def test_overview_only(self):
        parsed = parse_comparison_answer('{"overview": "Tough call."}')
        assert parsed is not None
        assert parsed.overview == "Tough call."
        assert parsed.insights == []

    def test_unusable(self):
        assert parse_comparison_answer('{"insights": []}') is None
        assert parse_comparison_answer("{{{ not json") is None
        assert parse_comparison_answer("") is None
