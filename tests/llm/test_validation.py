"""Tests for deterministic classification response parsing.

These tests are entirely deterministic -- parsing uses only regex, json,
and pydantic validation (no LLM calls).
"""

import json

import pytest

from triage.domain.errors import ClassificationError
from triage.domain.types import ClassificationErrorKind, EmailCategory
from triage.llm.models import ConfidenceBreakdown
from triage.llm.validation import (
    extract_json_object,
    parse_breakdown,
    parse_classification_response,
)

VALID_PAYLOAD = {
    "urgency": 4,
    "importance": 3,
    "action_required": True,
    "category": "work",
    "confidence": 0.85,
    "reasoning": "Manager asks for a status update by end of day",
    "suggestions": ["Reply with the status update", "Block time this afternoon"],
    "confidence_breakdown": {
        "urgency_confidence": 0.9,
        "importance_confidence": 0.8,
        "category_confidence": 0.95,
        "action_confidence": 0.85,
    },
}


def _response(**overrides: object) -> str:
    return json.dumps({**VALID_PAYLOAD, **overrides})


class TestExtractJsonObject:
    """Tests for extract_json_object."""

    def test_bare_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_object_wrapped_in_prose_and_fence(self):
        text = 'Here is the result:\n```json\n{"a": {"b": 2}}\n```\nLet me know!'
        assert extract_json_object(text) == {"a": {"b": 2}}

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("I cannot classify this email.", "No JSON object"),
            ("{urgency: 4}", "Malformed JSON"),
            ("{} and later {}", "Malformed JSON"),
        ],
        ids=["no-object", "not-json", "two-objects"],
    )
    def test_failures(self, text, message):
        with pytest.raises(ClassificationError, match=message) as exc_info:
            extract_json_object(text)
        assert exc_info.value.kind is ClassificationErrorKind.PARSE_ERROR


class TestParseClassificationResponse:
    """Tests for parse_classification_response."""

    def test_valid_response(self):
        classification, suggestions, breakdown = parse_classification_response(_response())

        assert classification.urgency == 4
        assert classification.importance == 3
        assert classification.action_required is True
        assert classification.category is EmailCategory.WORK
        assert classification.confidence == 0.85
        assert classification.reasoning.startswith("Manager asks")
        assert suggestions == ("Reply with the status update", "Block time this afternoon")
        assert breakdown.category_confidence == 0.95

    def test_camel_case_action_required(self):
        payload = {k: v for k, v in VALID_PAYLOAD.items() if k != "action_required"}
        payload["actionRequired"] = False
        classification, _, _ = parse_classification_response(json.dumps(payload))
        assert classification.action_required is False

    def test_optional_extras_default(self):
        payload = {
            "urgency": 2,
            "importance": 2,
            "action_required": False,
            "category": "newsletter",
            "confidence": 0.6,
        }
        classification, suggestions, breakdown = parse_classification_response(
            json.dumps(payload)
        )
        assert classification.reasoning is None
        assert suggestions == ()
        assert breakdown == ConfidenceBreakdown.uniform(0.6)

    def test_non_string_suggestions_dropped(self):
        _, suggestions, _ = parse_classification_response(
            _response(suggestions=["Reply", 42, None, "Archive"])
        )
        assert suggestions == ("Reply", "Archive")

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"urgency": 6}, "urgency"),
            ({"urgency": 0}, "urgency"),
            ({"importance": "4"}, "importance"),
            ({"confidence": 1.2}, "confidence"),
            ({"confidence": True}, "confidence"),
            ({"confidence": "0.9"}, "confidence"),
            ({"category": "social"}, "category"),
            ({"action_required": "yes"}, "action_required"),
        ],
        ids=[
            "urgency-too-high",
            "urgency-too-low",
            "importance-string",
            "confidence-too-high",
            "confidence-bool",
            "confidence-string",
            "unknown-category",
            "action-string",
        ],
    )
    def test_invalid_fields_are_rejected_not_clamped(self, overrides, field):
        with pytest.raises(ClassificationError, match="Invalid classification fields") as exc_info:
            parse_classification_response(_response(**overrides))
        assert exc_info.value.kind is ClassificationErrorKind.PARSE_ERROR
        assert field in str(exc_info.value)

    def test_missing_field_is_rejected(self):
        payload = {k: v for k, v in VALID_PAYLOAD.items() if k != "category"}
        with pytest.raises(ClassificationError, match="category"):
            parse_classification_response(json.dumps(payload))


class TestParseBreakdown:
    """Tests for parse_breakdown fallbacks."""

    def test_invalid_entries_use_fallback(self):
        raw = {
            "urgency_confidence": 0.4,
            "importance_confidence": 1.5,
            "category_confidence": "high",
            "action_confidence": True,
        }
        breakdown = parse_breakdown(raw, 0.7)
        assert breakdown == ConfidenceBreakdown(
            urgency_confidence=0.4,
            importance_confidence=0.7,
            category_confidence=0.7,
            action_confidence=0.7,
        )

    def test_non_dict_uses_fallback(self):
        assert parse_breakdown(["nope"], 0.5) == ConfidenceBreakdown.uniform(0.5)
