"""Deterministic parsing of classification responses.

The model is asked for a single JSON object, but it occasionally wraps the
object in prose or a code fence.  The first ``{`` through the last ``}`` is
taken as the payload and validated against ``Classification``; any failure
becomes a ``ClassificationError`` of kind ``parse_error``.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from triage.domain.errors import ClassificationError
from triage.domain.models import Classification
from triage.domain.types import ClassificationErrorKind
from triage.llm.models import ConfidenceBreakdown

_JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

_BREAKDOWN_FIELDS = (
    "urgency_confidence",
    "importance_confidence",
    "category_confidence",
    "action_confidence",
)


def extract_json_object(text: str) -> dict[str, Any]:
    """Pull the outermost JSON object out of a model response.

    Args:
        text: Raw text content returned by the model.

    Returns:
        The decoded JSON object.

    Raises:
        ClassificationError: If no object is present or it does not decode.
    """
    match = _JSON_OBJECT_PATTERN.search(text)
    if match is None:
        raise ClassificationError(
            ClassificationErrorKind.PARSE_ERROR, "No JSON object found in model response"
        )
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ClassificationError(
            ClassificationErrorKind.PARSE_ERROR, f"Malformed JSON in model response: {exc}"
        ) from exc
    if not isinstance(payload, dict):
        raise ClassificationError(
            ClassificationErrorKind.PARSE_ERROR, "Model response JSON is not an object"
        )
    return payload


def _unit_interval(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not 0.0 <= value <= 1.0:
        return None
    return float(value)


def parse_breakdown(raw: object, fallback: float) -> ConfidenceBreakdown:
    """Build a breakdown, substituting *fallback* for missing or invalid fields."""
    source = raw if isinstance(raw, dict) else {}
    values = {}
    for field in _BREAKDOWN_FIELDS:
        value = _unit_interval(source.get(field))
        values[field] = fallback if value is None else value
    return ConfidenceBreakdown(**values)


def parse_classification_response(
    text: str,
) -> tuple[Classification, tuple[str, ...], ConfidenceBreakdown]:
    """Validate a model response into a classification and its extras.

    Out-of-range or wrongly typed fields reject the whole response; nothing
    is clamped.  ``suggestions`` keeps only string entries.

    Args:
        text: Raw text content returned by the model.

    Returns:
        ``(classification, suggestions, confidence_breakdown)``.

    Raises:
        ClassificationError: Kind ``parse_error`` for any malformed response.
    """
    payload = extract_json_object(text)
    try:
        classification = Classification.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ClassificationError(
            ClassificationErrorKind.PARSE_ERROR,
            f"Invalid classification fields: {', '.join(fields)}",
        ) from exc

    raw_suggestions = payload.get("suggestions")
    suggestions: tuple[str, ...] = ()
    if isinstance(raw_suggestions, list):
        suggestions = tuple(s for s in raw_suggestions if isinstance(s, str))

    breakdown = parse_breakdown(payload.get("confidence_breakdown"), classification.confidence)
    return classification, suggestions, breakdown
