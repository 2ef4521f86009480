"""LLM-backed email classification.

Provides the Anthropic client factory, prompt rendering, response
validation, and the ``EmailClassifier`` used by the batch orchestrator.
"""

from triage.llm.classifier import (
    EmailClassifier,
    build_system_prompt,
    build_user_prompt,
    has_content,
)
from triage.llm.client import CLASSIFICATION_MODEL, get_anthropic_client
from triage.llm.models import ClassificationContext, ClassificationResult, ConfidenceBreakdown
from triage.llm.validation import extract_json_object, parse_classification_response

__all__ = [
    "CLASSIFICATION_MODEL",
    "ClassificationContext",
    "ClassificationResult",
    "ConfidenceBreakdown",
    "EmailClassifier",
    "build_system_prompt",
    "build_user_prompt",
    "extract_json_object",
    "get_anthropic_client",
    "has_content",
    "parse_classification_response",
]
