"""Pydantic models for the classification client's inputs and outputs.

``ClassificationContext`` carries what the prompt needs beyond the email
itself; ``ClassificationResult`` wraps the validated ``Classification`` with
the extras the model returns and the call's cost.
"""

from pydantic import BaseModel, ConfigDict, Field

from triage.domain.models import Classification, UserPreferences


class ConfidenceBreakdown(BaseModel):
    """Per-field confidence reported by the model."""

    model_config = ConfigDict(frozen=True)

    urgency_confidence: float = Field(ge=0.0, le=1.0)
    importance_confidence: float = Field(ge=0.0, le=1.0)
    category_confidence: float = Field(ge=0.0, le=1.0)
    action_confidence: float = Field(ge=0.0, le=1.0)

    @classmethod
    def uniform(cls, confidence: float) -> "ConfidenceBreakdown":
        """Return a breakdown with every field set to *confidence*."""
        return cls(
            urgency_confidence=confidence,
            importance_confidence=confidence,
            category_confidence=confidence,
            action_confidence=confidence,
        )


class ClassificationContext(BaseModel):
    """Read-only context injected into the classification prompt."""

    model_config = ConfigDict(frozen=True)

    preferences: UserPreferences = Field(default_factory=UserPreferences)
    recent_classifications: tuple[Classification, ...] = Field(
        default=(),
        description="Most recent first; only the first five reach the prompt",
    )


class ClassificationResult(BaseModel):
    """A validated classification plus model extras and call metadata."""

    model_config = ConfigDict(frozen=True)

    classification: Classification
    suggestions: tuple[str, ...] = ()
    confidence_breakdown: ConfidenceBreakdown
    processing_time_ms: int = Field(default=0, ge=0)
    tokens_used: int = Field(default=0, ge=0)
    model: str | None = None
