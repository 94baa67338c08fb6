# tempo_ai_orchestrator/models/result.py
"""Analysis result payload returned to callers."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import Field, model_validator

from ..base_models import WireModel
from .enums import CacheTier, FocusTag, ResolutionMode, ResultSource, Urgency

STATIC_CONFIDENCE_CEILING = 0.5


class TagInsight(WireModel):
    """One tag-specific line of advice."""

    tag: FocusTag
    message: str = Field(..., min_length=1)
    icon: str = ""
    urgency: Urgency = Urgency.INFO


class SynthesisSummary(WireModel):
    """Unified message written in the resolved persona's voice."""

    persona: str
    message: str = Field(..., min_length=1)
    title: str = ""


class EnvironmentalInsight(WireModel):
    factor: str
    message: str = Field(..., min_length=1)
    urgency: Urgency = Urgency.INFO


class ActionSuggestion(WireModel):
    """A small "today's try" action."""

    title: str = Field(..., min_length=1)
    description: str = ""
    action_type: str = "rest"
    estimated_time: str = ""
    difficulty: str = "easy"


class AnalysisResult(WireModel):
    """
    Advice for one analysis request.

    ``source`` tells the caller how the advice was obtained; degraded paths
    lower ``confidence`` instead of raising. Static advice never claims more
    than ``STATIC_CONFIDENCE_CEILING``.
    """

    tag_insights: list[TagInsight] = Field(default_factory=list)
    synthesis: SynthesisSummary | None = None
    environmental_insights: list[EnvironmentalInsight] = Field(default_factory=list)
    action_suggestions: list[ActionSuggestion] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    source: ResultSource = ResultSource.FRESH

    # Provenance
    resolution_mode: ResolutionMode | None = None
    served_tier: CacheTier | None = None
    repairs: list[str] = Field(default_factory=list, description="Fields dropped or repaired during validation")
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def _cap_static_confidence(self) -> AnalysisResult:
        if self.source is ResultSource.STATIC_FALLBACK and self.confidence > STATIC_CONFIDENCE_CEILING:
            self.confidence = STATIC_CONFIDENCE_CEILING
        return self

    @property
    def is_empty(self) -> bool:
        return not self.tag_insights and self.synthesis is None

    def tags(self) -> set[FocusTag]:
        return {insight.tag for insight in self.tag_insights}

    def served_from(self, tier: CacheTier, confidence: float | None = None) -> AnalysisResult:
        """Copy of this result marked as served from a cache tier.

        Static advice keeps its ``staticFallback`` source and confidence ceiling.
        """
        static = self.source is ResultSource.STATIC_FALLBACK
        update: dict = {
            "source": ResultSource.STATIC_FALLBACK if static else ResultSource.CACHE,
            "served_tier": tier,
        }
        if confidence is not None:
            ceiling = STATIC_CONFIDENCE_CEILING if static else 1.0
            update["confidence"] = max(0.0, min(ceiling, confidence))
        return self.model_copy(update=update)
