# tests/models/test_result.py
"""Tests for AnalysisResult invariants and wire format."""

import pytest
from pydantic import ValidationError

from tempo_ai_orchestrator.models import (
    AnalysisResult,
    CacheTier,
    FocusTag,
    ResultSource,
    SynthesisSummary,
    TagInsight,
)


class TestStaticConfidenceCeiling:
    def test_static_confidence_capped(self):
        r = AnalysisResult(confidence=0.9, source=ResultSource.STATIC_FALLBACK)
        assert r.confidence == 0.5

    def test_fresh_confidence_untouched(self):
        r = AnalysisResult(confidence=0.9, source=ResultSource.FRESH)
        assert r.confidence == 0.9

    def test_confidence_range_enforced(self):
        with pytest.raises(ValidationError):
            AnalysisResult(confidence=1.5)


class TestServedFrom:
    def test_marks_cache_source_and_tier(self):
        r = AnalysisResult(tag_insights=[TagInsight(tag=FocusTag.WORK, message="x")], confidence=0.8)
        served = r.served_from(CacheTier.INSTANT)
        assert served.source is ResultSource.CACHE
        assert served.served_tier is CacheTier.INSTANT
        assert served.confidence == 0.8
        assert r.source is ResultSource.FRESH

    def test_static_stays_static(self):
        r = AnalysisResult(confidence=0.5, source=ResultSource.STATIC_FALLBACK)
        served = r.served_from(CacheTier.FALLBACK, confidence=0.9)
        assert served.source is ResultSource.STATIC_FALLBACK
        assert served.confidence <= 0.5

    def test_confidence_override_clamped(self):
        r = AnalysisResult(confidence=0.8)
        assert r.served_from(CacheTier.CONTEXTUAL, confidence=-1.0).confidence == 0.0


class TestWireFormat:
    def test_camel_case_keys(self):
        r = AnalysisResult(
            tag_insights=[TagInsight(tag=FocusTag.BEAUTY, message="Moisturise")],
            synthesis=SynthesisSummary(persona="Beauty Advisor", message="Hydrate"),
            source=ResultSource.STATIC_FALLBACK,
            confidence=0.3,
        )
        wire = r.to_wire()
        assert wire["tagInsights"][0]["tag"] == "beauty"
        assert wire["source"] == "staticFallback"
        assert "environmentalInsights" in wire

    def test_parse_from_wire(self):
        r = AnalysisResult.model_validate(
            {"tagInsights": [{"tag": "work", "message": "Focus"}], "confidence": 0.7, "source": "cache"}
        )
        assert r.tags() == {FocusTag.WORK}
        assert r.source is ResultSource.CACHE

    def test_is_empty(self):
        assert AnalysisResult().is_empty
        assert not AnalysisResult(synthesis=SynthesisSummary(persona="p", message="m")).is_empty
