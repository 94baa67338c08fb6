# tests/test_static_rules.py
"""Tests for the rule-based static advice engine."""

from itertools import combinations

import pytest

from tempo_ai_orchestrator.models import (
    TAG_CATALOG,
    FocusTag,
    Language,
    LifestyleMode,
    ResolutionMode,
    ResultSource,
    TimeOfDay,
    Urgency,
)
from tempo_ai_orchestrator.synthesis.resolver import ConflictResolver
from tempo_ai_orchestrator.validation.static_rules import StaticAdviceEngine


@pytest.fixture
def engine():
    return StaticAdviceEngine()


@pytest.fixture
def advise(engine):
    resolver = ConflictResolver()

    def _advise(request):
        return engine.generate(request, resolver.resolve_request(request))

    return _advise


class TestStrategyContract:
    def test_override_is_rest_only(self, advise, make_request):
        result = advise(make_request(energy_level=10, tags=list(FocusTag)))
        assert result.tag_insights == []
        assert result.synthesis.persona == "Rest Guardian"
        assert len(result.action_suggestions) == 1
        assert result.resolution_mode is ResolutionMode.OVERRIDE

    @pytest.mark.parametrize("tags", [frozenset(c) for n in (1, 2, 3) for c in combinations(FocusTag, n)])
    def test_one_line_per_active_tag(self, advise, make_request, tags):
        result = advise(make_request(energy_level=75, tags=tags))
        assert result.tags() == set(tags)
        assert len(result.tag_insights) == len(tags)
        assert all(i.message for i in result.tag_insights)

    def test_gentle_softens_performance_tags(self, advise, make_request):
        result = advise(make_request(energy_level=30, tags=[FocusTag.WORK, FocusTag.CHILL]))
        work = next(i for i in result.tag_insights if i.tag is FocusTag.WORK)
        assert work.message == TAG_CATALOG[FocusTag.WORK].softened_for(Language.EN)
        assert result.synthesis.persona == "Gentle Recovery Coach"

    def test_source_and_confidence(self, advise, make_request):
        result = advise(make_request())
        assert result.source is ResultSource.STATIC_FALLBACK
        assert result.confidence == 0.5

    def test_sparse_data_lowers_confidence(self, advise, make_request):
        assert advise(make_request(bio={}, env={})).confidence == 0.3


class TestRules:
    def test_work_peak_in_the_morning(self, advise, make_request):
        result = advise(make_request(energy_level=80, tags=[FocusTag.WORK], time_of_day=TimeOfDay.MORNING))
        assert "focus is strong" in result.tag_insights[0].message

    def test_work_under_pressure_drop(self, advise, make_request):
        result = advise(
            make_request(energy_level=60, tags=[FocusTag.WORK], time_of_day=TimeOfDay.AFTERNOON, env={"pressure_trend": -5.0})
        )
        assert result.tag_insights[0].urgency is Urgency.WARNING

    def test_beauty_dry_air_mentions_humidity(self, advise, make_request):
        result = advise(make_request(tags=[FocusTag.BEAUTY], env={"humidity": 35.0}))
        assert "35%" in result.tag_insights[0].message

    def test_athlete_peak_needs_athlete_mode(self, advise, make_request):
        env = {"feels_like": 20.0}
        standard = advise(make_request(energy_level=80, tags=[FocusTag.ATHLETE], env=env))
        athlete = advise(
            make_request(energy_level=80, tags=[FocusTag.ATHLETE], env=env, lifestyle_mode=LifestyleMode.ATHLETE)
        )
        assert "high-intensity" not in standard.tag_insights[0].message
        assert "high-intensity" in athlete.tag_insights[0].message

    def test_synergy_action(self, advise, make_request):
        result = advise(make_request(tags=[FocusTag.WORK, FocusTag.ATHLETE]))
        titles = [a.title for a in result.action_suggestions]
        assert any("between focus blocks" in t for t in titles)

    def test_breathing_when_tired(self, advise, make_request):
        result = advise(make_request(energy_level=45, tags=[FocusTag.DIET]))
        assert any(a.title == "Five deep breaths" for a in result.action_suggestions)

    def test_japanese(self, advise, make_request):
        result = advise(make_request(tags=[FocusTag.CHILL], language=Language.JA, env={"pressure_trend": -4.0}))
        assert result.tag_insights[0].message == "気圧の低下で体が重く感じやすい日です"


class TestEnvironment:
    def test_thresholds(self, advise, make_request):
        env = {"pressure_trend": -4.0, "humidity": 25.0, "feels_like": 32.0, "uv_index": 7.0}
        result = advise(make_request(env=env))
        assert [i.factor for i in result.environmental_insights] == ["pressure", "humidity", "temperature", "uv"]
        assert all(i.urgency is Urgency.WARNING for i in result.environmental_insights)

    def test_mildly_dry_is_info(self, advise, make_request):
        result = advise(make_request(env={"humidity": 35.0}))
        assert [(i.factor, i.urgency) for i in result.environmental_insights] == [("humidity", Urgency.INFO)]

    def test_calm_conditions(self, advise, make_request):
        assert advise(make_request()).environmental_insights == []
