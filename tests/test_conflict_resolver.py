# tests/test_conflict_resolver.py
"""Tests for ConflictResolver mode selection and persona merging."""

from itertools import combinations

import pytest

from tempo_ai_orchestrator.exceptions import InvalidAnalysisRequest
from tempo_ai_orchestrator.models import FocusTag, Language, ResolutionMode
from tempo_ai_orchestrator.synthesis.resolver import (
    GENTLE_RECOVERY_COACH,
    PERSONAL_HEALTH_GUIDE,
    REST_GUARDIAN,
    ConflictResolver,
    InstructionDetail,
    combination_persona,
)

ALL_TAG_SETS = [frozenset(c) for size in range(len(FocusTag) + 1) for c in combinations(FocusTag, size)]


@pytest.fixture
def resolver():
    return ConflictResolver()


class TestOverride:
    """Energy at or below 20 suppresses every tag, whatever the selection."""

    @pytest.mark.parametrize("tags", ALL_TAG_SETS, ids=lambda t: "+".join(sorted(x.value for x in t)) or "none")
    def test_override_for_every_tag_set(self, resolver, tags):
        strategy = resolver.resolve(tags, 15)
        assert strategy.mode is ResolutionMode.OVERRIDE
        assert strategy.unified_persona == REST_GUARDIAN
        assert strategy.tag_instructions == ()
        assert not strategy.expects_tag_insights

    @pytest.mark.parametrize("energy", [0, 20, -30])
    def test_boundary(self, resolver, energy):
        assert resolver.resolve({FocusTag.WORK}, energy).mode is ResolutionMode.OVERRIDE

    def test_21_is_not_override(self, resolver):
        assert resolver.resolve({FocusTag.WORK}, 21).mode is ResolutionMode.GENTLE


class TestGentle:
    def test_performance_tags_softened(self, resolver):
        strategy = resolver.resolve({FocusTag.WORK, FocusTag.BEAUTY, FocusTag.ATHLETE}, 35)
        assert strategy.mode is ResolutionMode.GENTLE
        assert strategy.unified_persona == GENTLE_RECOVERY_COACH
        details = {i.tag: i.detail for i in strategy.tag_instructions}
        assert details == {
            FocusTag.WORK: InstructionDetail.SOFTENED,
            FocusTag.BEAUTY: InstructionDetail.FULL,
            FocusTag.ATHLETE: InstructionDetail.SOFTENED,
        }

    def test_softened_instruction_has_single_line(self, resolver):
        work = resolver.resolve({FocusTag.WORK}, 30).instruction_for(FocusTag.WORK)
        assert work.softened
        assert len(work.lines(Language.EN)) == 1
        assert len(work.lines(Language.JA)) == 1

    def test_upper_boundary(self, resolver):
        assert resolver.resolve({FocusTag.DIET}, 40).mode is ResolutionMode.GENTLE
        assert resolver.resolve({FocusTag.DIET}, 41).mode is ResolutionMode.BALANCED


class TestHolistic:
    def test_known_triple_persona(self, resolver):
        strategy = resolver.resolve({FocusTag.WORK, FocusTag.BEAUTY, FocusTag.ATHLETE}, 75)
        assert strategy.mode is ResolutionMode.HOLISTIC
        assert strategy.unified_persona == "Total Performance Concierge"

    def test_weighted_order(self, resolver):
        strategy = resolver.resolve({FocusTag.BEAUTY, FocusTag.WORK, FocusTag.ATHLETE}, 75)
        assert [i.tag for i in strategy.tag_instructions] == [FocusTag.WORK, FocusTag.ATHLETE, FocusTag.BEAUTY]
        assert strategy.tag_instructions[0].weight == 1.2

    def test_unknown_combination_uses_generic_guide(self, resolver):
        strategy = resolver.resolve(set(FocusTag), 80)
        assert strategy.mode is ResolutionMode.HOLISTIC
        assert strategy.unified_persona == PERSONAL_HEALTH_GUIDE
        assert strategy.tags == frozenset(FocusTag)


class TestBalanced:
    def test_single_tag_persona(self, resolver):
        strategy = resolver.resolve({FocusTag.CHILL}, 60)
        assert strategy.mode is ResolutionMode.BALANCED
        assert strategy.unified_persona == "Mindfulness Guide"

    def test_pair_persona(self, resolver):
        strategy = resolver.resolve({FocusTag.WORK, FocusTag.BEAUTY}, 60)
        assert strategy.unified_persona == "High-Performance Wellness Expert"
        assert all(i.weight == 1.0 and i.detail is InstructionDetail.FULL for i in strategy.tag_instructions)

    def test_no_tags(self, resolver):
        strategy = resolver.resolve(set(), 60)
        assert strategy.mode is ResolutionMode.BALANCED
        assert strategy.unified_persona == PERSONAL_HEALTH_GUIDE
        assert not strategy.expects_tag_insights

    def test_every_pair_has_a_persona(self):
        for pair in combinations(FocusTag, 2):
            assert combination_persona(frozenset(pair)) != PERSONAL_HEALTH_GUIDE


class TestMetrics:
    def test_missing_metrics_reported(self, resolver):
        strategy = resolver.resolve({FocusTag.WORK}, 70, available_metrics={"hrv"})
        work = strategy.instruction_for(FocusTag.WORK)
        assert work.metrics == ("hrv",)
        assert "sleep_hours" in work.missing_metrics
        assert "hrv" not in work.missing_metrics

    def test_resolve_request(self, resolver, make_request):
        strategy = resolver.resolve_request(make_request(energy_level=75, tags=[FocusTag.WORK]))
        assert strategy.mode is ResolutionMode.BALANCED
        assert strategy.energy_level == 75

    def test_missing_energy_rejected(self, resolver):
        with pytest.raises(InvalidAnalysisRequest):
            resolver.resolve({FocusTag.WORK}, None)

    def test_deterministic(self, resolver):
        tags = {FocusTag.DIET, FocusTag.CHILL, FocusTag.BEAUTY}
        assert resolver.resolve(tags, 55) == resolver.resolve(set(reversed(list(tags))), 55)
