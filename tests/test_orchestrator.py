# tests/test_orchestrator.py
"""End-to-end tests for the Orchestrator state machine."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tempo_ai_orchestrator import (
    AnalysisHistory,
    CacheConfig,
    CacheManager,
    CacheTier,
    FocusTag,
    InvalidAnalysisRequest,
    Language,
    Location,
    Orchestrator,
    OrchestratorState,
    PreferenceModel,
    ResolutionMode,
    ResultSource,
    TimeOfDay,
)
from tempo_ai_orchestrator.cache.keys import make_cache_key


@pytest.fixture
def build(clock):
    """Orchestrator factory sharing the test clock."""

    def _build(generator, **kwargs):
        kwargs.setdefault("clock", clock)
        return Orchestrator(generator, **kwargs)

    return _build


async def _until(predicate, attempts=100):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def failing_source():
    source = MagicMock()
    source.get_latest_snapshot = AsyncMock(side_effect=ConnectionError("health store unavailable"))
    source.get_current_conditions = AsyncMock(side_effect=TimeoutError("weather API timed out"))
    return source


def static_source(bio=None, env=None):
    source = MagicMock()
    source.get_latest_snapshot = AsyncMock(return_value=bio or {})
    source.get_current_conditions = AsyncMock(return_value=env or {})
    return source


class TestFreshPath:
    @pytest.mark.asyncio
    async def test_fresh_result(self, build, make_generator, response_bytes, make_request):
        generator = make_generator(response=response_bytes(tags=[FocusTag.WORK]))
        orchestrator = build(generator)

        result = await orchestrator.analyze("user-1", make_request(tags=[FocusTag.WORK]))

        assert result.source is ResultSource.FRESH
        assert result.tags() == {FocusTag.WORK}
        assert result.synthesis.persona == "Performance Coach"
        assert generator.call_count == 1
        assert orchestrator.governor.ledger_for("user-1").request_count == 1

    @pytest.mark.asyncio
    async def test_override_suppresses_work_lines(self, build, make_generator, response_bytes, make_request):
        generator = make_generator(response=response_bytes(tags=[FocusTag.WORK], synthesis="Rest is today's work"))
        orchestrator = build(generator)

        result = await orchestrator.analyze("user-1", make_request(energy_level=15, tags=[FocusTag.WORK]))

        assert result.source is ResultSource.FRESH
        assert result.synthesis.persona == "Rest Guardian"
        assert result.tag_insights == []
        assert result.resolution_mode is ResolutionMode.OVERRIDE
        assert "Estimate today's focus peak" not in generator.calls[0]

    @pytest.mark.asyncio
    async def test_transitions(self, build, fake_generator, make_request):
        states = []
        orchestrator = build(fake_generator, on_transition=lambda user, state: states.append(state))

        await orchestrator.analyze("user-1", make_request())

        assert states == [
            OrchestratorState.RECEIVED,
            OrchestratorState.CACHE_CHECK,
            OrchestratorState.BUDGET_CHECK,
            OrchestratorState.GENERATE,
            OrchestratorState.VALIDATE,
            OrchestratorState.STORE_AND_RETURN,
            OrchestratorState.DONE,
        ]

    @pytest.mark.asyncio
    async def test_stored_in_every_tier(self, build, fake_generator, make_request):
        orchestrator = build(fake_generator)
        await orchestrator.analyze("user-1", make_request())
        for tier in CacheTier:
            assert orchestrator.cache.size(tier) == 1

    @pytest.mark.asyncio
    async def test_history_recorded(self, build, fake_generator, make_request):
        history = AnalysisHistory()
        orchestrator = build(fake_generator, history=history)
        await orchestrator.analyze("user-1", make_request())
        records = history.records("user-1")
        assert len(records) == 1
        assert records[0].request.energy_level == 75


class TestCaching:
    @pytest.mark.asyncio
    async def test_identical_request_served_from_instant_tier(self, build, make_generator, response_bytes, make_request, clock):
        tags = [FocusTag.WORK, FocusTag.BEAUTY, FocusTag.ATHLETE]
        generator = make_generator(response=response_bytes(tags=tags))
        orchestrator = build(generator)

        first = await orchestrator.analyze("user-1", make_request(energy_level=75, tags=tags))
        clock.advance(1800)
        second = await orchestrator.analyze("user-1", make_request(energy_level=75, tags=tags))

        assert first.source is ResultSource.FRESH
        assert first.synthesis.persona == "Total Performance Concierge"
        assert second.source is ResultSource.CACHE
        assert second.served_tier is CacheTier.INSTANT
        assert second.tags() == first.tags()
        assert generator.call_count == 1
        assert orchestrator.get_stats().cache_hits == 1

    @pytest.mark.asyncio
    async def test_similar_request_adapted(self, build, fake_generator, make_request):
        orchestrator = build(fake_generator)
        first = await orchestrator.analyze("user-1", make_request(energy_level=75))
        adapted = await orchestrator.analyze("user-1", make_request(energy_level=80))

        assert adapted.source is ResultSource.CACHE
        assert adapted.served_tier is CacheTier.CONTEXTUAL
        assert adapted.confidence < first.confidence
        assert fake_generator.call_count == 1
        assert orchestrator.get_stats().adapted == 1

    @pytest.mark.asyncio
    async def test_unchanged_context_reuses_cache(self, build, fake_generator, make_request, clock):
        cache = CacheManager(CacheConfig(energy_tolerance=1), clock=clock)
        orchestrator = build(fake_generator, cache=cache)

        await orchestrator.analyze("user-1", make_request(energy_level=75))
        reused = await orchestrator.analyze("user-1", make_request(energy_level=72))

        assert reused.source is ResultSource.CACHE
        assert fake_generator.call_count == 1
        assert orchestrator.get_stats().reuse_decisions == 1

    @pytest.mark.asyncio
    async def test_meaningful_change_generates_again(self, build, fake_generator, make_request):
        orchestrator = build(fake_generator)
        await orchestrator.analyze("user-1", make_request(energy_level=75))
        result = await orchestrator.analyze("user-1", make_request(energy_level=50))
        assert result.source is ResultSource.FRESH
        assert fake_generator.call_count == 2

    @pytest.mark.asyncio
    async def test_users_do_not_share_cache(self, build, fake_generator, make_request):
        orchestrator = build(fake_generator)
        await orchestrator.analyze("user-1", make_request())
        result = await orchestrator.analyze("user-2", make_request())
        assert result.source is ResultSource.FRESH
        assert fake_generator.call_count == 2


class TestDegradation:
    @pytest.mark.asyncio
    async def test_timeout_without_cache_serves_static(self, build, make_generator, response_bytes, make_request):
        generator = make_generator(response=response_bytes(tags=[FocusTag.WORK]), delay=0.5)
        orchestrator = build(generator)

        result = await orchestrator.analyze("user-1", make_request(), timeout_ms=20)

        assert result.source is ResultSource.STATIC_FALLBACK
        assert result.confidence <= 0.5
        assert result.tags() == {FocusTag.WORK}
        assert orchestrator.get_stats().generator_failures == 1
        assert orchestrator.governor.ledger_for("user-1").request_count == 0

    @pytest.mark.asyncio
    async def test_generator_error_uses_tier3(self, build, fake_generator, make_request):
        orchestrator = build(fake_generator)
        fresh = await orchestrator.analyze("user-1", make_request(energy_level=75))

        fake_generator.error = ConnectionError("upstream 503")
        result = await orchestrator.analyze("user-1", make_request(energy_level=55))

        assert result.source is ResultSource.CACHE
        assert result.served_tier is CacheTier.FALLBACK
        assert result.confidence == pytest.approx(fresh.confidence * 0.7)
        assert orchestrator.get_stats().tier3_fallbacks == 1

    @pytest.mark.asyncio
    async def test_tier3_not_used_across_low_energy_modes(self, build, fake_generator, make_request):
        orchestrator = build(fake_generator)
        await orchestrator.analyze("user-1", make_request(energy_level=75))

        fake_generator.error = ConnectionError("upstream 503")
        result = await orchestrator.analyze("user-1", make_request(energy_level=10))

        assert result.source is ResultSource.STATIC_FALLBACK
        assert result.synthesis.persona == "Rest Guardian"
        assert result.tag_insights == []

    @pytest.mark.asyncio
    async def test_malformed_response(self, build, make_generator, make_request):
        generator = make_generator(response=b"Sorry, I can't produce JSON today")
        orchestrator = build(generator)

        result = await orchestrator.analyze("user-1", make_request())

        assert result.source is ResultSource.STATIC_FALLBACK
        assert orchestrator.get_stats().invalid_responses == 1
        # The call was made, so it is charged
        assert orchestrator.governor.ledger_for("user-1").request_count == 1

    @pytest.mark.asyncio
    async def test_text_response_accepted(self, build, make_generator, response_bytes, make_request):
        generator = make_generator(response=response_bytes(tags=[FocusTag.WORK]).decode("utf-8"))
        orchestrator = build(generator)

        result = await orchestrator.analyze("user-1", make_request())

        assert result.source is ResultSource.FRESH
        assert result.tags() == {FocusTag.WORK}

    @pytest.mark.asyncio
    async def test_non_text_response_degrades(self, build, make_generator, make_request):
        orchestrator = build(make_generator(response=None))

        result = await orchestrator.analyze("user-1", make_request())

        assert result.source is ResultSource.STATIC_FALLBACK
        assert orchestrator.get_stats().generator_failures == 1
        assert orchestrator.governor.ledger_for("user-1").request_count == 0

    @pytest.mark.asyncio
    async def test_budget_exhausted(self, build, fake_generator, make_request):
        orchestrator = build(fake_generator)
        for _ in range(5):
            orchestrator.governor.record_generation("user-1", 0.0)
        before = orchestrator.governor.ledger_for("user-1")

        result = await orchestrator.analyze("user-1", make_request(bio={"hrv": 80.0, "sleep_hours": 5.0}))

        assert result.source is ResultSource.STATIC_FALLBACK
        assert fake_generator.call_count == 0
        assert orchestrator.governor.ledger_for("user-1") == before
        assert orchestrator.get_stats().budget_denials == 1

    @pytest.mark.asyncio
    async def test_static_result_becomes_fallback(self, build, make_generator, make_request):
        orchestrator = build(make_generator(error=RuntimeError("down")))
        await orchestrator.analyze("user-1", make_request())
        assert orchestrator.cache.has_fallback("user-1")

        again = await orchestrator.analyze("user-1", make_request(energy_level=50))
        assert again.source is ResultSource.STATIC_FALLBACK
        assert again.confidence <= 0.5


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_identical_concurrent_requests_share_one_call(self, build, fake_generator, make_request):
        fake_generator.gate = asyncio.Event()
        orchestrator = build(fake_generator)

        tasks = [asyncio.create_task(orchestrator.analyze("user-1", make_request())) for _ in range(5)]
        await _until(lambda: fake_generator.call_count == 1)
        fake_generator.gate.set()
        results = await asyncio.gather(*tasks)

        assert fake_generator.call_count == 1
        assert sorted(r.source.value for r in results) == ["cache"] * 4 + ["fresh"]
        assert orchestrator.get_stats().shared_flights == 4
        assert orchestrator.governor.ledger_for("user-1").request_count == 1

    @pytest.mark.asyncio
    async def test_shared_results_recorded_in_history(self, build, fake_generator, make_request):
        fake_generator.gate = asyncio.Event()
        history = AnalysisHistory()
        orchestrator = build(fake_generator, history=history)

        tasks = [asyncio.create_task(orchestrator.analyze("user-1", make_request())) for _ in range(3)]
        await _until(lambda: fake_generator.call_count == 1)
        fake_generator.gate.set()
        await asyncio.gather(*tasks)

        records = history.records("user-1")
        assert len(records) == 3
        assert sorted(r.result.source.value for r in records) == ["cache", "cache", "fresh"]

    @pytest.mark.asyncio
    async def test_cancelled_caller_still_populates_cache(self, build, fake_generator, make_request):
        fake_generator.gate = asyncio.Event()
        orchestrator = build(fake_generator)
        request = make_request()

        task = asyncio.create_task(orchestrator.analyze("user-1", request))
        await _until(lambda: fake_generator.call_count == 1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        fake_generator.gate.set()
        await orchestrator.aclose()

        entry, tier = orchestrator.cache.lookup(make_cache_key("user-1", request))
        assert entry is not None
        assert tier is CacheTier.INSTANT
        assert fake_generator.completed == 1

    @pytest.mark.asyncio
    async def test_different_users_run_concurrently(self, build, fake_generator, make_request):
        fake_generator.gate = asyncio.Event()
        orchestrator = build(fake_generator)

        tasks = [asyncio.create_task(orchestrator.analyze(f"user-{i}", make_request())) for i in range(3)]
        await _until(lambda: fake_generator.call_count == 3)
        fake_generator.gate.set()
        results = await asyncio.gather(*tasks)
        assert all(r.source is ResultSource.FRESH for r in results)


class TestAnalyzeUser:
    @pytest.mark.asyncio
    async def test_sources_feed_the_request(self, build, fake_generator):
        source = static_source(bio={"sleep_hours": 8.0, "hrv": 50.0}, env={"humidity": 50.0})
        orchestrator = build(fake_generator, biometric_source=source, environmental_source=source)
        prefs = PreferenceModel(active_tags={FocusTag.WORK}, language=Language.EN)

        result = await orchestrator.analyze_user("user-1", prefs, Location(latitude=35.68, longitude=139.69))

        assert result.source is ResultSource.FRESH
        assert "Energy level: 91/100" in fake_generator.calls[0]
        source.get_latest_snapshot.assert_awaited_once_with("user-1")
        source.get_current_conditions.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_sources_degrade_to_empty_context(self, build, fake_generator):
        source = failing_source()
        orchestrator = build(fake_generator, biometric_source=source, environmental_source=source)
        prefs = PreferenceModel(active_tags={FocusTag.CHILL}, language=Language.EN)

        result = await orchestrator.analyze_user(
            "user-1", prefs, Location(latitude=35.68, longitude=139.69), energy_level=60
        )

        assert result.source is ResultSource.FRESH
        assert result.tags() == {FocusTag.CHILL}

    @pytest.mark.asyncio
    async def test_failing_sources_without_energy_is_invalid(self, build, fake_generator):
        source = failing_source()
        orchestrator = build(fake_generator, biometric_source=source, environmental_source=source)
        with pytest.raises(InvalidAnalysisRequest):
            await orchestrator.analyze_user("user-1", PreferenceModel(), Location(latitude=0.0, longitude=0.0))
        assert fake_generator.call_count == 0

    @pytest.mark.asyncio
    async def test_location_timezone_sets_time_of_day(self, build, fake_generator):
        history = AnalysisHistory()
        orchestrator = build(fake_generator, history=history)
        location = Location(latitude=35.68, longitude=139.69, timezone="Asia/Tokyo")
        await orchestrator.analyze_user("user-1", PreferenceModel(), location, energy_level=60)
        assert history.records("user-1")[0].request.time_of_day is TimeOfDay.EVENING


class TestInvalidRequests:
    @pytest.mark.asyncio
    async def test_missing_user(self, build, fake_generator, make_request):
        with pytest.raises(InvalidAnalysisRequest):
            await build(fake_generator).analyze("", make_request())

    @pytest.mark.asyncio
    async def test_no_energy_and_no_biometrics(self, build, fake_generator, make_request):
        orchestrator = build(fake_generator)
        with pytest.raises(InvalidAnalysisRequest):
            await orchestrator.analyze("user-1", make_request(energy_level=None, bio={}))
        assert fake_generator.call_count == 0

    @pytest.mark.asyncio
    async def test_missing_energy_estimated(self, build, fake_generator, make_request):
        history = AnalysisHistory()
        orchestrator = build(fake_generator, history=history)
        await orchestrator.analyze("user-1", make_request(energy_level=None, bio={"sleep_hours": 8.0, "hrv": 50.0}))
        assert history.records("user-1")[0].request.energy_level == 91
