# tempo_ai_orchestrator/orchestrator.py
"""
Orchestrator - the façade that drives one analysis request from receipt to
result.

State machine::

    RECEIVED -> CACHE_CHECK -> CACHE_HIT -> DONE
                            \\-> BUDGET_CHECK -> STATIC_FALLBACK -> DONE     (denied)
                                             \\-> GENERATE -> VALIDATE -> STORE_AND_RETURN -> DONE
                                                          \\          \\-> FALLBACK_TIER3 -> DONE   (invalid)
                                                           \\-> FALLBACK_TIER3 -> DONE            (failure/timeout)

Expected degradations (generator failure or timeout, malformed output,
exhausted budget) always end in an ``AnalysisResult`` whose ``source`` and
``confidence`` describe the degradation. Only contract violations by the
caller raise (``InvalidAnalysisRequest``).

Concurrency: identical concurrent requests share one generation through
``SingleFlight``; budget check, generation and accounting for one user run
under that user's lock. A caller that is cancelled while waiting gets
``CancelledError`` straight away while the shared generation finishes and
populates the cache.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from .analytics.predictive import AnalysisHistory, AnalysisRecord
from .cache.keys import make_cache_key
from .cache.manager import CacheManager
from .clock import Clock, utc_now
from .concurrency import SingleFlight
from .config import GENERATOR_TIMEOUT_MS
from .context.assembler import ContextAssembler
from .context.sources import BiometricSource, EnvironmentalSource, Location
from .exceptions import GenerationError, InvalidAnalysisRequest
from .generation import TextGenerator, generate_with_timeout
from .models.cache import CacheEntry
from .models.enums import CacheTier, OrchestratorState, ResolutionMode, ResultSource, UsageDecision
from .models.preferences import PreferenceModel
from .models.request import AnalysisRequest
from .models.result import AnalysisResult
from .models.stats import OrchestratorStats
from .prompts.builder import PromptBuilder, estimate_tokens
from .synthesis.resolver import ConflictResolver, ResolutionStrategy
from .usage.cost import CostModel
from .usage.governor import UsageGovernor
from .validation.response_validator import ResponseValidator
from .validation.static_rules import StaticAdviceEngine

logger = logging.getLogger(__name__)

TransitionHook = Callable[[str, OrchestratorState], None]


class OrchestratorConfig(BaseModel):
    generator_timeout_ms: int = Field(default=GENERATOR_TIMEOUT_MS, gt=0)
    fallback_confidence_factor: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Confidence multiplier for stale tier-3 results"
    )


class Orchestrator:
    """
    Entry point for analyses.

    Collaborators default to in-memory implementations; pass your own to
    share a cache or governor between orchestrators or to inject fakes.
    """

    def __init__(
        self,
        generator: TextGenerator,
        *,
        config: OrchestratorConfig | None = None,
        cache: CacheManager | None = None,
        governor: UsageGovernor | None = None,
        resolver: ConflictResolver | None = None,
        prompt_builder: PromptBuilder | None = None,
        validator: ResponseValidator | None = None,
        static_engine: StaticAdviceEngine | None = None,
        assembler: ContextAssembler | None = None,
        cost_model: CostModel | None = None,
        biometric_source: BiometricSource | None = None,
        environmental_source: EnvironmentalSource | None = None,
        history: AnalysisHistory | None = None,
        on_transition: TransitionHook | None = None,
        clock: Clock | None = None,
    ):
        self.generator = generator
        self.config = config or OrchestratorConfig()
        self._clock = clock or utc_now
        self.cache = cache or CacheManager(clock=self._clock)
        self.governor = governor or UsageGovernor(clock=self._clock)
        self.resolver = resolver or ConflictResolver()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.validator = validator or ResponseValidator()
        self.static_engine = static_engine or StaticAdviceEngine()
        self.assembler = assembler or ContextAssembler(clock=self._clock)
        self.cost_model = cost_model or CostModel()
        self.biometric_source = biometric_source
        self.environmental_source = environmental_source
        self.history = history
        self.on_transition = on_transition

        self._flights: SingleFlight[AnalysisResult] = SingleFlight()
        self._stats = OrchestratorStats()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze(self, user_id: str, request: AnalysisRequest, timeout_ms: int | None = None) -> AnalysisResult:
        """
        Produce advice for ``request``.

        Raises ``InvalidAnalysisRequest`` for contract violations; every
        runtime failure degrades to cached or static advice instead.
        """
        if not user_id:
            raise InvalidAnalysisRequest("user_id is required")
        self._transition(user_id, OrchestratorState.RECEIVED)
        request = self.assembler.normalize(request)
        strategy = self.resolver.resolve_request(request)
        key = make_cache_key(user_id, request)
        self._stats.requests += 1

        self._transition(user_id, OrchestratorState.CACHE_CHECK)
        cached = self._from_cache(user_id, key, request, strategy)
        if cached is not None:
            self._transition(user_id, OrchestratorState.CACHE_HIT)
            return self._finish(user_id, request, cached)

        timeout = timeout_ms if timeout_ms is not None else self.config.generator_timeout_ms
        result, shared = await self._flights.do(
            key, lambda: self._generate_path(user_id, key, request, strategy, timeout)
        )
        if shared:
            self._stats.shared_flights += 1
            if result.source is ResultSource.FRESH:
                result = result.served_from(CacheTier.INSTANT)
            # The flight owner finished its own copy; each joiner is served too
            result = self._finish(user_id, request, result)
        return result

    async def analyze_user(
        self,
        user_id: str,
        preferences: PreferenceModel,
        location: Location | None = None,
        energy_level: float | None = None,
        timeout_ms: int | None = None,
    ) -> AnalysisResult:
        """
        Read the configured sources, assemble a request and analyse it.

        A failing source contributes an empty context rather than aborting.
        """
        biological, environmental = await asyncio.gather(
            self._read_biometrics(user_id),
            self._read_environment(location),
        )
        request = self.assembler.assemble(
            preferences,
            biological,
            environmental,
            energy_level=energy_level,
            timezone=location.timezone if location else None,
        )
        return await self.analyze(user_id, request, timeout_ms=timeout_ms)

    def get_stats(self) -> OrchestratorStats:
        return self._stats.model_copy()

    async def aclose(self) -> None:
        """Wait for in-flight generations to finish."""
        await self._flights.wait_idle()

    # ------------------------------------------------------------------
    # Cache tiers 1 and 2
    # ------------------------------------------------------------------

    def _from_cache(
        self,
        user_id: str,
        key: str,
        request: AnalysisRequest,
        strategy: ResolutionStrategy,
    ) -> AnalysisResult | None:
        entry, tier = self.cache.lookup(key)
        if entry is not None and tier is not None:
            self._stats.cache_hits += 1
            logger.debug(f"Cache hit for {user_id} in {tier.value} tier")
            return entry.payload.served_from(tier)

        entry = self.cache.find_adaptable(request, strategy.mode, user_id)
        if entry is not None:
            self._stats.adapted += 1
            return self.cache.adapt(entry, request)
        return None

    # ------------------------------------------------------------------
    # Generation path (runs once per key among concurrent callers)
    # ------------------------------------------------------------------

    async def _generate_path(
        self,
        user_id: str,
        key: str,
        request: AnalysisRequest,
        strategy: ResolutionStrategy,
        timeout_ms: int,
    ) -> AnalysisResult:
        async with self.governor.user_lock(user_id):
            self._transition(user_id, OrchestratorState.BUDGET_CHECK)
            prompt = self.prompt_builder.build(request, strategy)
            decision = self.governor.evaluate(user_id, request, self.cost_model.projected(prompt.estimated_tokens))

            if decision is UsageDecision.REUSE_CACHE:
                self._stats.reuse_decisions += 1
                entry = self.cache.latest_for(user_id, request, strategy.mode)
                if entry is not None:
                    self._transition(user_id, OrchestratorState.CACHE_HIT)
                    return self._finish(user_id, request, self.cache.adapt(entry, request))
                logger.debug(f"No cached advice to reuse for {user_id}; generating")

            if decision is UsageDecision.DENIED_BUDGET:
                self._stats.budget_denials += 1
                logger.warning(f"Budget exhausted for {user_id}; serving degraded advice")
                return self._degrade(user_id, request, strategy, OrchestratorState.STATIC_FALLBACK)

            self._transition(user_id, OrchestratorState.GENERATE)
            self._stats.generator_calls += 1
            try:
                raw = await generate_with_timeout(self.generator, prompt, timeout_ms)
            except GenerationError as e:
                self._stats.generator_failures += 1
                logger.warning(f"Generation failed for {user_id}: {e}")
                return self._degrade(user_id, request, strategy, OrchestratorState.FALLBACK_TIER3)

            response_tokens = estimate_tokens(raw.decode("utf-8", errors="replace"))
            self.governor.record_generation(user_id, self.cost_model.actual(prompt.estimated_tokens, response_tokens))

        self._transition(user_id, OrchestratorState.VALIDATE)
        result, ok = self.validator.validate(raw, strategy)
        if not ok:
            self._stats.invalid_responses += 1
            logger.warning(f"Unusable generator response for {user_id} (repairs: {result.repairs})")
            return self._degrade(user_id, request, strategy, OrchestratorState.FALLBACK_TIER3)

        self._transition(user_id, OrchestratorState.STORE_AND_RETURN)
        self._store(user_id, key, request, strategy, result)
        self._stats.fresh += 1
        logger.info(
            f"Fresh {strategy.mode.value} analysis for {user_id} "
            f"({len(result.tag_insights)} tag lines, confidence={result.confidence:.2f})"
        )
        return self._finish(user_id, request, result)

    def _store(
        self,
        user_id: str,
        key: str,
        request: AnalysisRequest,
        strategy: ResolutionStrategy,
        result: AnalysisResult,
    ) -> None:
        now = self._clock()
        for tier in CacheTier:
            entry = CacheEntry(
                key=key,
                user_id=user_id,
                payload=result,
                created_at=now,
                tier=tier,
                source_request=request,
                resolution_mode=strategy.mode,
            )
            self.cache.store(key, entry, tier)

    # ------------------------------------------------------------------
    # Degradation
    # ------------------------------------------------------------------

    def _degrade(
        self,
        user_id: str,
        request: AnalysisRequest,
        strategy: ResolutionStrategy,
        state: OrchestratorState,
    ) -> AnalysisResult:
        """Best remaining answer: the user's tier-3 entry if it fits the strategy, else static advice."""
        self._transition(user_id, state)

        entry = self.cache.fallback_for(user_id)
        if entry is not None:
            fallback = self._fit_fallback(entry, request, strategy)
            if fallback is not None:
                self._stats.tier3_fallbacks += 1
                logger.info(f"Serving tier-3 fallback for {user_id}")
                return self._finish(user_id, request, fallback)

        self._stats.static_fallbacks += 1
        result = self.static_engine.generate(request, strategy)
        if not self.cache.has_fallback(user_id):
            self.cache.store(
                f"static:{user_id}",
                CacheEntry(
                    key=f"static:{user_id}",
                    user_id=user_id,
                    payload=result,
                    created_at=self._clock(),
                    tier=CacheTier.FALLBACK,
                    source_request=request,
                    resolution_mode=strategy.mode,
                ),
                CacheTier.FALLBACK,
            )
        logger.info(f"Serving static advice for {user_id} ({strategy.mode.value})")
        return self._finish(user_id, request, result)

    def _fit_fallback(
        self,
        entry: CacheEntry,
        request: AnalysisRequest,
        strategy: ResolutionStrategy,
    ) -> AnalysisResult | None:
        """
        Tier-3 advice is only reused when it cannot contradict the current
        strategy: low-energy modes need an entry from the same mode, and tag
        lines for tags that are no longer active are removed.
        """
        low_energy = strategy.mode.is_low_energy
        if low_energy or entry.resolution_mode.is_low_energy:
            if entry.resolution_mode != strategy.mode:
                return None

        payload = entry.payload
        if strategy.mode is ResolutionMode.OVERRIDE:
            insights = []
        else:
            insights = [i for i in payload.tag_insights if i.tag in strategy.tags]
        if strategy.expects_tag_insights and not insights:
            return None
        if not strategy.expects_tag_insights and payload.synthesis is None:
            return None

        confidence = payload.confidence * self.config.fallback_confidence_factor
        trimmed = payload.model_copy(update={"tag_insights": insights})
        return trimmed.served_from(CacheTier.FALLBACK, confidence=confidence)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def _read_biometrics(self, user_id: str) -> dict[str, Any]:
        if self.biometric_source is None:
            return {}
        try:
            return await self.biometric_source.get_latest_snapshot(user_id)
        except Exception as e:
            logger.warning(f"Biometric source failed for {user_id}: {e}")
            return {}

    async def _read_environment(self, location: Location | None) -> dict[str, Any]:
        if self.environmental_source is None or location is None:
            return {}
        try:
            return await self.environmental_source.get_current_conditions(location)
        except Exception as e:
            logger.warning(f"Environmental source failed for {location}: {e}")
            return {}

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _finish(self, user_id: str, request: AnalysisRequest, result: AnalysisResult) -> AnalysisResult:
        self.governor.note_served(user_id, request)
        if self.history is not None:
            self.history.add(
                AnalysisRecord(user_id=user_id, recorded_at=self._clock(), request=request, result=result)
            )
        self._transition(user_id, OrchestratorState.DONE)
        return result

    def _transition(self, user_id: str, state: OrchestratorState) -> None:
        logger.debug(f"[{user_id}] -> {state.value}")
        if self.on_transition is not None:
            self.on_transition(user_id, state)
