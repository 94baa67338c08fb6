# tempo_ai_orchestrator/__init__.py
"""
Tempo AI orchestrator - personalisation and caching around a pluggable
text generator for health advice.

Quick start::

    from tempo_ai_orchestrator import AnalysisRequest, CallbackGenerator, FocusTag, Orchestrator, TimeOfDay

    async def call_llm(prompt: str) -> str:
        ...

    orchestrator = Orchestrator(CallbackGenerator(call_llm))
    result = await orchestrator.analyze(
        "user-1",
        AnalysisRequest(
            energy_level=72,
            active_tags={FocusTag.WORK, FocusTag.BEAUTY},
            time_of_day=TimeOfDay.MORNING,
            biological_context={"hrv": 55.0, "sleep_hours": 7.2},
            environmental_context={"humidity": 35.0},
            language="en",
        ),
    )
"""

from .analytics import AnalysisHistory, AnalysisRecord, PredictiveAnalytics, TrendProjection
from .cache import CacheConfig, CacheManager, make_cache_key
from .concurrency import SingleFlight
from .context import BiometricSource, ContextAssembler, EnvironmentalSource, Location
from .exceptions import (
    GenerationError,
    GenerationTimeout,
    InvalidAnalysisRequest,
    TempoOrchestratorError,
)
from .generation import CallbackGenerator, TextGenerator
from .models import (
    TAG_CATALOG,
    ActionSuggestion,
    AnalysisRequest,
    AnalysisResult,
    CacheEntry,
    CacheTier,
    EnvironmentalInsight,
    FocusTag,
    Language,
    LifestyleMode,
    OrchestratorState,
    PreferenceModel,
    ResolutionMode,
    ResultSource,
    SynthesisSummary,
    TagInsight,
    TimeOfDay,
    UsageDecision,
)
from .orchestrator import Orchestrator, OrchestratorConfig
from .prompts import CatalogLocalizer, Localizer, Prompt, PromptBuilder
from .synthesis import ConflictResolver, ResolutionStrategy, TagInstruction
from .usage import CostModel, UsageConfig, UsageGovernor
from .validation import ResponseValidator, StaticAdviceEngine

__version__ = "0.1.0"

__all__ = [
    # Façade
    "Orchestrator",
    "OrchestratorConfig",
    # Models
    "ActionSuggestion",
    "AnalysisRequest",
    "AnalysisResult",
    "CacheEntry",
    "CacheTier",
    "EnvironmentalInsight",
    "FocusTag",
    "Language",
    "LifestyleMode",
    "OrchestratorState",
    "PreferenceModel",
    "ResolutionMode",
    "ResultSource",
    "SynthesisSummary",
    "TAG_CATALOG",
    "TagInsight",
    "TimeOfDay",
    "UsageDecision",
    # Components
    "CacheConfig",
    "CacheManager",
    "CatalogLocalizer",
    "ConflictResolver",
    "ContextAssembler",
    "CostModel",
    "Localizer",
    "Prompt",
    "PromptBuilder",
    "ResolutionStrategy",
    "ResponseValidator",
    "SingleFlight",
    "StaticAdviceEngine",
    "TagInstruction",
    "UsageConfig",
    "UsageGovernor",
    "make_cache_key",
    # Collaborators
    "BiometricSource",
    "CallbackGenerator",
    "EnvironmentalSource",
    "Location",
    "TextGenerator",
    # Analytics
    "AnalysisHistory",
    "AnalysisRecord",
    "PredictiveAnalytics",
    "TrendProjection",
    # Errors
    "GenerationError",
    "GenerationTimeout",
    "InvalidAnalysisRequest",
    "TempoOrchestratorError",
]
