# tempo_ai_orchestrator/models/__init__.py
"""
Data model for the orchestration engine.

All public names are re-exported here so callers can write
``from tempo_ai_orchestrator.models import AnalysisRequest``.
"""

from .cache import CacheEntry  # noqa: F401
from .enums import (  # noqa: F401
    AnomalySeverity,
    CacheTier,
    FocusTag,
    Language,
    LifestyleMode,
    OrchestratorState,
    ResolutionMode,
    ResultSource,
    TimeOfDay,
    TrendDirection,
    Urgency,
    UsageDecision,
)
from .metrics import METRIC_CATALOG, MetricGroup, MetricSpec  # noqa: F401
from .preferences import TAG_CATALOG, PreferenceModel, TagPersona  # noqa: F401
from .request import AnalysisRequest  # noqa: F401
from .result import (  # noqa: F401
    STATIC_CONFIDENCE_CEILING,
    ActionSuggestion,
    AnalysisResult,
    EnvironmentalInsight,
    SynthesisSummary,
    TagInsight,
)
from .stats import CacheStats, OrchestratorStats, TierStats  # noqa: F401
from .usage import CostReport, UsageLedger  # noqa: F401
