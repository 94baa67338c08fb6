# tempo_ai_orchestrator/models/enums.py
"""Enums shared across the orchestration engine."""

from __future__ import annotations

from enum import Enum

# =============================================================================
# Preference Enums
# =============================================================================


class FocusTag(str, Enum):
    """A user-selected lens that reweights signals and phrasing."""

    WORK = "work"
    BEAUTY = "beauty"
    DIET = "diet"
    CHILL = "chill"
    ATHLETE = "athlete"


class LifestyleMode(str, Enum):
    """Overall lifestyle mode chosen at onboarding."""

    STANDARD = "standard"
    ATHLETE = "athlete"


class Language(str, Enum):
    JA = "ja"
    EN = "en"


class TimeOfDay(str, Enum):
    """Coarse time-of-day bucket."""

    MORNING = "morning"  # 06:00 - 11:59
    AFTERNOON = "afternoon"  # 12:00 - 16:59
    EVENING = "evening"  # 17:00 - 20:59
    NIGHT = "night"  # 21:00 - 05:59

    @classmethod
    def from_hour(cls, hour: int) -> TimeOfDay:
        if 6 <= hour < 12:
            return cls.MORNING
        if 12 <= hour < 17:
            return cls.AFTERNOON
        if 17 <= hour < 21:
            return cls.EVENING
        return cls.NIGHT


# =============================================================================
# Engine Enums
# =============================================================================


class ResolutionMode(str, Enum):
    """How simultaneously active tag personas are merged."""

    OVERRIDE = "override"  # biological-safety override, tag advice suppressed
    GENTLE = "gentle"  # low energy, recovery-favoured tags only
    BALANCED = "balanced"  # every tag keeps its full persona
    HOLISTIC = "holistic"  # 3+ tags merged into one persona

    @property
    def is_low_energy(self) -> bool:
        return self in (ResolutionMode.OVERRIDE, ResolutionMode.GENTLE)


class CacheTier(str, Enum):
    INSTANT = "instant"
    CONTEXTUAL = "contextual"
    FALLBACK = "fallback"


class ResultSource(str, Enum):
    FRESH = "fresh"
    CACHE = "cache"
    STATIC_FALLBACK = "staticFallback"


class Urgency(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class UsageDecision(str, Enum):
    """Outcome of a usage-governor check."""

    APPROVED = "approved"
    DENIED_BUDGET = "denied_budget"
    REUSE_CACHE = "reuse_cache"


class OrchestratorState(str, Enum):
    """States of a single analysis request."""

    RECEIVED = "received"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"
    BUDGET_CHECK = "budget_check"
    GENERATE = "generate"
    VALIDATE = "validate"
    STORE_AND_RETURN = "store_and_return"
    STATIC_FALLBACK = "static_fallback"
    FALLBACK_TIER3 = "fallback_tier3"
    DONE = "done"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class AnomalySeverity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"
