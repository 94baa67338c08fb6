# tempo_ai_orchestrator/models/stats.py
"""Statistics models."""

from pydantic import BaseModel, Field

from .enums import CacheTier


class TierStats(BaseModel):
    """Statistics for one cache tier."""

    size: int = Field(default=0, description="Current number of entries")
    max_size: int | None = Field(default=None, description="Maximum entries (None = unbounded)")
    hits: int = Field(default=0, description="Lookups answered by this tier")
    misses: int = Field(default=0, description="Lookups this tier could not answer")
    evictions: int = Field(default=0, description="Entries removed by LRU pressure")
    expirations: int = Field(default=0, description="Entries removed by TTL expiry")


class CacheStats(BaseModel):
    """Statistics for the three-tier cache."""

    tiers: dict[CacheTier, TierStats] = Field(default_factory=dict)
    adaptations: int = Field(default=0, description="Contextual entries adapted to a drifted request")

    @property
    def hit_rate(self) -> float:
        hits = sum(t.hits for t in self.tiers.values())
        misses = self.tiers[CacheTier.INSTANT].misses if CacheTier.INSTANT in self.tiers else 0
        total = hits + misses
        return hits / total if total else 0.0


class OrchestratorStats(BaseModel):
    """Counters for requests handled by the orchestrator."""

    requests: int = 0
    fresh: int = 0
    cache_hits: int = 0
    adapted: int = 0
    tier3_fallbacks: int = 0
    static_fallbacks: int = 0
    generator_calls: int = 0
    generator_failures: int = 0
    invalid_responses: int = 0
    budget_denials: int = 0
    reuse_decisions: int = 0
    shared_flights: int = Field(default=0, description="Requests that joined an in-flight generation")
