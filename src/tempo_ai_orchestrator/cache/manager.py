# tempo_ai_orchestrator/cache/manager.py
"""
Three-tier analysis cache.

- INSTANT: exact key match, short TTL. Absorbs repeat-identical requests.
- CONTEXTUAL: longer TTL, matched fuzzily through ``find_adaptable``; a hit
  is adapted (confidence decayed by context drift) rather than returned
  verbatim.
- FALLBACK: one entry per user with no TTL, overwritten by each newer
  fallback. Only consulted when generation fails or is denied.

TTL expiry is lazy (checked on lookup) and INSTANT/CONTEXTUAL are bounded
LRUs. No operation awaits, so on a single event loop each lookup or store
runs to completion without interleaving and operations on different keys
never wait on one another.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime

from pydantic import BaseModel, Field

from ..clock import Clock, utc_now
from ..config import CACHE_MAX_ENTRIES, CONTEXTUAL_TTL_SECONDS, INSTANT_TTL_SECONDS
from ..models.cache import CacheEntry
from ..models.enums import CacheTier, ResolutionMode
from ..models.request import AnalysisRequest
from ..models.result import AnalysisResult
from ..models.stats import CacheStats, TierStats
from .keys import context_drift

logger = logging.getLogger(__name__)


class CacheConfig(BaseModel):
    """Configuration for the tiered cache."""

    instant_ttl_seconds: int = Field(default=INSTANT_TTL_SECONDS, gt=0)
    contextual_ttl_seconds: int = Field(default=CONTEXTUAL_TTL_SECONDS, gt=0)
    max_entries: int = Field(default=CACHE_MAX_ENTRIES, gt=0, description="LRU bound for each timed tier")
    energy_tolerance: int = Field(default=10, ge=0, description="Max energy distance for a contextual match")
    max_adaptation_decay: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Confidence lost by an adapted entry at maximum drift"
    )


class CacheManager:
    """Owns every cache entry; all access goes through these methods."""

    def __init__(self, config: CacheConfig | None = None, clock: Clock | None = None):
        self.config = config or CacheConfig()
        self._clock = clock or utc_now
        self._tiers: dict[CacheTier, OrderedDict[str, CacheEntry]] = {
            CacheTier.INSTANT: OrderedDict(),
            CacheTier.CONTEXTUAL: OrderedDict(),
        }
        self._fallback: dict[str, CacheEntry] = {}
        self._stats: dict[CacheTier, dict[str, int]] = {
            tier: {"hits": 0, "misses": 0, "evictions": 0, "expirations": 0} for tier in CacheTier
        }
        self._adaptations = 0

    # ------------------------------------------------------------------
    # Lookup / store
    # ------------------------------------------------------------------

    def lookup(self, key: str, tier: CacheTier | None = None) -> tuple[CacheEntry | None, CacheTier | None]:
        """
        Exact-key lookup.

        With no tier given, INSTANT is checked before CONTEXTUAL. The
        FALLBACK tier is only searched when asked for explicitly.
        """
        tiers = [tier] if tier is not None else [CacheTier.INSTANT, CacheTier.CONTEXTUAL]
        for candidate in tiers:
            entry = self._get(key, candidate)
            if entry is not None:
                self._stats[candidate]["hits"] += 1
                return entry, candidate
            self._stats[candidate]["misses"] += 1
        return None, None

    def store(self, key: str, entry: CacheEntry, tier: CacheTier) -> None:
        """Insert or overwrite an entry. Entries are replaced whole, never patched."""
        if entry.key != key or entry.tier != tier:
            entry = entry.model_copy(update={"key": key, "tier": tier})

        if tier is CacheTier.FALLBACK:
            self._fallback[entry.user_id] = entry
            return

        store = self._tiers[tier]
        store.pop(key, None)
        while len(store) >= self.config.max_entries:
            evicted_key, _ = store.popitem(last=False)
            self._stats[tier]["evictions"] += 1
            logger.debug(f"Evicted {evicted_key} from {tier.value} tier")
        store[key] = entry

    def _get(self, key: str, tier: CacheTier) -> CacheEntry | None:
        if tier is CacheTier.FALLBACK:
            for entry in self._fallback.values():
                if entry.key == key:
                    return entry
            return None

        store = self._tiers[tier]
        entry = store.get(key)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del store[key]
            self._stats[tier]["expirations"] += 1
            return None
        store.move_to_end(key)
        return entry

    def _ttl(self, tier: CacheTier) -> int | None:
        if tier is CacheTier.INSTANT:
            return self.config.instant_ttl_seconds
        if tier is CacheTier.CONTEXTUAL:
            return self.config.contextual_ttl_seconds
        return None

    def _expired(self, entry: CacheEntry, now: datetime) -> bool:
        ttl = self._ttl(entry.tier)
        return ttl is not None and entry.age_seconds(now) >= ttl

    # ------------------------------------------------------------------
    # Contextual matching
    # ------------------------------------------------------------------

    def find_adaptable(
        self,
        request: AnalysisRequest,
        mode: ResolutionMode,
        user_id: str,
    ) -> CacheEntry | None:
        """
        Closest unexpired CONTEXTUAL entry for this user that can be adapted.

        A match needs the same active tags, resolution mode, time-of-day
        bucket, language and lifestyle mode, with energy within tolerance.
        """
        store = self._tiers[CacheTier.CONTEXTUAL]
        now = self._clock()
        best: CacheEntry | None = None
        best_drift = 2.0

        for key in list(store.keys()):
            entry = store[key]
            if entry.user_id != user_id:
                continue
            if self._expired(entry, now):
                del store[key]
                self._stats[CacheTier.CONTEXTUAL]["expirations"] += 1
                continue
            if not self._compatible(entry, request, mode):
                continue
            drift = context_drift(entry.source_request, request, self.config.energy_tolerance)
            if drift < best_drift:
                best, best_drift = entry, drift

        if best is None:
            self._stats[CacheTier.CONTEXTUAL]["misses"] += 1
            return None

        store.move_to_end(best.key)
        self._stats[CacheTier.CONTEXTUAL]["hits"] += 1
        return best

    def _compatible(self, entry: CacheEntry, request: AnalysisRequest, mode: ResolutionMode) -> bool:
        source = entry.source_request
        if entry.resolution_mode != mode:
            return False
        if source.active_tags != request.active_tags:
            return False
        if source.time_of_day != request.time_of_day:
            return False
        if source.language != request.language or source.lifestyle_mode != request.lifestyle_mode:
            return False
        if source.energy_level is None or request.energy_level is None:
            return False
        return abs(source.energy_level - request.energy_level) <= self.config.energy_tolerance

    def latest_for(self, user_id: str, request: AnalysisRequest, mode: ResolutionMode) -> CacheEntry | None:
        """
        Most recently used unexpired INSTANT or CONTEXTUAL entry for this user
        with the same tags, mode, language and lifestyle mode. Energy and time
        bucket are not compared; used when the usage governor has already
        judged the context unchanged.
        """
        now = self._clock()
        for tier in (CacheTier.INSTANT, CacheTier.CONTEXTUAL):
            store = self._tiers[tier]
            for key in reversed(list(store.keys())):
                entry = store[key]
                if entry.user_id != user_id or self._expired(entry, now):
                    continue
                source = entry.source_request
                if (
                    entry.resolution_mode == mode
                    and source.active_tags == request.active_tags
                    and source.language == request.language
                    and source.lifestyle_mode == request.lifestyle_mode
                ):
                    return entry
        return None

    def adapt(self, entry: CacheEntry, request: AnalysisRequest) -> AnalysisResult:
        """Serve an entry for a drifted request, decaying its confidence."""
        drift = context_drift(entry.source_request, request, self.config.energy_tolerance)
        confidence = entry.payload.confidence * (1.0 - self.config.max_adaptation_decay * drift)
        self._adaptations += 1
        logger.debug(f"Adapted {entry.tier.value} entry {entry.key} (drift={drift:.2f}, confidence={confidence:.2f})")
        return entry.payload.served_from(entry.tier, confidence=confidence)

    # ------------------------------------------------------------------
    # Fallback tier
    # ------------------------------------------------------------------

    def fallback_for(self, user_id: str) -> CacheEntry | None:
        entry = self._fallback.get(user_id)
        self._stats[CacheTier.FALLBACK]["hits" if entry else "misses"] += 1
        return entry

    def has_fallback(self, user_id: str) -> bool:
        return user_id in self._fallback

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def invalidate_user(self, user_id: str) -> int:
        """Drop every entry belonging to ``user_id``. Returns the number removed."""
        removed = 0
        for store in self._tiers.values():
            keys = [key for key, entry in store.items() if entry.user_id == user_id]
            for key in keys:
                del store[key]
            removed += len(keys)
        if self._fallback.pop(user_id, None) is not None:
            removed += 1
        return removed

    def clear(self) -> None:
        for store in self._tiers.values():
            store.clear()
        self._fallback.clear()

    def size(self, tier: CacheTier) -> int:
        if tier is CacheTier.FALLBACK:
            return len(self._fallback)
        return len(self._tiers[tier])

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        tiers = {}
        for tier in CacheTier:
            counters = self._stats[tier]
            tiers[tier] = TierStats(
                size=self.size(tier),
                max_size=None if tier is CacheTier.FALLBACK else self.config.max_entries,
                hits=counters["hits"],
                misses=counters["misses"],
                evictions=counters["evictions"],
                expirations=counters["expirations"],
            )
        return CacheStats(tiers=tiers, adaptations=self._adaptations)
