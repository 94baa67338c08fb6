# tempo_ai_orchestrator/cache/keys.py
"""Cache keys and request-to-request drift measures."""

from __future__ import annotations

import hashlib

from ..models.request import AnalysisRequest


def make_cache_key(user_id: str, request: AnalysisRequest) -> str:
    """Create cache key from the user id and the request's canonical form."""
    key_str = f"{user_id}:{request.canonical_json()}"
    return hashlib.sha256(key_str.encode()).hexdigest()[:16]


def relative_change(old: float, new: float) -> float:
    """
    Relative change from ``old`` to ``new``.

    A move away from a zero baseline counts as a full (100%) change.
    """
    if old == new:
        return 0.0
    if old == 0:
        return 1.0
    return abs(new - old) / abs(old)


def max_relative_change(previous: AnalysisRequest, current: AnalysisRequest) -> float:
    """
    Largest relative change across every tracked numeric field.

    A field present in one request but not the other counts as a full change.
    """
    before = previous.tracked_values()
    after = current.tracked_values()
    largest = 0.0
    for key in before.keys() | after.keys():
        if key not in before or key not in after:
            return 1.0
        largest = max(largest, relative_change(before[key], after[key]))
    return largest


def context_drift(source: AnalysisRequest, target: AnalysisRequest, energy_tolerance: int = 10) -> float:
    """
    How far ``target`` has moved from the request a cached result was built for.

    0.0 means identical, 1.0 means at the edge of what can still be adapted.
    Energy distance is measured against the matching tolerance; metric
    distance is the mean relative change over the metrics both supplied.
    """
    if source.energy_level is None or target.energy_level is None:
        energy_drift = 1.0
    else:
        energy_drift = min(1.0, abs(source.energy_level - target.energy_level) / max(1, energy_tolerance))

    before = source.tracked_values()
    after = target.tracked_values()
    shared = (before.keys() & after.keys()) - {"energy_level"}
    if shared:
        metric_drift = sum(min(1.0, relative_change(before[k], after[k])) for k in shared) / len(shared)
    else:
        metric_drift = 0.0

    return min(1.0, 0.5 * energy_drift + 0.5 * metric_drift)
