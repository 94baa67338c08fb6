# tempo_ai_orchestrator/context/assembler.py
"""
Context Assembler - merges biometric and environmental snapshots with the
user's preferences into a normalised ``AnalysisRequest``.

Energy is taken as given when the caller supplies it. When it is missing the
assembler derives it from sleep and HRV (sleep 60% + HRV 40%, minus small
penalties for a falling barometer, dry air and heat). A request that has
neither an energy level nor any biometric data cannot be analysed and is
rejected with ``InvalidAnalysisRequest``.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from ..clock import Clock, utc_now
from ..exceptions import InvalidAnalysisRequest
from ..models import metrics as m
from ..models.enums import TimeOfDay
from ..models.preferences import TAG_CATALOG, PreferenceModel
from ..models.request import AnalysisRequest, clamp_energy

logger = logging.getLogger(__name__)

DEFAULT_SLEEP_EFFICIENCY = 85.0
NEUTRAL_ENERGY = 50.0

# Environmental penalties applied to estimated energy
PRESSURE_DROP_THRESHOLD = -3.0
PRESSURE_DROP_PENALTY = 5
DRY_AIR_THRESHOLD = 30.0
DRY_AIR_PENALTY = 3
HEAT_THRESHOLD = 30.0
HEAT_PENALTY = 4


def sanitize_context(raw: dict[str, Any] | None) -> dict[str, float]:
    """Keep only finite numeric readings; sources sometimes report gaps as NaN."""
    clean: dict[str, float] = {}
    for key, value in (raw or {}).items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if not math.isfinite(value):
            continue
        clean[str(key)] = float(value)
    return clean


def environmental_penalty(environmental: dict[str, float]) -> int:
    penalty = 0
    if environmental.get(m.PRESSURE_TREND, 0.0) < PRESSURE_DROP_THRESHOLD:
        penalty += PRESSURE_DROP_PENALTY
    if environmental.get(m.HUMIDITY, 100.0) < DRY_AIR_THRESHOLD:
        penalty += DRY_AIR_PENALTY
    if environmental.get(m.FEELS_LIKE, 0.0) > HEAT_THRESHOLD:
        penalty += HEAT_PENALTY
    return penalty


def estimate_energy(biological: dict[str, float], environmental: dict[str, float]) -> int | None:
    """
    Derive a 0-100 energy level from biometric readings.

    Returns None when there is no biometric data at all. Missing sleep or
    HRV readings fall back to whichever score is available, then to a
    neutral midpoint.
    """
    if not biological:
        return None

    scores: list[tuple[float, float]] = []
    if m.SLEEP_HOURS in biological:
        efficiency = biological.get(m.SLEEP_EFFICIENCY, DEFAULT_SLEEP_EFFICIENCY)
        sleep_score = min(100.0, (biological[m.SLEEP_HOURS] / 8.0) * efficiency)
        scores.append((sleep_score, 0.6))
    if m.HRV in biological:
        hrv_ratio = max(0.5, min(1.5, biological[m.HRV] / m.BASELINE_HRV_MS))
        scores.append((hrv_ratio * 100.0, 0.4))

    if scores:
        total_weight = sum(weight for _, weight in scores)
        base = sum(score * weight for score, weight in scores) / total_weight
    else:
        base = NEUTRAL_ENERGY

    return clamp_energy(base - environmental_penalty(environmental))


def time_of_day_at(now: datetime, tz: str | None = None) -> TimeOfDay:
    local = now.astimezone(ZoneInfo(tz)) if tz else now
    return TimeOfDay.from_hour(local.hour)


def data_completeness(request: AnalysisRequest) -> float:
    """
    Share of the metrics the active tags care about that were supplied.

    With no active tags every catalogued metric counts.
    """
    if request.active_tags:
        wanted = {key for tag in request.active_tags for key in TAG_CATALOG[tag].data_priorities}
    else:
        wanted = set(m.METRIC_CATALOG)
    if not wanted:
        return 1.0
    return len(wanted & request.available_metrics) / len(wanted)


class ContextAssembler:
    """Builds and normalises analysis requests."""

    def __init__(self, clock: Clock | None = None, timezone: str | None = None):
        self._clock = clock or utc_now
        self.timezone = timezone

    def assemble(
        self,
        preferences: PreferenceModel,
        biological: dict[str, Any] | None = None,
        environmental: dict[str, Any] | None = None,
        energy_level: float | None = None,
        timezone: str | None = None,
    ) -> AnalysisRequest:
        """Merge snapshots and preferences into a normalised request."""
        bio = sanitize_context(biological)
        env = sanitize_context(environmental)
        request = AnalysisRequest.create(
            energy_level=energy_level,
            active_tags=preferences.active_tags,
            time_of_day=time_of_day_at(self._clock(), timezone or self.timezone),
            biological_context=bio,
            environmental_context=env,
            language=preferences.language,
            lifestyle_mode=preferences.lifestyle_mode,
        )
        return self.normalize(request)

    def normalize(self, request: AnalysisRequest) -> AnalysisRequest:
        """Fill in a missing energy level, or reject the request if that is impossible."""
        if request.energy_level is not None:
            return request
        estimated = estimate_energy(request.biological_context, request.environmental_context)
        if estimated is None:
            raise InvalidAnalysisRequest("energy_level is required when biological_context is empty")
        logger.debug(f"Estimated energy level {estimated} from {len(request.biological_context)} biometric readings")
        return request.with_energy(estimated)
