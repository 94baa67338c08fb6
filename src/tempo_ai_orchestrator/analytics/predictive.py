# tempo_ai_orchestrator/analytics/predictive.py
"""
Predictive analytics over past analyses.

Read-only consumer of ``AnalysisRecord`` history; nothing here sits on the
request path. Two operations:

- ``project_trend``: least-squares line through daily means, projected
  forward (7 days by default), with r² as confidence.
- ``detect_anomalies``: flags readings whose z-score against the trailing
  window reaches 2.0 (medium) or 2.5 (high).
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict, deque
from datetime import date, datetime, timedelta

import numpy as np
from pydantic import BaseModel, Field

from ..models.enums import AnomalySeverity, TrendDirection
from ..models.metrics import RESPIRATORY_RATE, RESTING_HEART_RATE
from ..models.request import AnalysisRequest
from ..models.result import AnalysisResult

logger = logging.getLogger(__name__)

ENERGY = "energy_level"
CONFIDENCE = "confidence"

# Metrics where a falling value is an improvement
LOWER_IS_BETTER = frozenset({RESTING_HEART_RATE, RESPIRATORY_RATE})

# Bounded metrics are clamped when projected
BOUNDS: dict[str, tuple[float, float]] = {ENERGY: (0.0, 100.0), CONFIDENCE: (0.0, 1.0)}


# =============================================================================
# Models
# =============================================================================


class AnalysisRecord(BaseModel):
    """One served analysis, as kept in history."""

    user_id: str
    recorded_at: datetime
    request: AnalysisRequest
    result: AnalysisResult

    def value(self, metric: str) -> float | None:
        if metric == ENERGY:
            return float(self.request.energy_level) if self.request.energy_level is not None else None
        if metric == CONFIDENCE:
            return self.result.confidence
        return self.request.metric(metric)


class DailyProjection(BaseModel):
    day: date
    value: float


class TrendProjection(BaseModel):
    """Projected course of one metric."""

    metric: str
    direction: TrendDirection = TrendDirection.STABLE
    slope_per_day: float = 0.0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="r² of the fitted line")
    sample_days: int = 0
    projections: list[DailyProjection] = Field(default_factory=list)


class Anomaly(BaseModel):
    metric: str
    recorded_at: datetime
    value: float
    expected: float
    z_score: float
    severity: AnomalySeverity


class AnalyticsConfig(BaseModel):
    min_days: int = Field(default=3, ge=2, description="Days of data needed before projecting")
    stable_slope: float = Field(default=0.01, ge=0.0, description="Relative daily change (vs mean) treated as flat")
    anomaly_window: int = Field(default=7, ge=2)
    min_baseline: int = Field(default=3, ge=2, description="Readings needed before a value can be anomalous")
    medium_z: float = 2.0
    high_z: float = 2.5


# =============================================================================
# History
# =============================================================================


class AnalysisHistory:
    """In-memory, per-user ring buffer of served analyses."""

    def __init__(self, max_records_per_user: int = 90):
        self.max_records_per_user = max_records_per_user
        self._records: dict[str, deque[AnalysisRecord]] = defaultdict(
            lambda: deque(maxlen=self.max_records_per_user)
        )

    def add(self, record: AnalysisRecord) -> None:
        self._records[record.user_id].append(record)

    def records(self, user_id: str) -> list[AnalysisRecord]:
        return list(self._records.get(user_id, ()))

    def __len__(self) -> int:
        return sum(len(r) for r in self._records.values())


# =============================================================================
# Analytics
# =============================================================================


class PredictiveAnalytics:
    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()

    @staticmethod
    def daily_series(records: list[AnalysisRecord], metric: str) -> list[tuple[date, float]]:
        """Mean value per calendar day (UTC), oldest first."""
        by_day: dict[date, list[float]] = defaultdict(list)
        for record in records:
            value = record.value(metric)
            if value is not None:
                by_day[record.recorded_at.date()].append(value)
        return [(day, float(np.mean(values))) for day, values in sorted(by_day.items())]

    def project_trend(self, records: list[AnalysisRecord], metric: str = ENERGY, days: int = 7) -> TrendProjection:
        series = self.daily_series(records, metric)
        if len(series) < self.config.min_days:
            logger.debug(f"Not enough history for {metric} trend ({len(series)} days)")
            return TrendProjection(metric=metric, sample_days=len(series))

        origin = series[0][0]
        xs = [float((day - origin).days) for day, _ in series]
        ys = [value for _, value in series]
        slope, intercept, r_squared = _fit_line(xs, ys)

        mean = float(np.mean(ys))
        flat_band = abs(mean) * self.config.stable_slope if mean else self.config.stable_slope
        if abs(slope) <= flat_band:
            direction = TrendDirection.STABLE
        else:
            rising = slope > 0
            if metric in LOWER_IS_BETTER:
                rising = not rising
            direction = TrendDirection.IMPROVING if rising else TrendDirection.DECLINING

        last_day = series[-1][0]
        low, high = BOUNDS.get(metric, (-math.inf, math.inf))
        projections = []
        for offset in range(1, days + 1):
            day = last_day + timedelta(days=offset)
            value = intercept + slope * (day - origin).days
            projections.append(DailyProjection(day=day, value=max(low, min(high, value))))

        return TrendProjection(
            metric=metric,
            direction=direction,
            slope_per_day=slope,
            confidence=max(0.0, min(1.0, r_squared)),
            sample_days=len(series),
            projections=projections,
        )

    def detect_anomalies(self, records: list[AnalysisRecord], metrics: list[str] | None = None) -> list[Anomaly]:
        """Readings that sit far outside the trailing window for their metric."""
        ordered = sorted(records, key=lambda r: r.recorded_at)
        if metrics is None:
            found = {ENERGY, CONFIDENCE}
            for record in ordered:
                found |= record.request.available_metrics
            metrics = sorted(found)

        anomalies: list[Anomaly] = []
        for metric in metrics:
            window: deque[float] = deque(maxlen=self.config.anomaly_window)
            for record in ordered:
                value = record.value(metric)
                if value is None:
                    continue
                if len(window) >= self.config.min_baseline:
                    anomaly = self._score(metric, record.recorded_at, value, list(window))
                    if anomaly is not None:
                        anomalies.append(anomaly)
                window.append(value)

        anomalies.sort(key=lambda a: (a.recorded_at, a.metric))
        return anomalies

    def _score(self, metric: str, at: datetime, value: float, baseline: list[float]) -> Anomaly | None:
        mean = float(np.mean(baseline))
        stdev = float(np.std(baseline))
        if stdev == 0:
            return None
        z = (value - mean) / stdev
        if abs(z) >= self.config.high_z:
            severity = AnomalySeverity.HIGH
        elif abs(z) >= self.config.medium_z:
            severity = AnomalySeverity.MEDIUM
        else:
            return None
        return Anomaly(metric=metric, recorded_at=at, value=value, expected=mean, z_score=z, severity=severity)


def _fit_line(xs: list[float], ys: list[float]) -> tuple[float, float, float]:
    """Degree-1 least-squares fit. Returns (slope, intercept, r²)."""
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if np.ptp(x) == 0:
        return 0.0, float(np.mean(y)), 0.0
    slope, intercept = np.polyfit(x, y, 1)
    # A flat series is fitted exactly
    r_squared = float(np.corrcoef(x, y)[0, 1] ** 2) if np.ptp(y) else 1.0
    return float(slope), float(intercept), r_squared
