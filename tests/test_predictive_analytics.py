# tests/test_predictive_analytics.py
"""Tests for trend projection and anomaly detection over analysis history."""

from datetime import timedelta

import pytest

from tempo_ai_orchestrator.analytics.predictive import (
    AnalysisHistory,
    AnalysisRecord,
    AnalyticsConfig,
    PredictiveAnalytics,
)
from tempo_ai_orchestrator.models import AnalysisResult, AnomalySeverity, TrendDirection


@pytest.fixture
def analytics():
    return PredictiveAnalytics()


@pytest.fixture
def make_records(clock, make_request):
    """One record per value, a day apart, starting at the test clock."""

    def _make(values, metric="energy_level", step=timedelta(days=1), user_id="user-1"):
        records = []
        for index, value in enumerate(values):
            if metric == "energy_level":
                request = make_request(energy_level=value)
            else:
                request = make_request(bio={metric: value})
            records.append(
                AnalysisRecord(
                    user_id=user_id,
                    recorded_at=clock() + step * index,
                    request=request,
                    result=AnalysisResult(confidence=0.8),
                )
            )
        return records

    return _make


class TestProjectTrend:
    def test_rising_energy(self, analytics, make_records):
        trend = analytics.project_trend(make_records([50, 55, 60, 65]), days=7)
        assert trend.direction is TrendDirection.IMPROVING
        assert trend.slope_per_day == pytest.approx(5.0)
        assert trend.confidence == pytest.approx(1.0)
        assert trend.sample_days == 4
        assert len(trend.projections) == 7
        assert trend.projections[0].value == pytest.approx(70.0)

    def test_projection_clamped_to_range(self, analytics, make_records):
        trend = analytics.project_trend(make_records([70, 80, 90]), days=3)
        assert all(p.value <= 100.0 for p in trend.projections)
        assert trend.projections[-1].value == 100.0

    def test_projection_days_follow_history(self, analytics, make_records):
        records = make_records([50, 52, 54])
        trend = analytics.project_trend(records, days=2)
        last_day = records[-1].recorded_at.date()
        assert [p.day for p in trend.projections] == [last_day + timedelta(days=1), last_day + timedelta(days=2)]

    def test_flat_is_stable(self, analytics, make_records):
        trend = analytics.project_trend(make_records([60, 60, 60, 60]))
        assert trend.direction is TrendDirection.STABLE
        assert trend.slope_per_day == pytest.approx(0.0, abs=1e-9)
        assert trend.confidence == pytest.approx(1.0)

    def test_noisy_series_lowers_confidence(self, analytics, make_records):
        trend = analytics.project_trend(make_records([60, 80, 70]))
        assert trend.slope_per_day == pytest.approx(5.0)
        assert trend.confidence == pytest.approx(0.25)
        assert trend.projections[0].value == pytest.approx(80.0)

    def test_rising_heart_rate_is_declining(self, analytics, make_records):
        records = make_records([58.0, 61.0, 64.0, 67.0], metric="resting_heart_rate")
        trend = analytics.project_trend(records, metric="resting_heart_rate")
        assert trend.direction is TrendDirection.DECLINING

    def test_not_enough_days(self, analytics, make_records):
        trend = analytics.project_trend(make_records([50, 80]))
        assert trend.direction is TrendDirection.STABLE
        assert trend.projections == []
        assert trend.sample_days == 2

    def test_same_day_readings_averaged(self, analytics, make_records):
        records = make_records([40, 60], step=timedelta(hours=1))
        assert analytics.daily_series(records, "energy_level") == [(records[0].recorded_at.date(), 50.0)]

    def test_custom_min_days(self, make_records):
        analytics = PredictiveAnalytics(AnalyticsConfig(min_days=2))
        assert analytics.project_trend(make_records([50, 60])).projections


class TestDetectAnomalies:
    def test_sharp_drop_flagged(self, analytics, make_records):
        records = make_records([70, 71, 69, 70, 20])
        anomalies = analytics.detect_anomalies(records, metrics=["energy_level"])
        assert len(anomalies) == 1
        assert anomalies[0].severity is AnomalySeverity.HIGH
        assert anomalies[0].value == 20
        assert anomalies[0].expected == pytest.approx(70.0)
        assert anomalies[0].z_score < 0

    def test_constant_baseline_skipped(self, analytics, make_records):
        records = make_records([70, 70, 70, 20])
        assert analytics.detect_anomalies(records, metrics=["energy_level"]) == []

    def test_needs_baseline(self, analytics, make_records):
        assert analytics.detect_anomalies(make_records([70, 20]), metrics=["energy_level"]) == []

    def test_normal_variation(self, analytics, make_records):
        records = make_records([60, 65, 58, 63, 61, 64])
        assert analytics.detect_anomalies(records, metrics=["energy_level"]) == []

    def test_defaults_scan_supplied_metrics(self, analytics, make_records):
        records = make_records([50.0, 52.0, 48.0, 51.0, 95.0], metric="hrv")
        anomalies = analytics.detect_anomalies(records)
        assert [a.metric for a in anomalies] == ["hrv"]


class TestHistory:
    def test_ring_buffer(self, make_records):
        history = AnalysisHistory(max_records_per_user=3)
        for record in make_records([50, 51, 52, 53, 54]):
            history.add(record)
        kept = history.records("user-1")
        assert [r.request.energy_level for r in kept] == [52, 53, 54]
        assert len(history) == 3

    def test_per_user(self, make_records):
        history = AnalysisHistory()
        for record in make_records([50, 51], user_id="a") + make_records([60], user_id="b"):
            history.add(record)
        assert len(history.records("a")) == 2
        assert len(history.records("b")) == 1
        assert history.records("c") == []
