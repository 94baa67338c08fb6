# tempo_ai_orchestrator/analytics/__init__.py
"""Trend projection and anomaly detection over analysis history."""

from .predictive import (  # noqa: F401
    AnalysisHistory,
    AnalysisRecord,
    AnalyticsConfig,
    Anomaly,
    DailyProjection,
    PredictiveAnalytics,
    TrendProjection,
)
