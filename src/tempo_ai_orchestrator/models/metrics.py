# tempo_ai_orchestrator/models/metrics.py
"""Catalog of the biometric and environmental metrics the engine understands.

Contexts are plain ``dict[str, float]`` maps keyed by these names. Unknown
keys are carried through untouched but rank below every catalogued metric
when a prompt has to shed context to fit its token budget.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class MetricGroup(str, Enum):
    BIOLOGICAL = "biological"
    ENVIRONMENTAL = "environmental"


class MetricSpec(BaseModel):
    """Static description of one metric."""

    model_config = {"frozen": True}

    key: str
    group: MetricGroup
    unit: str = ""
    priority: int = Field(..., description="Lower is more important; used when trimming prompts")
    decimals: int = 1


# Biological
HRV = "hrv"
RESTING_HEART_RATE = "resting_heart_rate"
SLEEP_HOURS = "sleep_hours"
SLEEP_EFFICIENCY = "sleep_efficiency"
SLEEP_DEEP = "sleep_deep"
SLEEP_REM = "sleep_rem"
RESPIRATORY_RATE = "respiratory_rate"
STEPS = "steps"
ACTIVE_CALORIES = "active_calories"

# Environmental
PRESSURE_TREND = "pressure_trend"
HUMIDITY = "humidity"
FEELS_LIKE = "feels_like"
TEMPERATURE = "temperature"
UV_INDEX = "uv_index"


METRIC_CATALOG: dict[str, MetricSpec] = {
    spec.key: spec
    for spec in (
        MetricSpec(key=HRV, group=MetricGroup.BIOLOGICAL, unit="ms", priority=1),
        MetricSpec(key=SLEEP_HOURS, group=MetricGroup.BIOLOGICAL, unit="h", priority=2),
        MetricSpec(key=RESTING_HEART_RATE, group=MetricGroup.BIOLOGICAL, unit="bpm", priority=3, decimals=0),
        MetricSpec(key=SLEEP_EFFICIENCY, group=MetricGroup.BIOLOGICAL, unit="%", priority=6, decimals=0),
        MetricSpec(key=SLEEP_DEEP, group=MetricGroup.BIOLOGICAL, unit="min", priority=7, decimals=0),
        MetricSpec(key=SLEEP_REM, group=MetricGroup.BIOLOGICAL, unit="min", priority=8, decimals=0),
        MetricSpec(key=STEPS, group=MetricGroup.BIOLOGICAL, unit="steps", priority=9, decimals=0),
        MetricSpec(key=ACTIVE_CALORIES, group=MetricGroup.BIOLOGICAL, unit="kcal", priority=10, decimals=0),
        MetricSpec(key=RESPIRATORY_RATE, group=MetricGroup.BIOLOGICAL, unit="/min", priority=12),
        MetricSpec(key=PRESSURE_TREND, group=MetricGroup.ENVIRONMENTAL, unit="hPa", priority=4),
        MetricSpec(key=HUMIDITY, group=MetricGroup.ENVIRONMENTAL, unit="%", priority=5, decimals=0),
        MetricSpec(key=FEELS_LIKE, group=MetricGroup.ENVIRONMENTAL, unit="°C", priority=11),
        MetricSpec(key=UV_INDEX, group=MetricGroup.ENVIRONMENTAL, priority=13),
        MetricSpec(key=TEMPERATURE, group=MetricGroup.ENVIRONMENTAL, unit="°C", priority=14),
    )
}

UNKNOWN_METRIC_PRIORITY = 100

# Physiological baselines used for energy estimation and static advice
BASELINE_HRV_MS = 50.0
BASELINE_RESTING_HEART_RATE = 65.0
BASELINE_RESPIRATORY_RATE = 16.0


def metric_priority(key: str) -> int:
    spec = METRIC_CATALOG.get(key)
    return spec.priority if spec else UNKNOWN_METRIC_PRIORITY


def format_metric(key: str, value: float) -> str:
    """Render a value with the unit and precision registered for its metric."""
    spec = METRIC_CATALOG.get(key)
    if spec is None:
        return f"{value:g}"
    text = f"{value:.{spec.decimals}f}"
    return f"{text}{spec.unit}" if spec.unit in ("%", "°C") else f"{text} {spec.unit}".rstrip()
