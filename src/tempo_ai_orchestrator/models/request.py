# tempo_ai_orchestrator/models/request.py
"""The immutable analysis request and its canonical serialisation."""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..config import DEFAULT_LANGUAGE
from ..exceptions import InvalidAnalysisRequest
from .enums import FocusTag, Language, LifestyleMode, TimeOfDay

# Context values are rounded before hashing so float noise from sensors
# does not split otherwise identical requests across cache keys.
CANONICAL_PRECISION = 4


def clamp_energy(value: float) -> int:
    return max(0, min(100, int(round(value))))


class AnalysisRequest(BaseModel):
    """
    Normalised input to one analysis.

    ``energy_level`` may be left out when biometric data is supplied; the
    ContextAssembler derives it before the request reaches the resolver.
    A request with neither is a contract violation.
    """

    model_config = {"frozen": True}

    energy_level: int | None = Field(default=None, description="Physiological readiness, clamped to 0-100")
    active_tags: frozenset[FocusTag] = Field(default_factory=frozenset)
    time_of_day: TimeOfDay
    biological_context: dict[str, float] = Field(default_factory=dict)
    environmental_context: dict[str, float] = Field(default_factory=dict)
    language: Language = Language(DEFAULT_LANGUAGE)
    lifestyle_mode: LifestyleMode = LifestyleMode.STANDARD

    @field_validator("energy_level", mode="before")
    @classmethod
    def _clamp_energy(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("energy_level must be a number")
        if not math.isfinite(value):
            raise ValueError("energy_level must be finite")
        return clamp_energy(value)

    @field_validator("biological_context", "environmental_context")
    @classmethod
    def _finite_values(cls, value: dict[str, float]) -> dict[str, float]:
        for key, number in value.items():
            if not math.isfinite(number):
                raise ValueError(f"context value for {key!r} must be finite")
        return value

    @classmethod
    def create(cls, **data: Any) -> AnalysisRequest:
        """Construct a request, reporting schema violations as ``InvalidAnalysisRequest``."""
        try:
            return cls(**data)
        except ValidationError as exc:
            raise InvalidAnalysisRequest(str(exc)) from exc

    # ------------------------------------------------------------------
    # Canonical form
    # ------------------------------------------------------------------

    def canonical_dict(self) -> dict[str, Any]:
        return {
            "energy_level": self.energy_level,
            "active_tags": sorted(tag.value for tag in self.active_tags),
            "time_of_day": self.time_of_day.value,
            "biological_context": _normalise(self.biological_context),
            "environmental_context": _normalise(self.environmental_context),
            "language": self.language.value,
            "lifestyle_mode": self.lifestyle_mode.value,
        }

    def canonical_json(self) -> str:
        """Stable serialisation: sorted keys, sorted tags, rounded floats."""
        return json.dumps(self.canonical_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def __hash__(self) -> int:
        return hash(self.canonical_json())

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    @property
    def available_metrics(self) -> frozenset[str]:
        return frozenset(self.biological_context) | frozenset(self.environmental_context)

    def metric(self, key: str) -> float | None:
        if key in self.biological_context:
            return self.biological_context[key]
        return self.environmental_context.get(key)

    def tracked_values(self) -> dict[str, float]:
        """Every numeric field compared when deciding if the context changed."""
        values = {f"bio.{k}": v for k, v in self.biological_context.items()}
        values.update({f"env.{k}": v for k, v in self.environmental_context.items()})
        if self.energy_level is not None:
            values["energy_level"] = float(self.energy_level)
        return values

    def with_energy(self, energy_level: int) -> AnalysisRequest:
        return self.model_copy(update={"energy_level": clamp_energy(energy_level)})


def _normalise(context: dict[str, float]) -> dict[str, float]:
    out = {}
    for key in sorted(context):
        value = round(float(context[key]), CANONICAL_PRECISION)
        out[key] = 0.0 if value == 0 else value
    return out
