# tempo_ai_orchestrator/context/sources.py
"""
Collaborator protocols for context acquisition.

Sensor and weather access live outside this package; the orchestrator only
needs something that satisfies these protocols. Both may raise: callers
proceed with an empty context instead of aborting.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field


class Location(BaseModel):
    """Where environmental conditions should be read for."""

    model_config = {"frozen": True}

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    timezone: str | None = Field(default=None, description="IANA zone used for time-of-day bucketing")


@runtime_checkable
class BiometricSource(Protocol):
    async def get_latest_snapshot(self, user_id: str) -> dict[str, float]:
        """Latest biometric readings keyed by metric name."""
        ...


@runtime_checkable
class EnvironmentalSource(Protocol):
    async def get_current_conditions(self, location: Location) -> dict[str, float]:
        """Current environmental readings keyed by metric name."""
        ...
