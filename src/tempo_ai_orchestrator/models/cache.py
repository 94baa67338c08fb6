# tempo_ai_orchestrator/models/cache.py
"""Cache entry model."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import CacheTier, ResolutionMode
from .request import AnalysisRequest
from .result import AnalysisResult


class CacheEntry(BaseModel):
    """A cached analysis result and the request that produced it."""

    key: str = Field(..., description="Hash of the user id and canonical request")
    user_id: str
    payload: AnalysisResult
    created_at: datetime
    tier: CacheTier
    source_request: AnalysisRequest
    resolution_mode: ResolutionMode

    def age_seconds(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()
