# tempo_ai_orchestrator/models/usage.py
"""Usage ledger and cost reporting models."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class UsageLedger(BaseModel):
    """Generation usage for one user on one day."""

    user_id: str
    day: date
    request_count: int = Field(default=0, ge=0)
    estimated_cost_usd: float = Field(default=0.0, ge=0.0)
    last_fresh_generation_at: datetime | None = None


class CostReport(BaseModel):
    """Aggregate spend across all users for one day."""

    day: date
    total_cost_usd: float = 0.0
    total_requests: int = 0
    active_users: int = 0
    average_cost_per_user: float = 0.0
    budget_utilization: float = Field(default=0.0, description="Share of the combined user budgets spent (0-1)")
