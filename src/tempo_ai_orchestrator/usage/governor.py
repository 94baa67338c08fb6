# tempo_ai_orchestrator/usage/governor.py
"""
Usage Governor - per-user daily budgets and the "is this worth a fresh
generation?" decision.

Ledgers are keyed by (user, day). The day boundary follows the configured
timezone (UTC by default), so a ledger resets at local midnight of that
zone rather than being cleared by a background task.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from ..cache.keys import max_relative_change
from ..clock import Clock, utc_now
from ..config import (
    CHANGE_THRESHOLD,
    MAX_DAILY_COST_USD,
    MAX_REQUESTS_PER_DAY,
    REUSE_WINDOW_SECONDS,
    USAGE_TIMEZONE,
)
from ..models.enums import UsageDecision
from ..models.request import AnalysisRequest
from ..models.usage import CostReport, UsageLedger

logger = logging.getLogger(__name__)


class UsageConfig(BaseModel):
    """Configuration for daily budgets and context reuse."""

    max_requests_per_day: int = Field(default=MAX_REQUESTS_PER_DAY, ge=0)
    max_daily_cost_usd: float = Field(default=MAX_DAILY_COST_USD, ge=0.0)
    reuse_window_seconds: int = Field(default=REUSE_WINDOW_SECONDS, ge=0)
    change_threshold: float = Field(default=CHANGE_THRESHOLD, ge=0.0, description="Relative change that counts as meaningful")
    timezone: str = Field(default=USAGE_TIMEZONE, description="IANA zone whose midnight resets the ledgers")


def is_meaningful_change(previous: AnalysisRequest, current: AnalysisRequest, threshold: float) -> bool:
    """
    True when ``current`` differs enough from ``previous`` to justify new advice.

    Any categorical difference (tags, time bucket, language, lifestyle mode)
    is meaningful. Otherwise the largest relative change across tracked
    numeric fields must reach ``threshold``.
    """
    if (
        previous.active_tags != current.active_tags
        or previous.time_of_day != current.time_of_day
        or previous.language != current.language
        or previous.lifestyle_mode != current.lifestyle_mode
    ):
        return True
    return max_relative_change(previous, current) >= threshold


class UsageGovernor:
    """Exclusive owner of usage ledgers."""

    def __init__(self, config: UsageConfig | None = None, clock: Clock | None = None):
        self.config = config or UsageConfig()
        self._clock = clock or utc_now
        self._zone = ZoneInfo(self.config.timezone)
        self._ledgers: dict[tuple[str, date], UsageLedger] = {}
        self._last_served: dict[str, tuple[AnalysisRequest, datetime]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def user_lock(self, user_id: str) -> asyncio.Lock:
        """Lock serialising budget-check, generation and accounting for one user."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def today(self) -> date:
        return self._clock().astimezone(self._zone).date()

    def _ledger(self, user_id: str, day: date | None = None) -> UsageLedger:
        day = day or self.today()
        key = (user_id, day)
        ledger = self._ledgers.get(key)
        if ledger is None:
            ledger = self._ledgers[key] = UsageLedger(user_id=user_id, day=day)
        return ledger

    def ledger_for(self, user_id: str, day: date | None = None) -> UsageLedger:
        """Snapshot of a user's ledger; mutating it has no effect."""
        return self._ledger(user_id, day).model_copy()

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def evaluate(self, user_id: str, request: AnalysisRequest, projected_cost_usd: float = 0.0) -> UsageDecision:
        ledger = self._ledger(user_id)

        if ledger.request_count >= self.config.max_requests_per_day:
            logger.info(f"User {user_id} reached {ledger.request_count}/{self.config.max_requests_per_day} generations today")
            return UsageDecision.DENIED_BUDGET
        if ledger.estimated_cost_usd + projected_cost_usd > self.config.max_daily_cost_usd:
            logger.info(
                f"User {user_id} would exceed daily cost budget "
                f"(${ledger.estimated_cost_usd:.4f} + ${projected_cost_usd:.4f} > ${self.config.max_daily_cost_usd:.2f})"
            )
            return UsageDecision.DENIED_BUDGET

        last = self._last_served.get(user_id)
        if last is not None:
            previous, served_at = last
            age = (self._clock() - served_at).total_seconds()
            if age < self.config.reuse_window_seconds and not is_meaningful_change(
                previous, request, self.config.change_threshold
            ):
                logger.debug(f"User {user_id} context unchanged since {age:.0f}s ago; reuse cached advice")
                return UsageDecision.REUSE_CACHE

        return UsageDecision.APPROVED

    def should_generate_fresh(self, user_id: str, request: AnalysisRequest) -> bool:
        return self.evaluate(user_id, request) is UsageDecision.APPROVED

    # ------------------------------------------------------------------
    # Accounting
    # ------------------------------------------------------------------

    def record_generation(self, user_id: str, cost_usd: float) -> UsageLedger:
        """Charge one generation to today's ledger."""
        ledger = self._ledger(user_id)
        ledger.request_count += 1
        ledger.estimated_cost_usd += max(0.0, cost_usd)
        ledger.last_fresh_generation_at = self._clock()
        logger.debug(
            f"User {user_id} ledger: {ledger.request_count} generations, ${ledger.estimated_cost_usd:.4f}"
        )
        return ledger.model_copy()

    def note_served(self, user_id: str, request: AnalysisRequest) -> None:
        """Remember what was last served, for the meaningful-change check."""
        self._last_served[user_id] = (request, self._clock())

    def last_served(self, user_id: str) -> AnalysisRequest | None:
        entry = self._last_served.get(user_id)
        return entry[0] if entry else None

    def daily_report(self, day: date | None = None) -> CostReport:
        day = day or self.today()
        ledgers = [ledger for (_, d), ledger in self._ledgers.items() if d == day and ledger.request_count > 0]
        total_cost = sum(ledger.estimated_cost_usd for ledger in ledgers)
        active = len(ledgers)
        combined_budget = active * self.config.max_daily_cost_usd
        return CostReport(
            day=day,
            total_cost_usd=total_cost,
            total_requests=sum(ledger.request_count for ledger in ledgers),
            active_users=active,
            average_cost_per_user=total_cost / active if active else 0.0,
            budget_utilization=min(1.0, total_cost / combined_budget) if combined_budget else 0.0,
        )

    def prune(self, before: date) -> int:
        """
        Drop ledgers older than ``before``. Returns the number of ledgers removed.

        Also forgets last-served requests that have left the reuse window and
        user locks nobody holds.
        """
        stale = [key for key in self._ledgers if key[1] < before]
        for key in stale:
            del self._ledgers[key]

        now = self._clock()
        expired = [
            user_id
            for user_id, (_, served_at) in self._last_served.items()
            if (now - served_at).total_seconds() >= self.config.reuse_window_seconds
        ]
        for user_id in expired:
            del self._last_served[user_id]

        idle = [user_id for user_id, lock in self._locks.items() if not lock.locked()]
        for user_id in idle:
            del self._locks[user_id]

        if stale or expired or idle:
            logger.debug(f"Pruned {len(stale)} ledgers, {len(expired)} served entries, {len(idle)} locks")
        return len(stale)
