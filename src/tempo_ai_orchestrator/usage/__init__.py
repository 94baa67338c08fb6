# tempo_ai_orchestrator/usage/__init__.py
"""Per-user budgets and cost estimation."""

from .cost import CostModel  # noqa: F401
from .governor import UsageConfig, UsageGovernor, is_meaningful_change  # noqa: F401
