# tempo_ai_orchestrator/validation/__init__.py
"""Response validation, JSON repair and static-rule degradation."""

from .response_validator import ResponseValidator, ValidatorConfig  # noqa: F401
from .static_rules import StaticAdviceConfig, StaticAdviceEngine  # noqa: F401
