# tempo_ai_orchestrator/prompts/__init__.py
"""Prompt rendering and localisation."""

from .builder import Prompt, PromptBuilder, PromptBuilderConfig, estimate_tokens  # noqa: F401
from .localizer import DEFAULT_CATALOG, CatalogLocalizer, Localizer  # noqa: F401
