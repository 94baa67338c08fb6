# tempo_ai_orchestrator/context/__init__.py
"""Context acquisition and request assembly."""

from .assembler import ContextAssembler, data_completeness, estimate_energy  # noqa: F401
from .sources import BiometricSource, EnvironmentalSource, Location  # noqa: F401
