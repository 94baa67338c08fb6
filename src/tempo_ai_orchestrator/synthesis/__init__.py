# tempo_ai_orchestrator/synthesis/__init__.py
"""Synthesis engine: merges active focus tags into one strategy."""

from .resolver import (  # noqa: F401
    COMBINATION_PERSONAS,
    ConflictResolver,
    InstructionDetail,
    ResolutionStrategy,
    TagInstruction,
    combination_persona,
)
