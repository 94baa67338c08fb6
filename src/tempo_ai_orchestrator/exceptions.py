# tempo_ai_orchestrator/exceptions.py
"""Exception hierarchy.

Only ``InvalidAnalysisRequest`` is expected to reach callers of the
orchestrator. The others describe upstream failures that the orchestrator
recovers from by degrading to cached or static advice.
"""

from __future__ import annotations


class TempoOrchestratorError(Exception):
    """Base class for all orchestrator errors."""


class InvalidAnalysisRequest(TempoOrchestratorError, ValueError):
    """The caller supplied a request that violates the analysis contract."""


class GenerationError(TempoOrchestratorError):
    """The text generator failed to produce a response."""


class GenerationTimeout(GenerationError):
    """The text generator did not answer within the allotted time."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"text generator timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms
