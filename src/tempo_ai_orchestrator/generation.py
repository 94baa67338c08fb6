# tempo_ai_orchestrator/generation.py
"""
The pluggable text-generation boundary.

The orchestrator knows nothing about a particular model or API: anything
with an async ``generate(prompt, timeout)`` returning raw bytes will do.
Generator-specific parsing belongs in the response validator.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from .exceptions import GenerationError, GenerationTimeout
from .prompts.builder import Prompt

logger = logging.getLogger(__name__)

# Async callable: (prompt text) -> raw response
GenerateCallbackAsync = Callable[[str], Awaitable[str | bytes]]


@runtime_checkable
class TextGenerator(Protocol):
    async def generate(self, prompt: Prompt, timeout: float) -> bytes:
        """Return the raw response, raising on any failure. ``timeout`` is in seconds."""
        ...


class CallbackGenerator:
    """Adapts a plain async callable into a ``TextGenerator``."""

    def __init__(self, callback: GenerateCallbackAsync):
        self.callback = callback

    async def generate(self, prompt: Prompt, timeout: float) -> bytes:
        return _as_bytes(await self.callback(prompt.text))


async def generate_with_timeout(generator: TextGenerator, prompt: Prompt, timeout_ms: int) -> bytes:
    """
    Call the generator under a hard timeout.

    Raises ``GenerationTimeout`` when the deadline passes and
    ``GenerationError`` for any other failure, including a response that is
    neither bytes nor text. Cancellation propagates.
    """
    timeout = timeout_ms / 1000
    try:
        response = await asyncio.wait_for(generator.generate(prompt, timeout), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise GenerationTimeout(timeout_ms) from e
    except GenerationError:
        raise
    except Exception as e:
        raise GenerationError(f"text generator failed: {e}") from e
    return _as_bytes(response)


def _as_bytes(response: object) -> bytes:
    if isinstance(response, bytes):
        return response
    if isinstance(response, str):
        return response.encode("utf-8")
    if isinstance(response, (bytearray, memoryview)):
        return bytes(response)
    raise GenerationError(f"text generator returned {type(response).__name__}, expected bytes or str")
