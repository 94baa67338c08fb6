# tempo_ai_orchestrator/validation/json_repair.py
"""
Best-effort recovery of JSON objects from generator output.

Generators wrap JSON in markdown fences, surround it with prose, or stop
mid-object when they hit an output limit. These helpers recover as much
structure as possible; none of them raise on bad input.
"""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)(?:```|$)", re.DOTALL)
_FLAT_OBJECT_RE = re.compile(r"\{[^{}\[\]]*\}")

MAX_REPAIR_ATTEMPTS = 64


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or ``text`` unchanged."""
    match = _FENCE_RE.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return text.strip()


def loads_object(text: str) -> dict[str, Any] | None:
    """``json.loads`` that only accepts a top-level object."""
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def extract_object(text: str) -> dict[str, Any] | None:
    """Parse the span from the first ``{`` to the last ``}``."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return loads_object(text[start : end + 1])


def repair_truncated(text: str) -> dict[str, Any] | None:
    """
    Close a JSON object that was cut off part-way through.

    Walks the text once, recording every position just after a complete
    string, number or container together with the brackets still open at
    that point. Candidates are then tried from the longest down: the prefix
    is cut there, any dangling comma removed, and the open brackets closed.
    """
    start = text.find("{")
    if start == -1:
        return None
    body = text[start:]

    stack: list[str] = []
    cut_points: list[tuple[int, tuple[str, ...]]] = []
    in_string = False
    escaped = False

    for index, char in enumerate(body):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
                cut_points.append((index + 1, tuple(stack)))
            continue

        if char == '"':
            in_string = True
        elif char in "{[":
            stack.append("}" if char == "{" else "]")
        elif char in "}]":
            if not stack:
                break
            stack.pop()
            cut_points.append((index + 1, tuple(stack)))
            if not stack:
                break
        elif char == ",":
            cut_points.append((index, tuple(stack)))

    if in_string:
        # Cut inside a string value: keep the partial text
        data = loads_object(body + '"' + "".join(reversed(stack)))
        if data is not None:
            return data

    for end, open_brackets in reversed(cut_points[-MAX_REPAIR_ATTEMPTS:]):
        candidate = body[:end].rstrip().rstrip(",")
        candidate += "".join(reversed(open_brackets))
        data = loads_object(candidate)
        if data is not None:
            return data
    return None


def salvage_objects(text: str) -> list[dict[str, Any]]:
    """Every flat ``{...}`` fragment in ``text`` that parses on its own."""
    found = []
    for match in _FLAT_OBJECT_RE.finditer(text):
        data = loads_object(match.group(0))
        if data:
            found.append(data)
    return found
