# tempo_ai_orchestrator/base_models.py
"""Base model for payloads that cross the wire as camelCase JSON."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models serialised to the mobile client.

    Fields are declared in snake_case and exported with camelCase aliases
    (``tagInsights``, ``environmentalInsights``) so the payload matches the
    client's JSON contract. Either spelling is accepted on input, and
    ``obj["tagInsights"]`` / ``obj["tag_insights"]`` both work for callers
    that still consume raw dicts.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def _resolve_field(self, key: str) -> str | None:
        if key in type(self).model_fields:
            return key
        for name, info in type(self).model_fields.items():
            if info.alias == key:
                return name
        return None

    def __getitem__(self, key: str) -> Any:
        name = self._resolve_field(key)
        if name is None:
            raise KeyError(key)
        return getattr(self, name)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            return self._resolve_field(key) is not None
        return False

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys and JSON-safe values."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
