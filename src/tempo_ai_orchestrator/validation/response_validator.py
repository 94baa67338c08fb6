# tempo_ai_orchestrator/validation/response_validator.py
"""
Response Validator - turns raw generator bytes into an ``AnalysisResult``.

Parsing degrades in stages: strict JSON, then a repair of truncated JSON,
then salvage of individual insight objects. Each field is validated on its
own and invalid fields or items are dropped, each costing a fixed amount of
confidence. The core requirement is at least one tag insight, or a
synthesis when the strategy expects no tag lines (override mode, or no
active tags).

``validate`` never raises: any input, including empty or binary data,
yields a ``(result, ok)`` tuple.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..models.enums import FocusTag, ResolutionMode, ResultSource, Urgency
from ..models.preferences import TAG_CATALOG
from ..models.result import (
    ActionSuggestion,
    AnalysisResult,
    EnvironmentalInsight,
    SynthesisSummary,
    TagInsight,
)
from ..synthesis.resolver import ResolutionStrategy
from .json_repair import extract_object, loads_object, repair_truncated, salvage_objects, strip_code_fences

logger = logging.getLogger(__name__)

# Top-level keys of a response object, current and older shapes
ENVELOPE_KEYS = frozenset(
    {
        "tagInsights",
        "tag_insights",
        "synthesis",
        "headline",
        "energyComment",
        "detailAnalysis",
        "environmentalInsights",
        "environmental_insights",
        "actionSuggestions",
        "action_suggestions",
        "aiActionSuggestions",
    }
)


class ValidatorConfig(BaseModel):
    """Confidence penalties applied during validation."""

    field_penalty: float = Field(default=0.1, ge=0.0, le=1.0, description="Per dropped or repaired field/item")
    truncation_penalty: float = Field(default=0.1, ge=0.0, le=1.0, description="Output was cut off and closed")
    salvage_penalty: float = Field(default=0.2, ge=0.0, le=1.0, description="Only fragments could be recovered")
    max_items: int = Field(default=10, gt=0, description="Cap per insight list")


class _Accumulator:
    """Collects repair notes and the confidence they cost."""

    def __init__(self) -> None:
        self.notes: list[str] = []
        self.penalty = 0.0

    def note(self, what: str, penalty: float) -> None:
        self.notes.append(what)
        self.penalty += penalty


class ResponseValidator:
    """Stateless; one instance can serve every request."""

    def __init__(self, config: ValidatorConfig | None = None):
        self.config = config or ValidatorConfig()

    def validate(self, raw: bytes, strategy: ResolutionStrategy | None = None) -> tuple[AnalysisResult, bool]:
        try:
            return self._validate(raw, strategy)
        except Exception as e:
            # Contract: malformed output degrades, it never propagates
            logger.warning(f"Response validation failed unexpectedly: {e}", exc_info=True)
            return self._empty(strategy, ["validator.error"]), False

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _validate(self, raw: bytes, strategy: ResolutionStrategy | None) -> tuple[AnalysisResult, bool]:
        acc = _Accumulator()
        text = _decode(raw)
        data = self._parse(text, acc)
        if data is None:
            logger.debug("No usable structure in generator response")
            return self._empty(strategy, acc.notes + ["json.unparseable"]), False

        tag_insights = self._tag_insights(data, acc)
        synthesis = self._synthesis(data, strategy, acc)
        environmental = self._items(data, ("environmentalInsights", "environmental_insights"), EnvironmentalInsight, acc)
        actions = self._items(
            data, ("actionSuggestions", "action_suggestions", "aiActionSuggestions"), ActionSuggestion, acc
        )

        if strategy is not None:
            tag_insights = self._conform(tag_insights, strategy, acc)

        expects_tags = strategy.expects_tag_insights if strategy is not None else True
        ok = bool(tag_insights) if expects_tags else synthesis is not None
        if not tag_insights and synthesis is None and not environmental and not actions:
            ok = False

        result = AnalysisResult(
            tag_insights=tag_insights,
            synthesis=synthesis,
            environmental_insights=environmental,
            action_suggestions=actions,
            confidence=max(0.0, min(1.0, 1.0 - acc.penalty)),
            source=ResultSource.FRESH,
            resolution_mode=strategy.mode if strategy else None,
            repairs=acc.notes,
        )
        if acc.notes:
            logger.debug(f"Validated response with repairs {acc.notes} (confidence={result.confidence:.2f}, ok={ok})")
        return result, ok

    def _parse(self, text: str, acc: _Accumulator) -> dict[str, Any] | None:
        if not text.strip():
            return None
        body = strip_code_fences(text)

        data = loads_object(body) or extract_object(body)
        if data is not None and _has_envelope(data):
            return data

        data = repair_truncated(body)
        if data is not None and _has_envelope(data):
            acc.note("json.truncated", self.config.truncation_penalty)
            return data

        fragments = salvage_objects(body)
        salvaged: dict[str, list[dict[str, Any]]] = {
            "tagInsights": [f for f in fragments if "tag" in f],
            "environmentalInsights": [f for f in fragments if "factor" in f],
            "actionSuggestions": [f for f in fragments if "title" in f and "tag" not in f and "persona" not in f],
        }
        if any(salvaged.values()):
            acc.note("json.partial", self.config.salvage_penalty)
            return salvaged
        return None

    # ------------------------------------------------------------------
    # Field validation
    # ------------------------------------------------------------------

    def _tag_insights(self, data: dict[str, Any], acc: _Accumulator) -> list[TagInsight]:
        raw_items = _first(data, ("tagInsights", "tag_insights"))
        if raw_items is None:
            return []
        if not isinstance(raw_items, list):
            acc.note("tagInsights", self.config.field_penalty)
            return []

        insights: list[TagInsight] = []
        for index, item in enumerate(raw_items[: self.config.max_items]):
            insight = self._tag_insight(item, index, acc)
            if insight is not None:
                insights.append(insight)
        return insights

    def _tag_insight(self, item: Any, index: int, acc: _Accumulator) -> TagInsight | None:
        if not isinstance(item, dict):
            acc.note(f"tagInsights[{index}]", self.config.field_penalty)
            return None

        tag = _coerce_tag(item.get("tag"))
        message = item.get("message")
        if tag is None or not isinstance(message, str) or not message.strip():
            acc.note(f"tagInsights[{index}]", self.config.field_penalty)
            return None

        urgency = item.get("urgency", Urgency.INFO.value)
        try:
            urgency = Urgency(urgency)
        except ValueError:
            acc.note(f"tagInsights[{index}].urgency", self.config.field_penalty)
            urgency = Urgency.INFO

        icon = item.get("icon")
        if not isinstance(icon, str) or not icon:
            icon = TAG_CATALOG[tag].icon
        return TagInsight(tag=tag, message=message.strip(), icon=icon, urgency=urgency)

    def _synthesis(
        self,
        data: dict[str, Any],
        strategy: ResolutionStrategy | None,
        acc: _Accumulator,
    ) -> SynthesisSummary | None:
        persona = strategy.unified_persona if strategy else ""
        raw = data.get("synthesis")

        if raw is None:
            # Older response shape: headline + energyComment
            headline = data.get("headline")
            comment = data.get("energyComment") or data.get("detailAnalysis")
            if isinstance(headline, dict) or isinstance(comment, str):
                title = headline.get("title", "") if isinstance(headline, dict) else ""
                message = comment if isinstance(comment, str) and comment.strip() else None
                if message is None and isinstance(headline, dict):
                    message = headline.get("subtitle")
                if isinstance(message, str) and message.strip():
                    return SynthesisSummary(persona=persona, title=str(title), message=message.strip())
            return None

        if isinstance(raw, str) and raw.strip():
            return SynthesisSummary(persona=persona, message=raw.strip())
        if not isinstance(raw, dict):
            acc.note("synthesis", self.config.field_penalty)
            return None

        # The resolver owns the persona; a generator's own label is only kept without a strategy
        candidate = {**raw, "persona": persona} if strategy else {"persona": "", **raw}
        try:
            return SynthesisSummary.model_validate(candidate)
        except ValidationError:
            acc.note("synthesis", self.config.field_penalty)
            return None

    def _items(self, data: dict[str, Any], keys: tuple[str, ...], model: type[BaseModel], acc: _Accumulator) -> list:
        raw_items = _first(data, keys)
        if raw_items is None:
            return []
        name = keys[0]
        if not isinstance(raw_items, list):
            acc.note(name, self.config.field_penalty)
            return []

        items = []
        for index, item in enumerate(raw_items[: self.config.max_items]):
            try:
                items.append(model.model_validate(item))
            except ValidationError:
                acc.note(f"{name}[{index}]", self.config.field_penalty)
        return items

    # ------------------------------------------------------------------
    # Strategy conformance
    # ------------------------------------------------------------------

    def _conform(
        self,
        insights: list[TagInsight],
        strategy: ResolutionStrategy,
        acc: _Accumulator,
    ) -> list[TagInsight]:
        """Make tag lines match what the strategy allows."""
        if strategy.mode is ResolutionMode.OVERRIDE:
            if insights:
                acc.note("tagInsights.suppressed", 0.0)
            return []

        allowed = strategy.tags
        conformed: list[TagInsight] = []
        seen_softened: set[FocusTag] = set()
        for insight in insights:
            if insight.tag not in allowed:
                acc.note(f"tagInsights.{insight.tag.value}.inactive", self.config.field_penalty)
                continue
            instruction = strategy.instruction_for(insight.tag)
            if instruction is not None and instruction.softened:
                if insight.tag in seen_softened:
                    continue
                seen_softened.add(insight.tag)
                if insight.urgency is Urgency.CRITICAL:
                    insight = insight.model_copy(update={"urgency": Urgency.WARNING})
            conformed.append(insight)
        return conformed

    @staticmethod
    def _empty(strategy: ResolutionStrategy | None, notes: list[str]) -> AnalysisResult:
        return AnalysisResult(
            confidence=0.0,
            source=ResultSource.FRESH,
            resolution_mode=strategy.mode if strategy else None,
            repairs=notes,
        )


def _decode(raw: bytes | bytearray | str | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return bytes(raw).decode("utf-8", errors="replace").lstrip("\ufeff")


def _first(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _coerce_tag(value: Any) -> FocusTag | None:
    """Accept "work", "Work" and combined labels such as "beauty+diet" (first valid part wins)."""
    if not isinstance(value, str):
        return None
    for part in value.replace("×", "+").split("+"):
        try:
            return FocusTag(part.strip().lower())
        except ValueError:
            continue
    return None


def _has_envelope(data: dict[str, Any]) -> bool:
    """A lone insight object parsed out of a list is not a response."""
    return not ENVELOPE_KEYS.isdisjoint(data)
