# tempo_ai_orchestrator/prompts/builder.py
"""
Prompt Builder - renders a token-bounded prompt from a request and its
resolution strategy.

Output format:
```
<persona intro + principles>
<mode note>

## Focus areas
[work] Performance Coach (weight 1.2)
Tone: focused and efficient
- Estimate today's focus peak from HRV and sleep
Insufficient data: HRV

## Current state
Energy level: 72/100
Time of day: it is currently morning
Body:
- Sleep: 7.5 h
Environment:
- Humidity: 45%

## Output
<JSON shape>
```

Rendering is pure: identical requests produce byte-identical prompts and
no wall-clock time is embedded. When the text exceeds the mode's budget
the builder sheds context in order: optional metrics (least important
first), then condensed instructions, then a hard cut of the text.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from ..models.enums import Language, ResolutionMode
from ..models.metrics import format_metric, metric_priority
from ..models.request import AnalysisRequest
from ..synthesis.resolver import ResolutionStrategy, TagInstruction
from .localizer import CatalogLocalizer, Localizer

logger = logging.getLogger(__name__)

TRUNCATION_MARK = "…"


def estimate_tokens(text: str) -> int:
    """
    Rough token estimate.

    ASCII text runs about four characters per token; CJK and other
    non-ASCII characters are counted as one token each.
    """
    ascii_chars = sum(1 for ch in text if ord(ch) < 128)
    return (ascii_chars + 3) // 4 + (len(text) - ascii_chars)


class Prompt(BaseModel):
    """A rendered prompt and its token accounting."""

    model_config = {"frozen": True}

    text: str
    estimated_tokens: int = Field(default=0, description="Estimated token count")
    token_budget: int = Field(default=0, description="Budget for the strategy's mode")
    mode: ResolutionMode
    dropped_fields: tuple[str, ...] = Field(default=(), description="Context metrics omitted due to budget")
    condensed: bool = Field(default=False, description="Instructions were shortened to fit")
    truncated: bool = Field(default=False, description="Text was hard-cut to fit")


class PromptBuilderConfig(BaseModel):
    """Token budgets per resolution mode."""

    full_budget: int = Field(default=2000, description="Budget for balanced/holistic prompts")
    reduced_budget: int = Field(default=1200, description="Budget for gentle/override prompts")

    def budget_for(self, mode: ResolutionMode) -> int:
        return self.reduced_budget if mode.is_low_energy else self.full_budget


class PromptBuilder:
    """Renders prompts. Holds no per-request state."""

    def __init__(self, localizer: Localizer | None = None, config: PromptBuilderConfig | None = None):
        self.localizer = localizer or CatalogLocalizer()
        self.config = config or PromptBuilderConfig()

    def build(self, request: AnalysisRequest, strategy: ResolutionStrategy) -> Prompt:
        budget = self.config.budget_for(strategy.mode)
        ranked = self._rank_metrics(request, strategy)
        kept = list(ranked)
        dropped: list[str] = []
        condensed = False

        text = self._render(request, strategy, kept, condensed)
        tokens = estimate_tokens(text)

        while tokens > budget and kept:
            dropped.append(kept.pop())
            text = self._render(request, strategy, kept, condensed)
            tokens = estimate_tokens(text)

        if tokens > budget:
            condensed = True
            text = self._render(request, strategy, kept, condensed)
            tokens = estimate_tokens(text)

        truncated = False
        if tokens > budget:
            text = _hard_truncate(text, budget)
            tokens = estimate_tokens(text)
            truncated = True

        if dropped or condensed or truncated:
            logger.debug(
                f"Prompt over budget ({budget}): dropped {len(dropped)} metrics, "
                f"condensed={condensed}, truncated={truncated}"
            )

        return Prompt(
            text=text,
            estimated_tokens=tokens,
            token_budget=budget,
            mode=strategy.mode,
            dropped_fields=tuple(dropped),
            condensed=condensed,
            truncated=truncated,
        )

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    @staticmethod
    def _rank_metrics(request: AnalysisRequest, strategy: ResolutionStrategy) -> list[str]:
        """
        Order supplied metrics from most to least important, as qualified keys
        ("bio.hrv", "env.humidity"). Metrics an active tag relies on outrank
        the rest; within each group the catalog priority decides.
        """
        referenced = {key for instruction in strategy.tag_instructions for key in instruction.metrics}
        qualified = [f"bio.{k}" for k in request.biological_context]
        qualified += [f"env.{k}" for k in request.environmental_context]

        def rank(qualified_key: str) -> tuple[int, int, str]:
            key = qualified_key.split(".", 1)[1]
            return (0 if key in referenced else 1, metric_priority(key), qualified_key)

        return sorted(qualified, key=rank)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _t(self, key: str, language: Language, **params: object) -> str:
        return self.localizer.text(key, language, **params)

    def _label(self, key: str, language: Language) -> str:
        label = self._t(f"metric.{key}", language)
        return key if label == f"metric.{key}" else label

    def _render(
        self,
        request: AnalysisRequest,
        strategy: ResolutionStrategy,
        metrics: list[str],
        condensed: bool,
    ) -> str:
        lang = request.language
        sections = [
            self._render_persona(strategy, lang, condensed),
            self._render_focus(strategy, lang, condensed),
            self._render_context(request, metrics),
            "\n".join([self._t("section.output", lang), self._t("output.format", lang)]),
        ]
        return "\n\n".join(s for s in sections if s)

    def _render_persona(self, strategy: ResolutionStrategy, lang: Language, condensed: bool) -> str:
        principles = self._t("persona.principles.short" if condensed else "persona.principles", lang)
        return "\n".join(
            [
                self._t("persona.intro", lang, persona=strategy.unified_persona),
                principles,
                self._t(f"mode.{strategy.mode.value}", lang),
            ]
        )

    def _render_focus(self, strategy: ResolutionStrategy, lang: Language, condensed: bool) -> str:
        if not strategy.tag_instructions:
            return ""
        blocks = [self._t("section.focus", lang)]
        for instruction in strategy.tag_instructions:
            blocks.append(self._render_instruction(instruction, strategy.mode, lang, condensed))
        return "\n".join(blocks)

    def _render_instruction(
        self,
        instruction: TagInstruction,
        mode: ResolutionMode,
        lang: Language,
        condensed: bool,
    ) -> str:
        header = f"[{instruction.tag.value}] {instruction.persona}"
        if mode is ResolutionMode.HOLISTIC:
            header += " " + self._t("focus.weight", lang, weight=f"{instruction.weight:.1f}")
        lines = [header]
        if not condensed:
            lines.append(self._t("focus.tone", lang, tone=instruction.tone))
        instruction_lines = instruction.lines(lang)
        if condensed:
            instruction_lines = instruction_lines[:1]
        lines.extend(f"- {line}" for line in instruction_lines)
        if instruction.missing_metrics:
            labels = ", ".join(self._label(k, lang) for k in instruction.missing_metrics)
            lines.append(self._t("focus.insufficient", lang, metrics=labels))
        return "\n".join(lines)

    def _render_context(self, request: AnalysisRequest, metrics: list[str]) -> str:
        lang = request.language
        lines = [
            self._t("section.context", lang),
            self._t("context.energy", lang, level=request.energy_level),
            self._t("context.time", lang, phrase=self._t(f"time.{request.time_of_day.value}", lang)),
            self._t("context.lifestyle", lang, mode=self._t(f"lifestyle.{request.lifestyle_mode.value}", lang)),
        ]
        # Keep catalog order inside each group so dropping a metric never reorders the rest
        kept = set(metrics)
        for prefix, context, heading in (
            ("bio", request.biological_context, "context.biological"),
            ("env", request.environmental_context, "context.environmental"),
        ):
            keys = sorted(
                (k for k in context if f"{prefix}.{k}" in kept),
                key=lambda k: (metric_priority(k), k),
            )
            if not keys:
                continue
            lines.append(self._t(heading, lang))
            lines.extend(f"- {self._label(k, lang)}: {format_metric(k, context[k])}" for k in keys)
        return "\n".join(lines)


def _hard_truncate(text: str, budget: int) -> str:
    """Cut ``text`` so its estimate (including the mark) fits within ``budget``."""
    if budget <= 0:
        return ""
    low, high = 0, len(text)
    while low < high:
        mid = (low + high + 1) // 2
        if estimate_tokens(text[:mid] + TRUNCATION_MARK) <= budget:
            low = mid
        else:
            high = mid - 1
    return text[:low] + TRUNCATION_MARK
