# tempo_ai_orchestrator/synthesis/resolver.py
"""
Conflict resolution between simultaneously active focus tags.

Rules are evaluated in priority order and the first match wins:

1. energy <= 20         -> OVERRIDE: "Rest Guardian", all tag advice suppressed
2. 21 <= energy <= 40   -> GENTLE: recovery-favoured tags keep full
                           instructions, the rest get one softened line
3. three or more tags   -> HOLISTIC: one combined persona, weighted instructions
4. otherwise            -> BALANCED: every tag keeps its persona, unweighted

Instructions never reference metrics that were not supplied; a tag whose
priority metrics are missing lists them as insufficient data instead.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, Field

from ..exceptions import InvalidAnalysisRequest
from ..models.enums import FocusTag, Language, ResolutionMode
from ..models.preferences import TAG_CATALOG
from ..models.request import AnalysisRequest, clamp_energy

logger = logging.getLogger(__name__)

OVERRIDE_MAX_ENERGY = 20
GENTLE_MAX_ENERGY = 40
HOLISTIC_MIN_TAGS = 3

REST_GUARDIAN = "Rest Guardian"
GENTLE_RECOVERY_COACH = "Gentle Recovery Coach"
PERSONAL_HEALTH_GUIDE = "Personal Health Guide"

COMBINATION_PERSONAS: dict[frozenset[FocusTag], str] = {
    frozenset({FocusTag.WORK, FocusTag.BEAUTY}): "High-Performance Wellness Expert",
    frozenset({FocusTag.WORK, FocusTag.DIET}): "Productive Nutrition Strategist",
    frozenset({FocusTag.WORK, FocusTag.CHILL}): "Balanced Performance Mentor",
    frozenset({FocusTag.WORK, FocusTag.ATHLETE}): "Peak Performance Trainer",
    frozenset({FocusTag.BEAUTY, FocusTag.DIET}): "Inner Beauty Nutritionist",
    frozenset({FocusTag.BEAUTY, FocusTag.CHILL}): "Holistic Self-Care Guide",
    frozenset({FocusTag.BEAUTY, FocusTag.ATHLETE}): "Active Radiance Coach",
    frozenset({FocusTag.DIET, FocusTag.CHILL}): "Mindful Nutrition Guide",
    frozenset({FocusTag.DIET, FocusTag.ATHLETE}): "Sports Nutrition Coach",
    frozenset({FocusTag.CHILL, FocusTag.ATHLETE}): "Recovery Performance Coach",
    frozenset({FocusTag.WORK, FocusTag.BEAUTY, FocusTag.ATHLETE}): "Total Performance Concierge",
    frozenset({FocusTag.BEAUTY, FocusTag.DIET, FocusTag.CHILL}): "Holistic Wellness Curator",
    frozenset({FocusTag.WORK, FocusTag.DIET, FocusTag.ATHLETE}): "Peak Performance Fuel Strategist",
    frozenset({FocusTag.WORK, FocusTag.BEAUTY, FocusTag.CHILL}): "Balanced Lifestyle Architect",
}


class InstructionDetail(str, Enum):
    FULL = "full"
    SOFTENED = "softened"


class TagInstruction(BaseModel):
    """What the prompt should ask of one active tag."""

    model_config = {"frozen": True}

    tag: FocusTag
    persona: str
    tone: str
    detail: InstructionDetail = InstructionDetail.FULL
    weight: float = 1.0
    metrics: tuple[str, ...] = Field(default=(), description="Priority metrics that were supplied")
    missing_metrics: tuple[str, ...] = Field(default=(), description="Priority metrics reported as insufficient data")

    @property
    def softened(self) -> bool:
        return self.detail is InstructionDetail.SOFTENED

    def lines(self, language: Language) -> tuple[str, ...]:
        persona = TAG_CATALOG[self.tag]
        if self.softened:
            return (persona.softened_for(language),)
        return persona.instructions_for(language)


class ResolutionStrategy(BaseModel):
    """How the active tags are merged for one request. Never cached on its own."""

    model_config = {"frozen": True}

    mode: ResolutionMode
    unified_persona: str
    tag_instructions: tuple[TagInstruction, ...] = ()
    energy_level: int

    @property
    def expects_tag_insights(self) -> bool:
        return bool(self.tag_instructions)

    @property
    def tags(self) -> frozenset[FocusTag]:
        return frozenset(i.tag for i in self.tag_instructions)

    def instruction_for(self, tag: FocusTag) -> TagInstruction | None:
        for instruction in self.tag_instructions:
            if instruction.tag == tag:
                return instruction
        return None


def combination_persona(tags: frozenset[FocusTag]) -> str:
    """Name for a tag combination; unknown combinations get the generic guide."""
    if len(tags) == 1:
        (tag,) = tags
        return TAG_CATALOG[tag].persona
    return COMBINATION_PERSONAS.get(tags, PERSONAL_HEALTH_GUIDE)


class ConflictResolver:
    """Stateless resolver; safe to share between tasks."""

    def resolve(
        self,
        active_tags: Iterable[FocusTag],
        energy_level: int | None,
        available_metrics: Iterable[str] = (),
    ) -> ResolutionStrategy:
        if energy_level is None:
            raise InvalidAnalysisRequest("energy_level is required to resolve a strategy")

        energy = clamp_energy(energy_level)
        tags = frozenset(active_tags)
        available = frozenset(available_metrics)
        ordered = [tag for tag in FocusTag if tag in tags]

        if energy <= OVERRIDE_MAX_ENERGY:
            strategy = ResolutionStrategy(
                mode=ResolutionMode.OVERRIDE,
                unified_persona=REST_GUARDIAN,
                energy_level=energy,
            )
        elif energy <= GENTLE_MAX_ENERGY:
            instructions = tuple(
                self._instruction(
                    tag,
                    available,
                    InstructionDetail.FULL if TAG_CATALOG[tag].recovery_favored else InstructionDetail.SOFTENED,
                )
                for tag in ordered
            )
            strategy = ResolutionStrategy(
                mode=ResolutionMode.GENTLE,
                unified_persona=GENTLE_RECOVERY_COACH,
                tag_instructions=instructions,
                energy_level=energy,
            )
        elif len(tags) >= HOLISTIC_MIN_TAGS:
            weighted = sorted(ordered, key=lambda t: TAG_CATALOG[t].analysis_weight, reverse=True)
            instructions = tuple(
                self._instruction(tag, available, InstructionDetail.FULL, weight=TAG_CATALOG[tag].analysis_weight)
                for tag in weighted
            )
            strategy = ResolutionStrategy(
                mode=ResolutionMode.HOLISTIC,
                unified_persona=combination_persona(tags),
                tag_instructions=instructions,
                energy_level=energy,
            )
        else:
            instructions = tuple(self._instruction(tag, available, InstructionDetail.FULL) for tag in ordered)
            strategy = ResolutionStrategy(
                mode=ResolutionMode.BALANCED,
                unified_persona=combination_persona(tags) if tags else PERSONAL_HEALTH_GUIDE,
                tag_instructions=instructions,
                energy_level=energy,
            )

        logger.debug(
            f"Resolved {len(tags)} tags at energy {energy} to {strategy.mode.value} ({strategy.unified_persona})"
        )
        return strategy

    def resolve_request(self, request: AnalysisRequest) -> ResolutionStrategy:
        return self.resolve(request.active_tags, request.energy_level, request.available_metrics)

    @staticmethod
    def _instruction(
        tag: FocusTag,
        available: frozenset[str],
        detail: InstructionDetail,
        weight: float = 1.0,
    ) -> TagInstruction:
        persona = TAG_CATALOG[tag]
        return TagInstruction(
            tag=tag,
            persona=persona.persona,
            tone=persona.tone,
            detail=detail,
            weight=weight,
            metrics=tuple(k for k in persona.data_priorities if k in available),
            missing_metrics=tuple(k for k in persona.data_priorities if k not in available),
        )
