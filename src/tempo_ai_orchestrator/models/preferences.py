# tempo_ai_orchestrator/models/preferences.py
"""
Preference model and the per-tag persona table.

Every piece of tag-specific behaviour (persona, data priorities, tone,
instructions, the softened low-energy line) lives in ``TAG_CATALOG`` so the
resolver, the prompt builder and the static advice engine read the same
record instead of switching on the tag in three places.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from . import metrics as m
from .enums import FocusTag, Language, LifestyleMode


class TagPersona(BaseModel):
    """Immutable catalog entry describing how one focus tag speaks."""

    model_config = {"frozen": True}

    tag: FocusTag
    persona: str
    tone: str
    icon: str
    data_priorities: tuple[str, ...]
    instructions: dict[Language, tuple[str, ...]]
    softened: dict[Language, str]
    recovery_favored: bool = False
    analysis_weight: float = 1.0

    def instructions_for(self, language: Language) -> tuple[str, ...]:
        return self.instructions.get(language) or self.instructions[Language.EN]

    def softened_for(self, language: Language) -> str:
        return self.softened.get(language) or self.softened[Language.EN]


TAG_CATALOG: dict[FocusTag, TagPersona] = {
    FocusTag.WORK: TagPersona(
        tag=FocusTag.WORK,
        persona="Performance Coach",
        tone="focused and efficient",
        icon="square.stack.3d.up",
        data_priorities=(m.HRV, m.SLEEP_HOURS, m.PRESSURE_TREND, m.RESTING_HEART_RATE),
        instructions={
            Language.JA: (
                "HRVと睡眠から今日の集中力のピーク時間帯を推定する",
                "気圧変化が認知負荷に与える影響を考慮し、タスクの難易度配分を提案する",
                "会議や深い作業の合間に入れる2-5分のリセット方法を1つ示す",
            ),
            Language.EN: (
                "Estimate today's focus peak from HRV and sleep",
                "Account for pressure changes on cognitive load and suggest how to order tasks by difficulty",
                "Offer one 2-5 minute reset to place between meetings or deep work",
            ),
        },
        softened={
            Language.JA: "仕事は重要度の高い1件に絞り、こまめに休憩を挟む",
            Language.EN: "Limit work to the single most important task and take frequent breaks",
        },
        analysis_weight=1.2,
    ),
    FocusTag.BEAUTY: TagPersona(
        tag=FocusTag.BEAUTY,
        persona="Beauty Advisor",
        tone="warm and encouraging",
        icon="sparkles",
        data_priorities=(m.SLEEP_HOURS, m.SLEEP_DEEP, m.HUMIDITY, m.UV_INDEX),
        instructions={
            Language.JA: (
                "深い睡眠の量から肌の回復状態を評価する",
                "湿度とUV指数に合わせた保湿と紫外線対策を提案する",
                "夜のセルフケアで取り入れられる小さな習慣を1つ示す",
            ),
            Language.EN: (
                "Assess skin recovery from deep sleep",
                "Suggest moisturising and UV protection matched to humidity and UV index",
                "Offer one small evening self-care habit",
            ),
        },
        softened={
            Language.JA: "スキンケアは保湿中心の最小限にする",
            Language.EN: "Keep skincare to a minimal, moisture-first routine",
        },
        recovery_favored=True,
        analysis_weight=0.8,
    ),
    FocusTag.DIET: TagPersona(
        tag=FocusTag.DIET,
        persona="Nutrition Guide",
        tone="practical and supportive",
        icon="fork.knife.circle",
        data_priorities=(m.ACTIVE_CALORIES, m.STEPS, m.SLEEP_HOURS, m.FEELS_LIKE),
        instructions={
            Language.JA: (
                "活動量と消費カロリーから今日の食事量の目安を示す",
                "血糖値の安定を意識した食べるタイミングを提案する",
                "体感温度に合わせた水分補給の方法を1つ示す",
            ),
            Language.EN: (
                "Estimate today's intake needs from activity and calories burned",
                "Suggest meal timing that keeps blood sugar steady",
                "Offer one hydration tip matched to the feels-like temperature",
            ),
        },
        softened={
            Language.JA: "消化の良い温かい食事を少量ずつとる",
            Language.EN: "Eat small, warm, easily digested meals",
        },
        recovery_favored=True,
        analysis_weight=1.0,
    ),
    FocusTag.CHILL: TagPersona(
        tag=FocusTag.CHILL,
        persona="Mindfulness Guide",
        tone="calm and gentle",
        icon="leaf",
        data_priorities=(m.HRV, m.RESTING_HEART_RATE, m.RESPIRATORY_RATE, m.PRESSURE_TREND),
        instructions={
            Language.JA: (
                "HRVと安静時心拍数から自律神経のバランスを評価する",
                "気圧低下による不調への対策を含めたリラックス方法を提案する",
                "今すぐできる呼吸法を1つ示す",
            ),
            Language.EN: (
                "Assess autonomic balance from HRV and resting heart rate",
                "Suggest a way to relax that accounts for pressure-drop discomfort",
                "Offer one breathing exercise that can be done right now",
            ),
        },
        softened={
            Language.JA: "ゆっくりした呼吸で心拍を落ち着かせる",
            Language.EN: "Settle your heart rate with slow breathing",
        },
        recovery_favored=True,
        analysis_weight=0.9,
    ),
    FocusTag.ATHLETE: TagPersona(
        tag=FocusTag.ATHLETE,
        persona="Training Coach",
        tone="energetic and precise",
        icon="figure.run",
        data_priorities=(m.HRV, m.RESTING_HEART_RATE, m.SLEEP_DEEP, m.FEELS_LIKE, m.ACTIVE_CALORIES),
        instructions={
            Language.JA: (
                "HRVと安静時心拍数からトレーニング準備度を判定する",
                "体感温度を考慮して今日の運動強度と時間帯を提案する",
                "回復を促すクールダウンを1つ示す",
            ),
            Language.EN: (
                "Judge training readiness from HRV and resting heart rate",
                "Suggest today's intensity and timing given the feels-like temperature",
                "Offer one cool-down that supports recovery",
            ),
        },
        softened={
            Language.JA: "運動は軽いストレッチか短い散歩にとどめる",
            Language.EN: "Keep movement to light stretching or a short walk",
        },
        analysis_weight=1.1,
    ),
}

MAX_ACTIVE_TAGS = len(FocusTag)


class PreferenceModel(BaseModel):
    """User-owned preference state: active focus tags and lifestyle mode."""

    model_config = {"frozen": True}

    active_tags: frozenset[FocusTag] = Field(default_factory=frozenset)
    lifestyle_mode: LifestyleMode = LifestyleMode.STANDARD
    language: Language = Language.JA

    def personas(self) -> list[TagPersona]:
        """Catalog entries for the active tags, in catalog order."""
        return [TAG_CATALOG[tag] for tag in FocusTag if tag in self.active_tags]

    def toggled(self, tag: FocusTag) -> PreferenceModel:
        """Return a copy with ``tag`` switched on or off."""
        tags = set(self.active_tags)
        tags.symmetric_difference_update({tag})
        return self.model_copy(update={"active_tags": frozenset(tags)})
