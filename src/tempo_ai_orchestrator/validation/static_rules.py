# tempo_ai_orchestrator/validation/static_rules.py
"""
Static advice - deterministic, rule-based results used when no generated or
cached advice is available.

Each tag has a short rule table ("today's try"), pairs of tags add synergy
suggestions, and environmental thresholds add insights. The output honours
the resolution strategy exactly like generated advice: override mode yields
only a rest synthesis, gentle mode gives downgraded tags one softened line.
Confidence never exceeds 0.5 and drops further when little of the data the
active tags rely on was supplied.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from ..context.assembler import data_completeness
from ..models import metrics as m
from ..models.enums import FocusTag, Language, LifestyleMode, ResolutionMode, ResultSource, TimeOfDay, Urgency
from ..models.preferences import TAG_CATALOG
from ..models.request import AnalysisRequest
from ..models.result import (
    ActionSuggestion,
    AnalysisResult,
    EnvironmentalInsight,
    SynthesisSummary,
    TagInsight,
)
from ..synthesis.resolver import ResolutionStrategy

logger = logging.getLogger(__name__)


class StaticAdviceConfig(BaseModel):
    base_confidence: float = Field(default=0.5, ge=0.0, le=0.5)
    sparse_confidence: float = Field(default=0.3, ge=0.0, le=0.5)
    sparse_threshold: float = Field(default=0.5, description="Completeness below this counts as sparse data")


class _Rule(BaseModel):
    """One piece of canned advice: an insight line plus a small action."""

    message: str
    action: str
    time: str
    difficulty: str = "easy"
    action_type: str = "rest"
    urgency: Urgency = Urgency.INFO


def _rules(ja: _Rule, en: _Rule) -> dict[Language, _Rule]:
    return {Language.JA: ja, Language.EN: en}


# =============================================================================
# Rule text
# =============================================================================

RULES: dict[str, dict[Language, _Rule]] = {
    "work.peak": _rules(
        _Rule(message="今朝は集中力が高い状態です。重要なタスクを今のうちに", action="25分のポモドーロを1回試す", time="25分", action_type="focus"),
        _Rule(message="Your focus is strong this morning. Tackle the important task now", action="Try one 25-minute pomodoro", time="25 min", action_type="focus"),
    ),
    "work.pressure": _rules(
        _Rule(message="気圧が下がり、集中しにくい状況です", action="簡単なタスクの整理から始める", time="10分", action_type="focus", urgency=Urgency.WARNING),
        _Rule(message="Falling pressure makes focus harder today", action="Start by sorting out simple tasks", time="10 min", action_type="focus", urgency=Urgency.WARNING),
    ),
    "work.rhythm": _rules(
        _Rule(message="今日は安定したペースで作業できそうです", action="50分作業と10分休憩のリズムを試す", time="60分", difficulty="medium", action_type="focus"),
        _Rule(message="A steady working pace looks possible today", action="Try 50 minutes of work and a 10-minute break", time="60 min", difficulty="medium", action_type="focus"),
    ),
    "beauty.dry": _rules(
        _Rule(message="湿度{humidity}%と低めです。肌の乾燥に注意", action="温かいカモミールティーで内側から保湿", time="5分", action_type="hydrate", urgency=Urgency.WARNING),
        _Rule(message="Humidity is low at {humidity}%. Watch for dry skin", action="Hydrate from within with warm chamomile tea", time="5 min", action_type="hydrate", urgency=Urgency.WARNING),
    ),
    "beauty.evening": _rules(
        _Rule(message="今夜はスペシャルケアに向いたコンディションです", action="温めたオイルで顔をやさしくマッサージ", time="10分", difficulty="medium", action_type="beauty"),
        _Rule(message="Tonight is a good night for special care", action="Gently massage your face with warmed oil", time="10 min", difficulty="medium", action_type="beauty"),
    ),
    "beauty.basic": _rules(
        _Rule(message="肌の状態をこのまま維持しましょう", action="コップ一杯の水を飲む", time="1分", action_type="hydrate"),
        _Rule(message="Keep your skin's condition steady", action="Drink a glass of water", time="1 min", action_type="hydrate"),
    ),
    "diet.afternoon": _rules(
        _Rule(message="活動量から見て栄養補給のタイミングです", action="ナッツを小皿一杯追加する", time="3分", action_type="hydrate"),
        _Rule(message="Your activity says it is time to refuel", action="Add a small handful of nuts", time="3 min", action_type="hydrate"),
    ),
    "diet.morning": _rules(
        _Rule(message="一日のスタートにカラフルな朝食を", action="トマト・ほうれん草・パプリカを組み合わせる", time="15分", difficulty="medium", action_type="hydrate"),
        _Rule(message="Start the day with a colourful breakfast", action="Combine tomato, spinach and paprika", time="15 min", difficulty="medium", action_type="hydrate"),
    ),
    "diet.balance": _rules(
        _Rule(message="今の食事リズムを続けましょう", action="次の食事まで水分補給を意識する", time="継続", action_type="hydrate"),
        _Rule(message="Keep your current meal rhythm", action="Stay hydrated until your next meal", time="ongoing", action_type="hydrate"),
    ),
    "chill.pressure": _rules(
        _Rule(message="気圧の低下で体が重く感じやすい日です", action="温かいジンジャーティーで体を温める", time="5分", urgency=Urgency.WARNING),
        _Rule(message="Falling pressure can leave you feeling heavy", action="Warm up with a ginger tea", time="5 min", urgency=Urgency.WARNING),
    ),
    "chill.low": _rules(
        _Rule(message="体が休息を求めています", action="5分間のフットマッサージ", time="5分"),
        _Rule(message="Your body is asking for rest", action="A 5-minute foot massage", time="5 min"),
    ),
    "chill.basic": _rules(
        _Rule(message="短い休憩で気持ちを整えましょう", action="ゆっくり3回深呼吸する", time="1分"),
        _Rule(message="Reset with a short pause", action="Take three slow, deep breaths", time="1 min"),
    ),
    "athlete.peak": _rules(
        _Rule(message="高強度トレーニングに最適なコンディションです", action="20分のインターバルトレーニング", time="20分", difficulty="hard", action_type="exercise"),
        _Rule(message="Conditions are ideal for a high-intensity session", action="20 minutes of interval training", time="20 min", difficulty="hard", action_type="exercise"),
    ),
    "athlete.morning": _rules(
        _Rule(message="朝は体をやさしく目覚めさせましょう", action="5分間のモーニングストレッチ", time="5分", action_type="exercise"),
        _Rule(message="Wake your body up gently this morning", action="A 5-minute morning stretch", time="5 min", action_type="exercise"),
    ),
    "athlete.walk": _rules(
        _Rule(message="いつもより少し長く歩くのに良い日です", action="いつもより10分長く歩く", time="30分", action_type="exercise"),
        _Rule(message="A good day for a slightly longer walk", action="Walk 10 minutes longer than usual", time="30 min", action_type="exercise"),
    ),
    "rest": _rules(
        _Rule(message="今日は回復を最優先にしましょう。予定を減らし、早めに休んでください", action="15分横になって目を閉じる", time="15分"),
        _Rule(message="Make recovery today's only priority. Lighten your plans and rest early", action="Lie down with your eyes closed for 15 minutes", time="15 min"),
    ),
    "breathing": _rules(
        _Rule(message="", action="深呼吸を5回", time="2分"),
        _Rule(message="", action="Five deep breaths", time="2 min"),
    ),
    "hydrate": _rules(
        _Rule(message="", action="こまめに水分補給する", time="1分", action_type="hydrate"),
        _Rule(message="", action="Sip water regularly", time="1 min", action_type="hydrate"),
    ),
}

SYNERGIES: dict[frozenset[FocusTag], dict[Language, str]] = {
    frozenset({FocusTag.WORK, FocusTag.ATHLETE}): {
        Language.JA: "集中作業の合間に5分歩いて、頭と体を同時にリフレッシュ",
        Language.EN: "Walk for 5 minutes between focus blocks to refresh body and mind",
    },
    frozenset({FocusTag.DIET, FocusTag.ATHLETE}): {
        Language.JA: "運動後30分以内にたんぱく質をとる",
        Language.EN: "Have some protein within 30 minutes of exercising",
    },
    frozenset({FocusTag.BEAUTY, FocusTag.CHILL}): {
        Language.JA: "寝る前のぬるめの入浴でリラックスと肌ケアを両立",
        Language.EN: "A warm bath before bed relaxes you and helps your skin",
    },
    frozenset({FocusTag.BEAUTY, FocusTag.DIET}): {
        Language.JA: "ビタミンCの多い果物をおやつに",
        Language.EN: "Snack on fruit rich in vitamin C",
    },
}

HEADLINES: dict[Language, tuple[str, str, str, str]] = {
    # energy > 70, > 40, > 20, otherwise
    Language.JA: ("エネルギー充分", "バランス良好", "エネルギー低下", "要注意レベル"),
    Language.EN: ("Plenty of energy", "Well balanced", "Energy is dipping", "Time to rest"),
}

SYNTHESIS_MESSAGES: dict[ResolutionMode, dict[Language, str]] = {
    ResolutionMode.OVERRIDE: {
        Language.JA: "エネルギーが非常に低い状態です。今日は休息だけを考えてください",
        Language.EN: "Your energy is very low. Focus on rest and nothing else today",
    },
    ResolutionMode.GENTLE: {
        Language.JA: "エネルギーが低めなので、無理のない範囲で回復を優先しましょう",
        Language.EN: "Your energy is low, so favour recovery and keep things light",
    },
    ResolutionMode.BALANCED: {
        Language.JA: "データに基づく基本的なアドバイスです",
        Language.EN: "Basic advice based on your data",
    },
    ResolutionMode.HOLISTIC: {
        Language.JA: "選んだ分野をまとめた基本的なアドバイスです",
        Language.EN: "Basic advice that brings your focus areas together",
    },
}

ENVIRONMENT_TEXT: dict[str, dict[Language, str]] = {
    "pressure": {Language.JA: "気圧が低下しています。頭痛やだるさに注意", Language.EN: "Pressure is dropping. Watch for headaches and fatigue"},
    "humidity.very_dry": {Language.JA: "空気が非常に乾燥しています", Language.EN: "The air is very dry"},
    "humidity.dry": {Language.JA: "やや乾燥しています", Language.EN: "The air is somewhat dry"},
    "temperature": {Language.JA: "体感温度が高く、熱中症に注意", Language.EN: "It feels hot. Guard against heat exhaustion"},
    "uv": {Language.JA: "紫外線が強い時間帯があります", Language.EN: "UV is strong today"},
}


# =============================================================================
# Engine
# =============================================================================


class StaticAdviceEngine:
    """Produces rule-based results that satisfy the same strategy contract as generated ones."""

    def __init__(self, config: StaticAdviceConfig | None = None):
        self.config = config or StaticAdviceConfig()

    def generate(self, request: AnalysisRequest, strategy: ResolutionStrategy) -> AnalysisResult:
        lang = request.language
        energy = strategy.energy_level
        tag_insights: list[TagInsight] = []
        actions: list[ActionSuggestion] = []

        if strategy.mode is ResolutionMode.OVERRIDE:
            rest = RULES["rest"][lang]
            actions.append(self._action(rest))
            synthesis = SynthesisSummary(persona=strategy.unified_persona, title=_headline(energy, lang), message=rest.message)
        else:
            for instruction in strategy.tag_instructions:
                persona = TAG_CATALOG[instruction.tag]
                if instruction.softened:
                    tag_insights.append(
                        TagInsight(tag=instruction.tag, icon=persona.icon, message=persona.softened_for(lang))
                    )
                    continue
                rule = RULES[self._rule_key(instruction.tag, request, energy)][lang]
                message = rule.message.format(humidity=int(request.environmental_context.get(m.HUMIDITY, 0)))
                tag_insights.append(
                    TagInsight(tag=instruction.tag, icon=persona.icon, message=message, urgency=rule.urgency)
                )
                actions.append(self._action(rule))

            actions.extend(self._synergies(strategy, lang))
            actions.extend(self._basic_actions(request, energy, lang))
            synthesis = SynthesisSummary(
                persona=strategy.unified_persona,
                title=_headline(energy, lang),
                message=SYNTHESIS_MESSAGES[strategy.mode][lang],
            )

        completeness = data_completeness(request)
        confidence = (
            self.config.base_confidence if completeness >= self.config.sparse_threshold else self.config.sparse_confidence
        )
        logger.debug(
            f"Static advice for {strategy.mode.value}: {len(tag_insights)} tag lines, "
            f"completeness={completeness:.2f}, confidence={confidence}"
        )
        return AnalysisResult(
            tag_insights=tag_insights,
            synthesis=synthesis,
            environmental_insights=self._environment(request, lang),
            action_suggestions=actions,
            confidence=confidence,
            source=ResultSource.STATIC_FALLBACK,
            resolution_mode=strategy.mode,
        )

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    @staticmethod
    def _rule_key(tag: FocusTag, request: AnalysisRequest, energy: int) -> str:
        env = request.environmental_context
        tod = request.time_of_day
        pressure_dropping = env.get(m.PRESSURE_TREND, 0.0) < -3

        if tag is FocusTag.WORK:
            if energy > 70 and tod is TimeOfDay.MORNING:
                return "work.peak"
            return "work.pressure" if pressure_dropping else "work.rhythm"
        if tag is FocusTag.BEAUTY:
            if m.HUMIDITY in env and env[m.HUMIDITY] < 40:
                return "beauty.dry"
            if tod is TimeOfDay.EVENING and energy > 50:
                return "beauty.evening"
            return "beauty.basic"
        if tag is FocusTag.DIET:
            if tod is TimeOfDay.AFTERNOON and energy < 60:
                return "diet.afternoon"
            return "diet.morning" if tod is TimeOfDay.MORNING else "diet.balance"
        if tag is FocusTag.CHILL:
            if pressure_dropping:
                return "chill.pressure"
            return "chill.low" if energy < 30 else "chill.basic"
        # Athlete
        feels_like = env.get(m.FEELS_LIKE)
        comfortable = feels_like is not None and 15 < feels_like < 25
        if energy > 70 and comfortable and request.lifestyle_mode is LifestyleMode.ATHLETE:
            return "athlete.peak"
        return "athlete.morning" if tod is TimeOfDay.MORNING else "athlete.walk"

    @staticmethod
    def _action(rule: _Rule) -> ActionSuggestion:
        return ActionSuggestion(
            title=rule.action,
            description=rule.message,
            action_type=rule.action_type,
            estimated_time=rule.time,
            difficulty=rule.difficulty,
        )

    @staticmethod
    def _synergies(strategy: ResolutionStrategy, lang: Language) -> list[ActionSuggestion]:
        tags = frozenset(i.tag for i in strategy.tag_instructions if not i.softened)
        found = []
        for pair, text in SYNERGIES.items():
            if pair <= tags:
                found.append(ActionSuggestion(title=text[lang], action_type="social", estimated_time="", difficulty="easy"))
        return found

    @staticmethod
    def _basic_actions(request: AnalysisRequest, energy: int, lang: Language) -> list[ActionSuggestion]:
        basics = []
        if energy < 50:
            rule = RULES["breathing"][lang]
            basics.append(ActionSuggestion(title=rule.action, estimated_time=rule.time, action_type=rule.action_type))
        if request.environmental_context.get(m.HUMIDITY, 100.0) < 40:
            rule = RULES["hydrate"][lang]
            basics.append(ActionSuggestion(title=rule.action, estimated_time=rule.time, action_type=rule.action_type))
        return basics

    @staticmethod
    def _environment(request: AnalysisRequest, lang: Language) -> list[EnvironmentalInsight]:
        env = request.environmental_context
        insights = []
        if env.get(m.PRESSURE_TREND, 0.0) < -3:
            insights.append(EnvironmentalInsight(factor="pressure", message=ENVIRONMENT_TEXT["pressure"][lang], urgency=Urgency.WARNING))
        if m.HUMIDITY in env and env[m.HUMIDITY] < 30:
            insights.append(EnvironmentalInsight(factor="humidity", message=ENVIRONMENT_TEXT["humidity.very_dry"][lang], urgency=Urgency.WARNING))
        elif m.HUMIDITY in env and env[m.HUMIDITY] < 40:
            insights.append(EnvironmentalInsight(factor="humidity", message=ENVIRONMENT_TEXT["humidity.dry"][lang]))
        if env.get(m.FEELS_LIKE, 0.0) > 30:
            insights.append(EnvironmentalInsight(factor="temperature", message=ENVIRONMENT_TEXT["temperature"][lang], urgency=Urgency.WARNING))
        if env.get(m.UV_INDEX, 0.0) >= 6:
            insights.append(EnvironmentalInsight(factor="uv", message=ENVIRONMENT_TEXT["uv"][lang], urgency=Urgency.WARNING))
        return insights


def _headline(energy: int, lang: Language) -> str:
    strong, balanced, dipping, rest = HEADLINES[lang]
    if energy > 70:
        return strong
    if energy > 40:
        return balanced
    if energy > 20:
        return dipping
    return rest
