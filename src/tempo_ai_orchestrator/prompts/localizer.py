# tempo_ai_orchestrator/prompts/localizer.py
"""
Localised prompt fragments.

The prompt builder receives a ``Localizer`` explicitly; tests substitute a
small deterministic catalog instead of patching a process-wide singleton.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from ..models.enums import Language

logger = logging.getLogger(__name__)


@runtime_checkable
class Localizer(Protocol):
    """Looks up prompt text by key and language."""

    def text(self, key: str, language: Language, **params: object) -> str:
        ...


# =============================================================================
# Default catalog
# =============================================================================

OUTPUT_FORMAT_EN = """Respond with a single JSON object and nothing else:
{
  "synthesis": {"persona": "...", "title": "headline (max 30 chars)", "message": "unified advice (max 200 chars)"},
  "tagInsights": [{"tag": "work|beauty|diet|chill|athlete", "icon": "sf symbol", "message": "max 120 chars", "urgency": "info|warning|critical"}],
  "environmentalInsights": [{"factor": "pressure|humidity|temperature|uv", "message": "...", "urgency": "info|warning|critical"}],
  "actionSuggestions": [{"title": "...", "description": "...", "actionType": "rest|hydrate|exercise|focus|social|beauty", "estimatedTime": "5-15 min", "difficulty": "easy|medium|hard"}]
}"""

OUTPUT_FORMAT_JA = """次のJSONオブジェクトだけを返してください:
{
  "synthesis": {"persona": "...", "title": "見出し(30文字以内)", "message": "統合アドバイス(200文字以内)"},
  "tagInsights": [{"tag": "work|beauty|diet|chill|athlete", "icon": "SFシンボル名", "message": "120文字以内", "urgency": "info|warning|critical"}],
  "environmentalInsights": [{"factor": "pressure|humidity|temperature|uv", "message": "...", "urgency": "info|warning|critical"}],
  "actionSuggestions": [{"title": "...", "description": "...", "actionType": "rest|hydrate|exercise|focus|social|beauty", "estimatedTime": "5-15分", "difficulty": "easy|medium|hard"}]
}"""

DEFAULT_CATALOG: dict[Language, dict[str, str]] = {
    Language.EN: {
        "persona.intro": "You are {persona}, an experienced health advisor.",
        "persona.principles": (
            "Principles:\n"
            "1. Analyse the data objectively and never criticise\n"
            "2. Explain links between environment and condition in plain terms\n"
            "3. Prefer concrete actions that take 2-15 minutes"
        ),
        "persona.principles.short": "Be objective, kind and concrete.",
        "mode.override": "Energy is critically low. Give rest and recovery advice only. Leave tagInsights empty.",
        "mode.gentle": "Energy is low. Keep every suggestion light and recovery-oriented.",
        "mode.balanced": "Address each focus area with its own insight.",
        "mode.holistic": "Merge all focus areas into one coherent plan; weight areas as listed.",
        "section.focus": "## Focus areas",
        "section.context": "## Current state",
        "section.output": "## Output",
        "focus.weight": "(weight {weight})",
        "focus.tone": "Tone: {tone}",
        "focus.insufficient": "Insufficient data: {metrics}",
        "context.energy": "Energy level: {level}/100",
        "context.time": "Time of day: {phrase}",
        "context.lifestyle": "Lifestyle mode: {mode}",
        "context.biological": "Body:",
        "context.environmental": "Environment:",
        "time.morning": "it is currently morning",
        "time.afternoon": "it is currently afternoon",
        "time.evening": "it is currently evening",
        "time.night": "it is currently night",
        "lifestyle.standard": "standard",
        "lifestyle.athlete": "athlete",
        "output.format": OUTPUT_FORMAT_EN,
        "metric.hrv": "HRV",
        "metric.resting_heart_rate": "Resting heart rate",
        "metric.sleep_hours": "Sleep",
        "metric.sleep_efficiency": "Sleep efficiency",
        "metric.sleep_deep": "Deep sleep",
        "metric.sleep_rem": "REM sleep",
        "metric.respiratory_rate": "Respiratory rate",
        "metric.steps": "Steps",
        "metric.active_calories": "Active calories",
        "metric.pressure_trend": "Pressure change",
        "metric.humidity": "Humidity",
        "metric.feels_like": "Feels like",
        "metric.temperature": "Temperature",
        "metric.uv_index": "UV index",
    },
    Language.JA: {
        "persona.intro": "あなたは{persona}として振る舞う経験豊富なヘルスアドバイザーです。",
        "persona.principles": (
            "基本原則:\n"
            "1. データを客観的に分析し、批判しない\n"
            "2. 環境要因と体調の関係をわかりやすく説明する\n"
            "3. 2-15分で実行できる具体的な行動を優先する"
        ),
        "persona.principles.short": "客観的かつ具体的に、やさしく伝える。",
        "mode.override": "エネルギーが危険なほど低い状態です。休息と回復のアドバイスのみを返し、tagInsightsは空にしてください。",
        "mode.gentle": "エネルギーが低めです。すべての提案を軽く、回復重視にしてください。",
        "mode.balanced": "各分野にそれぞれのインサイトを返してください。",
        "mode.holistic": "すべての分野を一つの計画に統合し、記載順に重み付けしてください。",
        "section.focus": "## 今日の重点分野",
        "section.context": "## 現在の状況",
        "section.output": "## 出力形式",
        "focus.weight": "(重み {weight})",
        "focus.tone": "トーン: {tone}",
        "focus.insufficient": "データ不足: {metrics}",
        "context.energy": "エネルギーレベル: {level}/100",
        "context.time": "時間帯: {phrase}",
        "context.lifestyle": "ライフスタイル: {mode}",
        "context.biological": "身体:",
        "context.environmental": "環境:",
        "time.morning": "現在は朝",
        "time.afternoon": "現在は午後",
        "time.evening": "現在は夕方",
        "time.night": "現在は夜",
        "lifestyle.standard": "スタンダード",
        "lifestyle.athlete": "アスリート",
        "output.format": OUTPUT_FORMAT_JA,
        "metric.hrv": "HRV",
        "metric.resting_heart_rate": "安静時心拍数",
        "metric.sleep_hours": "睡眠時間",
        "metric.sleep_efficiency": "睡眠効率",
        "metric.sleep_deep": "深い睡眠",
        "metric.sleep_rem": "REM睡眠",
        "metric.respiratory_rate": "呼吸数",
        "metric.steps": "歩数",
        "metric.active_calories": "消費カロリー",
        "metric.pressure_trend": "気圧変化",
        "metric.humidity": "湿度",
        "metric.feels_like": "体感温度",
        "metric.temperature": "気温",
        "metric.uv_index": "UV指数",
    },
}


class CatalogLocalizer:
    """
    Dictionary-backed localizer.

    Missing keys fall back to English, then to the key itself, so an
    incomplete catalog degrades prompt wording instead of failing a request.
    """

    def __init__(self, catalog: dict[Language, dict[str, str]] | None = None):
        self.catalog = catalog if catalog is not None else DEFAULT_CATALOG

    def text(self, key: str, language: Language, **params: object) -> str:
        template = self.catalog.get(language, {}).get(key)
        if template is None:
            template = self.catalog.get(Language.EN, {}).get(key)
        if template is None:
            logger.debug(f"No localisation for {key!r} ({language.value})")
            return key
        return template.format(**params) if params else template
