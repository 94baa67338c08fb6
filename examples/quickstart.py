#!/usr/bin/env python3
# examples/quickstart.py
"""
Quickstart: personalised advice in a few lines

Plugs a mock text generator into the orchestrator, then shows a fresh
analysis, a cache hit for the identical request and the Rest Guardian
override at very low energy.

Run with: python examples/quickstart.py
"""

import asyncio
import json

from dotenv import load_dotenv

from tempo_ai_orchestrator import (
    AnalysisRequest,
    CallbackGenerator,
    FocusTag,
    Orchestrator,
    TimeOfDay,
)

load_dotenv()


async def mock_llm(prompt: str) -> str:
    """Stands in for a real model: answers in the JSON shape the prompt asks for."""
    tags = [tag.value for tag in FocusTag if f"[{tag.value}]" in prompt]
    return json.dumps(
        {
            "synthesis": {"persona": "", "title": "Today", "message": "Pace yourself and keep hydrated."},
            "tagInsights": [{"tag": tag, "message": f"A {tag} tip tuned to your data", "urgency": "info"} for tag in tags],
            "actionSuggestions": [{"title": "Drink a glass of water", "actionType": "hydrate", "estimatedTime": "1 min"}],
        }
    )


def show(label: str, result) -> None:
    print(f"\n{label}")
    print(f"   source={result.source.value} confidence={result.confidence:.2f} mode={result.resolution_mode.value}")
    if result.synthesis:
        print(f"   🧭 {result.synthesis.persona}: {result.synthesis.message}")
    for insight in result.tag_insights:
        print(f"   • [{insight.tag.value}] {insight.message}")


async def main():
    print("🚀 Tempo AI Orchestrator Quickstart")
    print("=" * 40)

    orchestrator = Orchestrator(CallbackGenerator(mock_llm))
    request = AnalysisRequest(
        energy_level=75,
        active_tags={FocusTag.WORK, FocusTag.BEAUTY, FocusTag.ATHLETE},
        time_of_day=TimeOfDay.MORNING,
        biological_context={"hrv": 58.0, "sleep_hours": 7.4, "resting_heart_rate": 58.0},
        environmental_context={"humidity": 38.0, "pressure_trend": -1.5, "feels_like": 19.0},
        language="en",
    )

    show("1️⃣  First request (generated)", await orchestrator.analyze("demo-user", request))
    show("2️⃣  Same request again (cache)", await orchestrator.analyze("demo-user", request))

    exhausted = request.with_energy(15)
    show("3️⃣  Energy 15 (override)", await orchestrator.analyze("demo-user", exhausted))

    stats = orchestrator.get_stats()
    print(f"\n📊 {stats.requests} requests, {stats.generator_calls} generator calls, {stats.cache_hits} cache hits")
    print(f"💰 Ledger: {orchestrator.governor.ledger_for('demo-user')}")


if __name__ == "__main__":
    asyncio.run(main())
