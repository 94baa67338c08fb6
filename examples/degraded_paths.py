#!/usr/bin/env python3
# examples/degraded_paths.py
"""
Degraded paths: what callers get when things go wrong

A generator that times out, one that returns prose instead of JSON, and a
user who has used up the day's budget. None of these raise; each result
says how it was produced through ``source`` and ``confidence``.
"""

import asyncio
import logging

from tempo_ai_orchestrator import (
    AnalysisRequest,
    CallbackGenerator,
    FocusTag,
    Orchestrator,
    TimeOfDay,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


async def slow_llm(prompt: str) -> str:
    await asyncio.sleep(5)
    return "{}"


async def chatty_llm(prompt: str) -> str:
    return "Sure! Here are some thoughts about your day..."


def make_request(energy: int) -> AnalysisRequest:
    return AnalysisRequest(
        energy_level=energy,
        active_tags={FocusTag.CHILL, FocusTag.DIET},
        time_of_day=TimeOfDay.AFTERNOON,
        biological_context={"hrv": 42.0, "sleep_hours": 6.1},
        environmental_context={"humidity": 28.0, "pressure_trend": -4.2},
        language="en",
    )


async def main():
    print("🛟 Degraded paths")

    slow = Orchestrator(CallbackGenerator(slow_llm))
    result = await slow.analyze("user-a", make_request(55), timeout_ms=200)
    print(f"⏱️  Timeout       -> {result.source.value} (confidence {result.confidence:.2f})")

    chatty = Orchestrator(CallbackGenerator(chatty_llm))
    result = await chatty.analyze("user-b", make_request(55))
    print(f"🧩 Not JSON      -> {result.source.value} (confidence {result.confidence:.2f})")

    for _ in range(chatty.governor.config.max_requests_per_day):
        chatty.governor.record_generation("user-c", 0.0)
    result = await chatty.analyze("user-c", make_request(60))
    print(f"💸 Over budget   -> {result.source.value} (confidence {result.confidence:.2f})")
    for insight in result.environmental_insights:
        print(f"   🌦️  {insight.factor}: {insight.message}")


if __name__ == "__main__":
    asyncio.run(main())
