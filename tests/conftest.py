# tests/conftest.py
"""
Shared pytest fixtures for tempo_ai_orchestrator tests.

Provides a controllable clock, a scriptable fake text generator and
factories for requests and generator responses.
"""

import asyncio
import json
import logging
from datetime import UTC, datetime, timedelta

import pytest

from tempo_ai_orchestrator.models import AnalysisRequest, FocusTag, Language, TimeOfDay

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logging.getLogger("tempo_ai_orchestrator").setLevel(logging.DEBUG)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeGenerator:
    """
    Text generator double.

    Returns ``response`` (bytes) after an optional ``delay``; raises
    ``error`` when set. ``gate`` (an asyncio.Event) holds every call until
    it is set, so tests can pile up concurrent requests.
    """

    def __init__(self, response: bytes = b"{}", delay: float = 0.0, error: Exception | None = None):
        self.response = response
        self.delay = delay
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls: list[str] = []
        self.completed = 0

    async def generate(self, prompt, timeout: float) -> bytes:
        self.calls.append(prompt.text)
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.completed += 1
        return self.response

    @property
    def call_count(self) -> int:
        return len(self.calls)


def build_response(
    tags=(),
    synthesis: str | None = "Take it one step at a time",
    persona: str = "Personal Health Guide",
    **extra,
) -> bytes:
    """A well-formed generator response with one insight per tag."""
    data = {
        "tagInsights": [
            {"tag": FocusTag(tag).value, "icon": "star", "message": f"Advice for {FocusTag(tag).value}", "urgency": "info"}
            for tag in tags
        ],
        "environmentalInsights": [{"factor": "humidity", "message": "Air is dry", "urgency": "info"}],
        "actionSuggestions": [{"title": "Drink water", "actionType": "hydrate", "estimatedTime": "1 min"}],
    }
    if synthesis is not None:
        data["synthesis"] = {"persona": persona, "title": "Today", "message": synthesis}
    data.update(extra)
    return json.dumps(data).encode("utf-8")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_generator():
    return FakeGenerator(response=build_response(tags=list(FocusTag)))


@pytest.fixture
def make_generator():
    return FakeGenerator


@pytest.fixture
def response_bytes():
    return build_response


@pytest.fixture
def make_request():
    """Factory for AnalysisRequest with sensible defaults."""

    def _make(
        energy_level=75,
        tags=(FocusTag.WORK,),
        time_of_day=TimeOfDay.MORNING,
        bio=None,
        env=None,
        language=Language.EN,
        **kwargs,
    ) -> AnalysisRequest:
        return AnalysisRequest(
            energy_level=energy_level,
            active_tags=frozenset(tags),
            time_of_day=time_of_day,
            biological_context={"hrv": 55.0, "sleep_hours": 7.5, "resting_heart_rate": 60.0} if bio is None else bio,
            environmental_context={"humidity": 45.0, "pressure_trend": -1.0, "feels_like": 21.0} if env is None else env,
            language=language,
            **kwargs,
        )

    return _make
