"""
Shared test fixtures and helpers for the orchid-predict test suite.

Provides MockPredictor, an in-memory stand-in for the remote
prediction backend that records every payload it receives and can be
told to answer slowly or to fail.
"""

import asyncio
from datetime import date
from typing import Any

import pytest

# Pinned clock for the pollination-date rules
TODAY = date(2024, 6, 1)

INITIAL_RESULT = {"dias_estimados": 120, "confianza": 70, "tipo_prediccion": "inicial"}
REFINE_RESULT = {"dias_estimados": 110, "confianza": 85, "tipo_prediccion": "refinada"}


def pinned_today() -> date:
    return TODAY


class MockPredictor:
    """Records calls and returns pre-configured results.

    Usage:
        predictor = MockPredictor(delay=0.05)
        orchestrator = PredictionOrchestrator(predictor, ...)
        ...
        assert predictor.initial_calls == [{"especie": "cattleya", ...}]
    """

    def __init__(
        self,
        initial_result: Any = None,
        refine_result: Any = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.initial_result = INITIAL_RESULT if initial_result is None else initial_result
        self.refine_result = REFINE_RESULT if refine_result is None else refine_result
        self.delay = delay
        self.error = error
        self.initial_calls: list[dict] = []
        self.refine_calls: list[dict] = []

    @property
    def call_count(self) -> int:
        return len(self.initial_calls) + len(self.refine_calls)

    async def predict_initial(self, payload: dict) -> Any:
        self.initial_calls.append(payload)
        return await self._respond(self.initial_result)

    async def predict_refine(self, payload: dict) -> Any:
        self.refine_calls.append(payload)
        return await self._respond(self.refine_result)

    async def _respond(self, result: Any) -> Any:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return result


@pytest.fixture
def predictor() -> MockPredictor:
    return MockPredictor()
