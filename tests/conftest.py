# tests/conftest.py

from collections.abc import AsyncIterator

import pytest

from Dicetray import metrics
from Dicetray.session import DiceSession


class FixedRNG:
    """Hands out scripted values in order; stands in for DiceRNG."""

    def __init__(self, values):
        self._values = list(values)
        self.calls = []

    def roll(self, kind):
        self.calls.append(kind)
        return self._values.pop(0)


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset_counters()
    yield
    metrics.reset_counters()


@pytest.fixture
def fixed_rng():
    return FixedRNG


@pytest.fixture
async def session() -> AsyncIterator[DiceSession]:
    # Zero delay keeps tests fast; the two-phase roll still goes through the loop.
    s = DiceSession(delay=0, seed=1234)
    try:
        yield s
    finally:
        await s.aclose()
