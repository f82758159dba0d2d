from __future__ import annotations

import pytest

from minigames.clock import ManualClock
from minigames.storage import MemoryHighScoreStore


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def scores() -> MemoryHighScoreStore:
    return MemoryHighScoreStore()


@pytest.fixture()
def make_env(clock, scores):
    """Build an engine on the manual clock with a 400x600 viewport and seed 0."""

    def _make(cls, **kwargs):
        kwargs.setdefault("width", 400)
        kwargs.setdefault("height", 600)
        env = cls(clock=clock, high_scores=scores, **kwargs)
        env.reset(seed=0)
        return env

    return _make
