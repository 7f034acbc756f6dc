from __future__ import annotations

import random

import pytest

from blockfall.game import GameConfig, GameController, ManualTime


class Harness:
    """Controller wired to synthetic time."""

    def __init__(self, seed: int = 7) -> None:
        self.time = ManualTime()
        self.game = GameController(GameConfig(random_seed=seed), rng=random.Random(seed), time_source=self.time)

    def frame(self, seconds: float = 0.0):
        self.time.advance(seconds)
        return self.game.tick()

    def cycle(self):
        """Advance exactly one gravity period and tick once."""
        return self.frame(self.game.clock.period)


@pytest.fixture
def harness() -> Harness:
    return Harness()


@pytest.fixture
def started(harness: Harness) -> Harness:
    harness.game.start()
    return harness
