"""Shared fixtures: a virtual-clock scheduler and a generator with fixed content."""

from __future__ import annotations

import random
from pathlib import Path
from typing import Optional

import pytest

from triplay.core.challenges import ChallengeGenerator, GridChallenge, PatternChallenge, TimingChallenge
from triplay.core.levels import LevelConfig
from triplay.core.progress import ProgressStore
from triplay.core.scheduler import ManualScheduler


class FixedGenerator(ChallengeGenerator):
    """Returns the given challenges every round; anything not given is random."""

    def __init__(
        self,
        timing: Optional[TimingChallenge] = None,
        pattern: Optional[PatternChallenge] = None,
        grid: Optional[GridChallenge] = None,
    ) -> None:
        super().__init__(random.Random(0))
        self._timing = timing
        self._pattern = pattern
        self._grid = grid

    def timing(self, config: LevelConfig) -> TimingChallenge:
        return self._timing or super().timing(config)

    def pattern(self, config: LevelConfig) -> PatternChallenge:
        return self._pattern or super().pattern(config)

    def grid(self, config: LevelConfig) -> GridChallenge:
        return self._grid or super().grid(config)


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def store(tmp_path: Path) -> ProgressStore:
    return ProgressStore(tmp_path / "progress.json")


@pytest.fixture()
def timing_challenge() -> TimingChallenge:
    return TimingChallenge(zone_start=0.4, zone_width=0.3, duration=2.0)


@pytest.fixture()
def pattern_challenge() -> PatternChallenge:
    return PatternChallenge(grid_size=3, sequence=(2, 5, 1, 7, 0))


@pytest.fixture()
def open_grid() -> GridChallenge:
    return GridChallenge.build(start=0, target=15, move_budget=10)


@pytest.fixture()
def fixed_generator(timing_challenge, pattern_challenge, open_grid) -> FixedGenerator:
    return FixedGenerator(timing=timing_challenge, pattern=pattern_challenge, grid=open_grid)


@pytest.fixture()
def make_generator():
    return FixedGenerator
