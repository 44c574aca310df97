"""Catch the Beat: stop a moving pulse inside the target zone."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from triplay.core.challenges import TimingChallenge
from triplay.core.levels import GameVariant
from triplay.core.rounds import Hit, InputEvent, RoundEngine

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0 / 60.0
PERFECT_FRACTION = 0.3


class HitGrade(Enum):
    PERFECT = "perfect"
    GOOD = "good"
    MISS = "miss"

    @property
    def points(self) -> int:
        return {"perfect": 100, "good": 50, "miss": 0}[self.value]


def classify_hit(position: float, challenge: TimingChallenge) -> HitGrade:
    """Grade a hit at pulse ``position`` against the challenge's zone."""
    if not challenge.contains(position):
        return HitGrade.MISS
    if abs(position - challenge.zone_center) < PERFECT_FRACTION * challenge.zone_width:
        return HitGrade.PERFECT
    return HitGrade.GOOD


class TimingEngine(RoundEngine):
    variant = GameVariant.TIMING
    settle_delay = 0.7
    finish_delay = 0.5
    next_round_delay = 0.3
    abort_on_failure = False

    def __init__(self, *args, **kwargs) -> None:
        self._pulse_started_at: Optional[float] = None
        self._last_position = 0.0
        super().__init__(*args, **kwargs)

    @property
    def total_rounds(self) -> int:
        return self.config.timing_rounds

    @property
    def success_threshold(self) -> int:
        return self.config.timing_success_threshold

    @property
    def pulse_started_at(self) -> Optional[float]:
        """Scheduler time the current pulse began moving, or None between pulses."""
        return self._pulse_started_at

    @property
    def position(self) -> float:
        """Pulse progress in [0, 1] at the current scheduler time."""
        if self._pulse_started_at is None:
            return self._last_position
        elapsed = self._scheduler.now() - self._pulse_started_at
        return min(1.0, max(0.0, elapsed / self._challenge.duration))

    def _generate(self) -> TimingChallenge:
        return self._generator.timing(self.config)

    def _on_round_started(self, first_round: bool) -> None:
        self._pulse_started_at = None
        self._last_position = 0.0
        if first_round:
            self._start_pulse()
        else:
            self._schedule(self.next_round_delay, self._start_pulse)

    def _start_pulse(self) -> None:
        self._pulse_started_at = self._scheduler.now()
        self._schedule(TICK_INTERVAL, self._tick)

    def _tick(self) -> None:
        position = self.position
        if position >= 1.0:
            self._register(HitGrade.MISS, position)
            return
        self._schedule(TICK_INTERVAL, self._tick)

    def _handle_input(self, event: InputEvent) -> None:
        if not isinstance(event, Hit):
            logger.debug("timing: ignoring %r", event)
            return
        if self._pulse_started_at is None:
            logger.debug("timing: hit before the pulse started")
            return
        position = self.position
        self._register(classify_hit(position, self._challenge), position)

    def _register(self, grade: HitGrade, position: float) -> None:
        self._last_position = position
        self._pulse_started_at = None
        self._end_round(grade is not HitGrade.MISS, grade.points, grade.value)

    def _session_succeeded(self) -> bool:
        hits = sum(1 for result in self._results if result.success)
        return hits >= self.success_threshold
