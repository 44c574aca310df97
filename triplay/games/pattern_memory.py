"""Mind Trace: watch a sequence of cells light up, then repeat it."""

from __future__ import annotations

import logging
from enum import Enum
from typing import List

from triplay.core.challenges import PatternChallenge
from triplay.core.levels import GameVariant
from triplay.core.rounds import InputEvent, RoundEngine, Tap

logger = logging.getLogger(__name__)


class PatternPhase(Enum):
    REVEAL = "reveal"
    INPUT = "input"


class PatternMemoryEngine(RoundEngine):
    variant = GameVariant.PATTERN_MEMORY
    settle_delay = 1.0
    finish_delay = 0.3
    first_reveal_delay = 0.5
    next_reveal_delay = 0.3
    input_open_delay = 0.3

    def __init__(self, *args, **kwargs) -> None:
        self.phase = PatternPhase.REVEAL
        self.revealed_index = -1
        self._entered: List[int] = []
        super().__init__(*args, **kwargs)

    @property
    def total_rounds(self) -> int:
        return self.config.pattern_rounds

    @property
    def entered(self) -> List[int]:
        return list(self._entered)

    @property
    def highlighted_cell(self) -> int:
        """Cell currently shown during the reveal, or -1."""
        if self.phase is PatternPhase.REVEAL and 0 <= self.revealed_index < len(self._challenge.sequence):
            return self._challenge.sequence[self.revealed_index]
        return -1

    def _generate(self) -> PatternChallenge:
        return self._generator.pattern(self.config)

    def _on_round_started(self, first_round: bool) -> None:
        self.phase = PatternPhase.REVEAL
        self.revealed_index = -1
        self._entered = []
        lead_in = self.first_reveal_delay if first_round else self.next_reveal_delay
        self._schedule(lead_in, self._reveal_sequence)

    def _reveal_sequence(self) -> None:
        delay = self.config.reveal_delay
        length = len(self._challenge.sequence)
        for index in range(length):
            self._schedule(delay * (index + 1), self._reveal_step(index))
        self._schedule(delay * length + delay * 0.5 + self.input_open_delay, self._open_input)

    def _reveal_step(self, index: int):
        def _show() -> None:
            self.revealed_index = index

        return _show

    def _open_input(self) -> None:
        self.revealed_index = -1
        self.phase = PatternPhase.INPUT
        logger.debug("pattern: waiting for %d taps", len(self._challenge.sequence))

    def _handle_input(self, event: InputEvent) -> None:
        if not isinstance(event, Tap) or self.phase is not PatternPhase.INPUT:
            logger.debug("pattern: ignoring %r during %s", event, self.phase.value)
            return
        if not 0 <= event.cell < self._challenge.cell_count:
            logger.debug("pattern: tap outside the grid (%d)", event.cell)
            return

        sequence = self._challenge.sequence
        expected = sequence[len(self._entered)]
        if event.cell != expected:
            self._end_round(False, 0, "mismatch")
            return

        self._entered.append(event.cell)
        if len(self._entered) == len(sequence):
            self._end_round(True, self._round_points(), "repeated")

    def _round_points(self) -> int:
        return (
            len(self._challenge.sequence) * 20
            + self._round_number * 10
            + self.config.complexity * 15
        )
