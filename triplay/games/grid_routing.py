"""Route Master: steer a signal through the grid to its target."""

from __future__ import annotations

import logging

from triplay.core.challenges import GridChallenge
from triplay.core.levels import GameVariant
from triplay.core.rounds import InputEvent, Move, RoundEngine

logger = logging.getLogger(__name__)


class GridRoutingEngine(RoundEngine):
    variant = GameVariant.GRID_ROUTING
    settle_delay = 1.0
    finish_delay = 0.3

    def __init__(self, *args, **kwargs) -> None:
        self.position = -1
        self.moves_remaining = 0
        super().__init__(*args, **kwargs)

    @property
    def total_rounds(self) -> int:
        return self.config.routing_rounds

    def _generate(self) -> GridChallenge:
        challenge = self._generator.grid(self.config)
        self.position = challenge.start
        self.moves_remaining = challenge.move_budget
        return challenge

    def _on_round_started(self, first_round: bool) -> None:
        self.position = self._challenge.start
        self.moves_remaining = self._challenge.move_budget

    def _handle_input(self, event: InputEvent) -> None:
        if not isinstance(event, Move):
            logger.debug("routing: ignoring %r", event)
            return
        if self.moves_remaining <= 0 or not self._challenge.can_move(self.position, event.direction):
            logger.debug("routing: illegal move %s from %d", event.direction.value, self.position)
            return

        self.position = self._challenge.neighbor(self.position, event.direction)
        self.moves_remaining -= 1

        if self.position == self._challenge.target:
            points = (
                self.moves_remaining * 15
                + self._round_number * 20
                + self.config.complexity * 25
            )
            self._end_round(True, points, "routed")
        elif self.moves_remaining == 0:
            self._end_round(False, 0, "out_of_moves")
