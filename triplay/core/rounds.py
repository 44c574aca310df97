from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Union

from triplay.core.challenges import ChallengeGenerator, Direction
from triplay.core.levels import GameVariant, LevelConfig
from triplay.core.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)


class RoundState(Enum):
    READY = "ready"
    ACTIVE = "active"
    ROUND_SUCCESS = "round_success"
    ROUND_FAILURE = "round_failure"
    FINISHED = "finished"


@dataclass(frozen=True)
class Hit:
    """Timing: the player tapped while the pulse was moving."""


@dataclass(frozen=True)
class Tap:
    """Pattern memory: the player tapped a grid cell."""

    cell: int


@dataclass(frozen=True)
class Move:
    """Grid routing: the player moved the signal one step."""

    direction: Direction


InputEvent = Union[Hit, Tap, Move]


@dataclass(frozen=True)
class RoundResult:
    round_number: int
    success: bool
    points: int
    outcome: str


class RoundEngine(ABC):
    """Round state machine shared by every game variant.

    Ready -> Active -> RoundSuccess | RoundFailure -> Active (next round)
    or Finished. The engine waits in Ready until ``start()``; once Finished
    it fires exactly one of ``on_complete(score, reward)`` or ``on_exit()``.
    All timed transitions go through the scheduler and are cancelled by
    ``exit()``, so no stale callback can touch a session after it ends.
    """

    variant: GameVariant
    settle_delay: float = 1.0
    finish_delay: float = 0.3
    abort_on_failure: bool = True

    def __init__(
        self,
        config: LevelConfig,
        scheduler: Scheduler,
        generator: Optional[ChallengeGenerator] = None,
        on_complete: Optional[Callable[[int, int], None]] = None,
        on_exit: Optional[Callable[[], None]] = None,
        on_state_change: Optional[Callable[[RoundState], None]] = None,
    ) -> None:
        self.config = config
        self.on_complete = on_complete
        self.on_exit = on_exit
        self.on_state_change = on_state_change
        self._scheduler = scheduler
        self._generator = generator or ChallengeGenerator()
        self._state = RoundState.READY
        self._round_number = 1
        self._score = 0
        self._results: List[RoundResult] = []
        self._tasks: List[ScheduledTask] = []
        self._session_success: Optional[bool] = None
        self._reward = 0
        self._emitted = False
        self._challenge = self._generate()

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> RoundState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is RoundState.ACTIVE

    @property
    def round_number(self) -> int:
        return self._round_number

    @property
    @abstractmethod
    def total_rounds(self) -> int:
        ...

    @property
    def score(self) -> int:
        return self._score

    @property
    def results(self) -> List[RoundResult]:
        return list(self._results)

    @property
    def challenge(self) -> Any:
        return self._challenge

    @property
    def session_success(self) -> Optional[bool]:
        """None until the session is Finished."""
        return self._session_success

    @property
    def reward(self) -> int:
        return self._reward

    def start(self) -> None:
        if self._state is not RoundState.READY:
            logger.debug("%s: start ignored in state %s", self.variant.value, self._state.value)
            return
        logger.info(
            "%s: starting %s level %d (%d rounds)",
            self.variant.value,
            self.config.tier.value,
            self.config.level,
            self.total_rounds,
        )
        self._activate_round(first_round=True)

    def submit_input(self, event: InputEvent) -> None:
        if self._state is not RoundState.ACTIVE:
            logger.debug("%s: input %r ignored in state %s", self.variant.value, event, self._state.value)
            return
        self._handle_input(event)

    def exit(self) -> None:
        """Abandon the session. Pending timers are cancelled before anything else."""
        self._cancel_pending()
        if self._state is RoundState.FINISHED and self._session_success is not None:
            self._emit_outcome()
            return
        if self._state is not RoundState.FINISHED:
            self._session_success = False
            self._reward = 0
            self._set_state(RoundState.FINISHED)
            logger.info("%s: exited during round %d", self.variant.value, self._round_number)
        if not self._emitted:
            self._emitted = True
            if self.on_exit is not None:
                self.on_exit()

    # ------------------------------------------------------------------
    # Variant hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _generate(self) -> Any:
        """Build the challenge for the next round."""

    @abstractmethod
    def _on_round_started(self, first_round: bool) -> None:
        """Reset per-round state; the engine is already Active."""

    @abstractmethod
    def _handle_input(self, event: InputEvent) -> None:
        """Apply player input while Active."""

    def _session_succeeded(self) -> bool:
        return len(self._results) == self.total_rounds and all(result.success for result in self._results)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        self._tasks = [task for task in self._tasks if task.pending]
        task = self._scheduler.call_later(delay, callback)
        self._tasks.append(task)
        return task

    def _cancel_pending(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks = []

    def _set_state(self, state: RoundState) -> None:
        self._state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _activate_round(self, first_round: bool) -> None:
        self._set_state(RoundState.ACTIVE)
        self._on_round_started(first_round)

    def _end_round(self, success: bool, points: int, outcome: str) -> None:
        if self._state is not RoundState.ACTIVE:
            return
        self._cancel_pending()
        self._results.append(RoundResult(self._round_number, success, points, outcome))
        self._score += points
        logger.debug(
            "%s: round %d/%d %s (+%d, total %d)",
            self.variant.value,
            self._round_number,
            self.total_rounds,
            outcome,
            points,
            self._score,
        )
        self._set_state(RoundState.ROUND_SUCCESS if success else RoundState.ROUND_FAILURE)
        self._schedule(self.settle_delay, self._after_settle)

    def _after_settle(self) -> None:
        failed = not self._results[-1].success
        if (failed and self.abort_on_failure) or self._round_number >= self.total_rounds:
            self._finish()
            return
        self._round_number += 1
        self._challenge = self._generate()
        self._activate_round(first_round=False)

    def _finish(self) -> None:
        self._session_success = self._session_succeeded()
        self._reward = self.config.reward(self.variant) if self._session_success else 0
        self._set_state(RoundState.FINISHED)
        logger.info(
            "%s: session %s with score %d, reward %d",
            self.variant.value,
            "cleared" if self._session_success else "failed",
            self._score,
            self._reward,
        )
        self._schedule(self.finish_delay, self._emit_outcome)

    def _emit_outcome(self) -> None:
        if self._emitted:
            return
        self._emitted = True
        if self._session_success:
            if self.on_complete is not None:
                self.on_complete(self._score, self._reward)
        elif self.on_exit is not None:
            self.on_exit()
