from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from triplay.core.challenges import ChallengeGenerator
from triplay.core.levels import DifficultyTier, GameVariant, LevelConfig
from triplay.core.progress import ProgressStore
from triplay.core.rounds import InputEvent, RoundEngine
from triplay.core.scheduler import Scheduler
from triplay.games.factory import create_engine

logger = logging.getLogger(__name__)


@dataclass
class SessionOutcome:
    """Result of one level attempt."""

    completed: bool
    score: int
    reward: int
    elapsed: float


class SessionController:
    """Plays one level of one game and records the result.

    On a cleared session the score and reward go to
    ``ProgressStore.complete_level``; every session, cleared, failed or
    abandoned, reports its elapsed time through ``add_play_time``.
    """

    def __init__(
        self,
        store: ProgressStore,
        variant: GameVariant,
        difficulty: DifficultyTier,
        level: int,
        scheduler: Scheduler,
        generator: Optional[ChallengeGenerator] = None,
        clock: Optional[Callable[[], float]] = None,
        on_finished: Optional[Callable[[SessionOutcome], None]] = None,
    ) -> None:
        """Create the engine for ``level``; nothing runs until ``start()``."""
        self._store = store
        self.variant = variant
        self.difficulty = difficulty
        self.level = level
        self.config = LevelConfig(difficulty, level)
        self.on_finished = on_finished
        self._clock = clock or scheduler.now
        self._started_at: Optional[float] = None
        self._outcome: Optional[SessionOutcome] = None
        self.engine: RoundEngine = create_engine(
            variant,
            self.config,
            scheduler,
            generator=generator,
            on_complete=self._handle_complete,
            on_exit=self._handle_exit,
        )

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        """None while the session is still running."""
        return self._outcome

    @property
    def started(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        if self._started_at is not None:
            return
        self._started_at = self._clock()
        self.engine.start()

    def submit_input(self, event: InputEvent) -> None:
        self.engine.submit_input(event)

    def exit(self) -> None:
        self.engine.exit()

    def elapsed(self) -> float:
        """Seconds since ``start()``; zero if the session never started."""
        if self._started_at is None:
            return 0.0
        return max(0.0, self._clock() - self._started_at)

    def _handle_complete(self, score: int, reward: int) -> None:
        elapsed = self.elapsed()
        self._store.complete_level(self.variant, self.difficulty, self.level, score, reward)
        self._store.add_play_time(self.variant, self.difficulty, elapsed)
        self._finish(SessionOutcome(completed=True, score=score, reward=reward, elapsed=elapsed))

    def _handle_exit(self) -> None:
        elapsed = self.elapsed()
        self._store.add_play_time(self.variant, self.difficulty, elapsed)
        self._finish(SessionOutcome(completed=False, score=self.engine.score, reward=0, elapsed=elapsed))

    def _finish(self, outcome: SessionOutcome) -> None:
        self._outcome = outcome
        logger.info(
            "%s %s level %d %s after %.1fs (score %d, reward %d)",
            self.variant.value,
            self.difficulty.value,
            self.level,
            "completed" if outcome.completed else "ended",
            outcome.elapsed,
            outcome.score,
            outcome.reward,
        )
        if self.on_finished is not None:
            self.on_finished(outcome)
