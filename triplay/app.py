"""Application root: owns the shared services and hands out game sessions."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from triplay.core.challenges import ChallengeGenerator
from triplay.core.levels import DifficultyTier, GameCatalog, GameVariant
from triplay.core.progress import ProgressStore
from triplay.core.scheduler import QtScheduler, Scheduler
from triplay.core.session import SessionController, SessionOutcome
from triplay.ui.models import GameCard, LevelState, build_game_cards, build_level_states

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


class Application:
    """Composition root. One instance per process, passed to whoever needs it."""

    def __init__(
        self,
        progress_store: Optional[ProgressStore] = None,
        catalog: Optional[GameCatalog] = None,
        scheduler: Optional[Scheduler] = None,
        generator: Optional[ChallengeGenerator] = None,
    ) -> None:
        self.progress_store = progress_store or ProgressStore()
        self.catalog = catalog or GameCatalog()
        self.scheduler = scheduler or QtScheduler()
        self._generator = generator

    @staticmethod
    def should_present_core(gate_open: bool, onboarding_completed: bool) -> bool:
        """Whether the host should show the games rather than the external view."""
        return bool(gate_open and onboarding_completed)

    def new_session(
        self,
        variant: GameVariant,
        difficulty: DifficultyTier,
        level: int,
        on_finished: Optional[Callable[[SessionOutcome], None]] = None,
    ) -> SessionController:
        if not self.progress_store.is_level_unlocked(variant, difficulty, level):
            raise ValueError(f"{variant.value} {difficulty.value} level {level} is locked")
        logger.info("New session: %s %s level %d", variant.value, difficulty.value, level)
        return SessionController(
            self.progress_store,
            variant,
            difficulty,
            level,
            self.scheduler,
            generator=self._generator,
            on_finished=on_finished,
        )

    def game_cards(self) -> list[GameCard]:
        return build_game_cards(self.progress_store, self.catalog)

    def level_states(self, variant: GameVariant, difficulty: DifficultyTier) -> list[LevelState]:
        return build_level_states(self.progress_store, variant, difficulty)

    def reset_progress(self) -> None:
        logger.info("Resetting all progress")
        self.progress_store.reset_all()
