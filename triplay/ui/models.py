"""Data models used by the UI."""

from __future__ import annotations

from dataclasses import dataclass

from triplay.core.levels import DifficultyTier, GameCatalog, GameVariant
from triplay.core.progress import ProgressStore


@dataclass
class LevelState:
    """UI state for a single level: progress, unlock status, and selection."""

    level: int
    unlocked: bool
    completed: bool
    best_score: int = 0
    is_current: bool = False


@dataclass
class GameCard:
    """Home screen summary for one game."""

    variant: GameVariant
    title: str
    reward_name: str
    progress: float
    total_rewards: int


def build_level_states(store: ProgressStore, variant: GameVariant, difficulty: DifficultyTier) -> list[LevelState]:
    """Compute unlock/completion state for every level and mark the current target."""
    states: list[LevelState] = []
    for level in range(1, difficulty.level_count + 1):
        record = store.get_level_progress(variant, difficulty, level)
        states.append(
            LevelState(
                level=level,
                unlocked=store.is_level_unlocked(variant, difficulty, level),
                completed=record.completed,
                best_score=record.best_score,
            )
        )
    for state in states:
        if state.unlocked and not state.completed:
            state.is_current = True
            break
    return states


def build_game_cards(store: ProgressStore, catalog: GameCatalog) -> list[GameCard]:
    return [
        GameCard(
            variant=info.variant,
            title=info.title,
            reward_name=info.reward_name,
            progress=store.get_overall_progress(info.variant),
            total_rewards=store.get_total_rewards(info.variant),
        )
        for info in catalog.all()
    ]
