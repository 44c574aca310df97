from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import yaml


class DifficultyTier(Enum):
    INITIATE = "Initiate"
    ADEPT = "Adept"
    MASTER = "Master"

    @property
    def level_count(self) -> int:
        return _TIER_LEVEL_COUNT[self]

    @property
    def speed_multiplier(self) -> float:
        return _TIER_SPEED[self]

    @property
    def complexity_multiplier(self) -> int:
        return _TIER_COMPLEXITY[self]


_TIER_LEVEL_COUNT = {
    DifficultyTier.INITIATE: 5,
    DifficultyTier.ADEPT: 7,
    DifficultyTier.MASTER: 10,
}
_TIER_SPEED = {
    DifficultyTier.INITIATE: 1.0,
    DifficultyTier.ADEPT: 1.5,
    DifficultyTier.MASTER: 2.0,
}
_TIER_COMPLEXITY = {
    DifficultyTier.INITIATE: 1,
    DifficultyTier.ADEPT: 2,
    DifficultyTier.MASTER: 3,
}


class GameVariant(Enum):
    TIMING = "pulse_sync"
    PATTERN_MEMORY = "path_weaver"
    GRID_ROUTING = "signal_flow"


@dataclass(frozen=True)
class LevelConfig:
    """Tuning for one (tier, level) pair.

    Every difficulty-dependent number the generators and engines use is
    derived here, so a level plays the same wherever it is configured.
    """

    tier: DifficultyTier
    level: int

    def __post_init__(self) -> None:
        if not 1 <= self.level <= self.tier.level_count:
            raise ValueError(
                f"level {self.level} out of range for {self.tier.value} "
                f"(1..{self.tier.level_count})"
            )

    @property
    def complexity(self) -> int:
        return self.tier.complexity_multiplier

    # -- Timing ----------------------------------------------------------

    @property
    def pulse_duration(self) -> float:
        """Seconds for the pulse to sweep from 0 to 1."""
        base_speed = 2.5 - self.level * 0.05
        return max(1.2, base_speed / self.tier.speed_multiplier)

    @property
    def zone_width(self) -> float:
        reduction = (self.level - 1) * 0.01 + (self.complexity - 1) * 0.02
        return max(0.18, 0.35 - reduction)

    @property
    def timing_rounds(self) -> int:
        extra_master = 1 if self.tier is DifficultyTier.MASTER else 0
        return 4 + (1 if self.level > 3 else 0) + extra_master

    @property
    def timing_success_threshold(self) -> int:
        return 2 + (self.complexity - 1)

    # -- Pattern memory --------------------------------------------------

    @property
    def pattern_length(self) -> int:
        base_length = 3 + (self.level - 1) // 3
        return min(6, base_length + (self.complexity - 1))

    @property
    def reveal_delay(self) -> float:
        return max(0.5, 0.9 - (self.complexity - 1) * 0.1)

    @property
    def pattern_grid_size(self) -> int:
        if self.level > 4 and self.tier is not DifficultyTier.INITIATE:
            return 4
        return 3

    @property
    def pattern_rounds(self) -> int:
        return 3 + self.level // 3

    # -- Grid routing ----------------------------------------------------

    @property
    def block_probability(self) -> float:
        probability = 0.1 + (self.complexity - 1) * 0.05 + (self.level - 1) * 0.01
        return min(0.25, probability)

    @property
    def move_budget(self) -> int:
        return max(6, 10 + self.level - self.complexity)

    @property
    def routing_rounds(self) -> int:
        return 3 + self.level // 3

    # -- Rewards ---------------------------------------------------------

    def reward(self, variant: GameVariant) -> int:
        """Reward granted for a successful session of ``variant``."""
        if variant is GameVariant.TIMING:
            return 10 + self.level * 2 + self.complexity * 5
        if variant is GameVariant.PATTERN_MEMORY:
            return 15 + self.level * 3 + self.complexity * 5
        return 12 + self.level * 3 + self.complexity * 6


@dataclass(frozen=True)
class GameInfo:
    variant: GameVariant
    title: str
    description: str
    reward_name: str


class GameCatalog:
    """Display metadata for each game variant, loaded from ``data/games/*.yaml``."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path(__file__).resolve().parent.parent / "data" / "games"
        self._games = self._load_games()

    def all(self) -> List[GameInfo]:
        return [self._games[variant] for variant in GameVariant]

    def get(self, variant: GameVariant) -> GameInfo:
        return self._games[variant]

    def _load_games(self) -> Dict[GameVariant, GameInfo]:
        if not self._base_dir.exists():
            raise FileNotFoundError(f"Games directory not found: {self._base_dir}")

        games: Dict[GameVariant, GameInfo] = {}
        for variant in GameVariant:
            game_path = self._base_dir / f"{variant.value}.yaml"
            if not game_path.exists():
                raise FileNotFoundError(f"Missing game file: {game_path.name}")
            raw = yaml.safe_load(game_path.read_text(encoding="utf-8"))
            if not raw or not isinstance(raw, dict):
                raise ValueError(f"{game_path.name}: expected YAML with 'title' and 'reward_name'")
            title = raw.get("title")
            reward_name = raw.get("reward_name")
            if not title or not isinstance(title, str):
                raise ValueError(f"{game_path.name}: missing or invalid 'title'")
            if not reward_name or not isinstance(reward_name, str):
                raise ValueError(f"{game_path.name}: missing or invalid 'reward_name'")
            description = str(raw.get("description") or "").strip()
            games[variant] = GameInfo(
                variant=variant,
                title=title.strip(),
                description=description,
                reward_name=reward_name.strip(),
            )
        return games
