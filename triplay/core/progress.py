from __future__ import annotations

import json
import logging
import math
import os
import threading
from dataclasses import dataclass, asdict, replace
from pathlib import Path
from typing import Any, Dict, Optional

from triplay.core.levels import DifficultyTier, GameVariant

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def level_key(game: GameVariant, difficulty: DifficultyTier, level: int) -> str:
    return f"{game.value}_{difficulty.value}_{level}"


def game_key(game: GameVariant, difficulty: DifficultyTier) -> str:
    return f"{game.value}_{difficulty.value}"


def default_progress_path() -> Path:
    """``$TRIPLAY_HOME/progress.json``, falling back to ``~/.triplay/progress.json``."""
    home = os.environ.get("TRIPLAY_HOME")
    base = Path(home) if home else Path.home() / ".triplay"
    return base / "progress.json"


def _seconds(value: Any) -> float:
    seconds = float(value)
    if not math.isfinite(seconds):
        raise ValueError(f"non-finite duration {value!r}")
    return max(0.0, seconds)


@dataclass
class LevelProgressRecord:
    game: GameVariant
    difficulty: DifficultyTier
    level: int
    completed: bool = False
    best_score: int = 0
    attempt_count: int = 0

    @property
    def key(self) -> str:
        return level_key(self.game, self.difficulty, self.level)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["game"] = self.game.value
        data["difficulty"] = self.difficulty.value
        return data

    @classmethod
    def from_dict(cls, value: Dict[str, Any]) -> "LevelProgressRecord":
        return cls(
            game=GameVariant(value["game"]),
            difficulty=DifficultyTier(value["difficulty"]),
            level=int(value["level"]),
            completed=bool(value.get("completed", False)),
            best_score=max(0, int(value.get("best_score", 0))),
            attempt_count=max(0, int(value.get("attempt_count", 0))),
        )


@dataclass
class GameProgressRecord:
    game: GameVariant
    difficulty: DifficultyTier
    current_unlocked_level: int = 1
    total_rewards: int = 0
    levels_completed_count: int = 0
    total_play_time: float = 0.0

    @property
    def key(self) -> str:
        return game_key(self.game, self.difficulty)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["game"] = self.game.value
        data["difficulty"] = self.difficulty.value
        return data

    @classmethod
    def from_dict(cls, value: Dict[str, Any]) -> "GameProgressRecord":
        return cls(
            game=GameVariant(value["game"]),
            difficulty=DifficultyTier(value["difficulty"]),
            current_unlocked_level=max(1, int(value.get("current_unlocked_level", 1))),
            total_rewards=max(0, int(value.get("total_rewards", 0))),
            levels_completed_count=max(0, int(value.get("levels_completed_count", 0))),
            total_play_time=_seconds(value.get("total_play_time", 0.0)),
        )


@dataclass
class OverallStatistics:
    games_completed_count: int = 0
    levels_cleared_count: int = 0
    total_play_time: float = 0.0
    rewards_collected_count: int = 0

    @property
    def formatted_play_time(self) -> str:
        """Play time as ``"2h 5m"``, or ``"5m"`` under an hour."""
        seconds = int(self.total_play_time)
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"

    @classmethod
    def from_dict(cls, value: Dict[str, Any]) -> "OverallStatistics":
        return cls(
            games_completed_count=max(0, int(value.get("games_completed_count", 0))),
            levels_cleared_count=max(0, int(value.get("levels_cleared_count", 0))),
            total_play_time=_seconds(value.get("total_play_time", 0.0)),
            rewards_collected_count=max(0, int(value.get("rewards_collected_count", 0))),
        )


class ProgressStore:
    """Level completion, unlock state and statistics for every game and tier.

    Persists to a single JSON document (``~/.triplay/progress.json`` by
    default) holding three independent sections: ``levels``, ``games`` and
    ``statistics``. Unreadable data is treated as no prior progress.
    Every mutation is written out before the call returns.
    """

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = file_path or default_progress_path()
        self._lock = threading.RLock()
        self._levels: Dict[str, LevelProgressRecord] = {}
        self._games: Dict[str, GameProgressRecord] = {}
        self._statistics = OverallStatistics()
        self._onboarding_completed = False
        self._load()

    @property
    def file_path(self) -> Path:
        return self._file_path

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_level_progress(
        self, game: GameVariant, difficulty: DifficultyTier, level: int
    ) -> LevelProgressRecord:
        with self._lock:
            return replace(self._level_record(game, difficulty, level))

    def get_game_progress(self, game: GameVariant, difficulty: DifficultyTier) -> GameProgressRecord:
        with self._lock:
            return replace(self._game_record(game, difficulty))

    def get_statistics(self) -> OverallStatistics:
        with self._lock:
            return replace(self._statistics)

    def is_level_unlocked(self, game: GameVariant, difficulty: DifficultyTier, level: int) -> bool:
        if not 1 <= level <= difficulty.level_count:
            return False
        if level == 1:
            return True
        with self._lock:
            return self._level_record(game, difficulty, level - 1).completed

    def get_overall_progress(self, game: GameVariant) -> float:
        """Fraction of levels completed for ``game`` across every tier."""
        total_levels = 0
        completed_levels = 0
        with self._lock:
            for difficulty in DifficultyTier:
                total_levels += difficulty.level_count
                for level in range(1, difficulty.level_count + 1):
                    if self._level_record(game, difficulty, level).completed:
                        completed_levels += 1
        return completed_levels / total_levels if total_levels else 0.0

    def get_total_rewards(self, game: GameVariant) -> int:
        with self._lock:
            return sum(self._game_record(game, difficulty).total_rewards for difficulty in DifficultyTier)

    @property
    def onboarding_completed(self) -> bool:
        return self._onboarding_completed

    @onboarding_completed.setter
    def onboarding_completed(self, value: bool) -> None:
        with self._lock:
            self._onboarding_completed = bool(value)
            self._save()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def complete_level(
        self,
        game: GameVariant,
        difficulty: DifficultyTier,
        level: int,
        score: int,
        reward_amount: int,
    ) -> None:
        """Record a successful attempt at ``level``.

        Completion flags and counters are idempotent: completing a level
        again only raises ``best_score`` (never lowers it) and adds to
        ``attempt_count`` and the reward totals.
        """
        level_count = difficulty.level_count
        if not 1 <= level <= level_count:
            logger.warning("Ignoring completion of %s level %d: out of range", game_key(game, difficulty), level)
            return
        if score < 0 or reward_amount < 0:
            logger.warning(
                "Ignoring completion of %s with negative score/reward (%d, %d)",
                level_key(game, difficulty, level),
                score,
                reward_amount,
            )
            return

        with self._lock:
            all_completed_before = self._all_levels_completed(game, difficulty)

            record = self._level_record(game, difficulty, level)
            was_already_completed = record.completed
            record.completed = True
            record.attempt_count += 1
            record.best_score = max(record.best_score, score)

            progress = self._game_record(game, difficulty)
            progress.total_rewards += reward_amount
            if not was_already_completed:
                progress.levels_completed_count += 1
            if level >= progress.current_unlocked_level and level < level_count:
                progress.current_unlocked_level = level + 1

            self._statistics.rewards_collected_count += reward_amount
            if not was_already_completed:
                self._statistics.levels_cleared_count += 1
            if not all_completed_before and self._all_levels_completed(game, difficulty):
                self._statistics.games_completed_count += 1
                logger.info("All %d levels of %s completed", level_count, game_key(game, difficulty))

            self._save()

    def add_play_time(self, game: GameVariant, difficulty: DifficultyTier, duration: float) -> None:
        if not math.isfinite(duration) or duration < 0:
            logger.warning("Ignoring invalid play time %r for %s", duration, game_key(game, difficulty))
            return
        with self._lock:
            self._game_record(game, difficulty).total_play_time += duration
            self._statistics.total_play_time += duration
            self._save()

    def reset_all(self) -> None:
        """Clear all progress and statistics. The onboarding flag is kept."""
        with self._lock:
            self._levels = {}
            self._games = {}
            self._statistics = OverallStatistics()
            self._save()

    def save(self) -> None:
        """Persist current state to disk (e.g. on app exit)."""
        with self._lock:
            self._save()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _level_record(self, game: GameVariant, difficulty: DifficultyTier, level: int) -> LevelProgressRecord:
        if not 1 <= level <= difficulty.level_count:
            return LevelProgressRecord(game=game, difficulty=difficulty, level=level)
        key = level_key(game, difficulty, level)
        record = self._levels.get(key)
        if record is None:
            record = LevelProgressRecord(game=game, difficulty=difficulty, level=level)
            self._levels[key] = record
        return record

    def _game_record(self, game: GameVariant, difficulty: DifficultyTier) -> GameProgressRecord:
        key = game_key(game, difficulty)
        record = self._games.get(key)
        if record is None:
            record = GameProgressRecord(game=game, difficulty=difficulty)
            self._games[key] = record
        return record

    def _all_levels_completed(self, game: GameVariant, difficulty: DifficultyTier) -> bool:
        return all(
            self._level_record(game, difficulty, level).completed
            for level in range(1, difficulty.level_count + 1)
        )

    def _load(self) -> None:
        if not self._file_path.exists():
            return
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Could not load progress from %s: %s", self._file_path, e)
            return
        if not isinstance(payload, dict):
            logger.warning("Ignoring progress file %s: expected a JSON object", self._file_path)
            return

        self._levels = self._decode_section(payload.get("levels"), LevelProgressRecord.from_dict)
        self._games = self._decode_section(payload.get("games"), GameProgressRecord.from_dict)

        stats = payload.get("statistics")
        if isinstance(stats, dict):
            try:
                self._statistics = OverallStatistics.from_dict(stats)
            except (TypeError, ValueError, OverflowError) as e:
                logger.warning("Discarding unreadable statistics in %s: %s", self._file_path, e)

        settings = payload.get("settings")
        if isinstance(settings, dict):
            self._onboarding_completed = bool(settings.get("onboarding_completed", False))

    def _decode_section(self, section: Any, decode) -> Dict[str, Any]:
        records: Dict[str, Any] = {}
        if not isinstance(section, dict):
            return records
        for key, value in section.items():
            if not isinstance(value, dict):
                logger.warning("Discarding progress entry %s: not an object", key)
                continue
            try:
                record = decode(value)
            except (KeyError, TypeError, ValueError, OverflowError) as e:
                logger.warning("Discarding progress entry %s: %s", key, e)
                continue
            records[record.key] = record
        return records

    def _save(self) -> None:
        payload = {
            "version": FORMAT_VERSION,
            "levels": {key: value.to_dict() for key, value in self._levels.items()},
            "games": {key: value.to_dict() for key, value in self._games.items()},
            "statistics": asdict(self._statistics),
            "settings": {"onboarding_completed": self._onboarding_completed},
        }
        tmp_path = self._file_path.with_name(self._file_path.name + ".tmp")
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._file_path)
        except OSError as e:
            logger.warning("Could not save progress to %s: %s", self._file_path, e)
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as cleanup_error:
                logger.warning("Could not remove %s: %s", tmp_path, cleanup_error)
