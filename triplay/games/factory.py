from __future__ import annotations

from typing import Callable, Dict, Optional, Type

from triplay.core.challenges import ChallengeGenerator
from triplay.core.levels import GameVariant, LevelConfig
from triplay.core.rounds import RoundEngine, RoundState
from triplay.core.scheduler import Scheduler
from triplay.games.grid_routing import GridRoutingEngine
from triplay.games.pattern_memory import PatternMemoryEngine
from triplay.games.timing import TimingEngine

ENGINES: Dict[GameVariant, Type[RoundEngine]] = {
    GameVariant.TIMING: TimingEngine,
    GameVariant.PATTERN_MEMORY: PatternMemoryEngine,
    GameVariant.GRID_ROUTING: GridRoutingEngine,
}


def create_engine(
    variant: GameVariant,
    config: LevelConfig,
    scheduler: Scheduler,
    generator: Optional[ChallengeGenerator] = None,
    on_complete: Optional[Callable[[int, int], None]] = None,
    on_exit: Optional[Callable[[], None]] = None,
    on_state_change: Optional[Callable[[RoundState], None]] = None,
) -> RoundEngine:
    """Build the round engine for ``variant``."""
    engine_cls = ENGINES[variant]
    return engine_cls(
        config,
        scheduler,
        generator=generator,
        on_complete=on_complete,
        on_exit=on_exit,
        on_state_change=on_state_change,
    )
