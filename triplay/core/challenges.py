from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

from triplay.core.levels import LevelConfig

logger = logging.getLogger(__name__)

ROUTING_GRID_SIZE = 4


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class TimingChallenge:
    zone_start: float
    zone_width: float
    duration: float

    @property
    def zone_end(self) -> float:
        return self.zone_start + self.zone_width

    @property
    def zone_center(self) -> float:
        return self.zone_start + self.zone_width / 2

    def contains(self, position: float) -> bool:
        return self.zone_start <= position < self.zone_end


@dataclass(frozen=True)
class PatternChallenge:
    grid_size: int
    sequence: Tuple[int, ...]

    @property
    def cell_count(self) -> int:
        return self.grid_size * self.grid_size


@dataclass(frozen=True)
class GridChallenge:
    """A square grid of nodes numbered row-major from the top-left."""

    size: int
    blocked: FrozenSet[int]
    edges: FrozenSet[Tuple[int, int]]
    start: int
    target: int
    move_budget: int

    @classmethod
    def build(
        cls,
        start: int,
        target: int,
        move_budget: int,
        blocked: Iterable[int] = (),
        size: int = ROUTING_GRID_SIZE,
    ) -> "GridChallenge":
        """Create a grid, linking every orthogonal pair of unblocked nodes."""
        blocked = frozenset(blocked)
        edges = set()
        for node in range(size * size):
            if node in blocked:
                continue
            row, col = divmod(node, size)
            if col < size - 1 and node + 1 not in blocked:
                edges.add((node, node + 1))
            if row < size - 1 and node + size not in blocked:
                edges.add((node, node + size))
        return cls(
            size=size,
            blocked=blocked,
            edges=frozenset(edges),
            start=start,
            target=target,
            move_budget=move_budget,
        )

    @property
    def node_count(self) -> int:
        return self.size * self.size

    def is_blocked(self, node: int) -> bool:
        return node in self.blocked

    def has_edge(self, a: int, b: int) -> bool:
        return (min(a, b), max(a, b)) in self.edges

    def neighbor(self, node: int, direction: Direction) -> Optional[int]:
        """The orthogonal neighbour inside the grid, blocked or not."""
        row, col = divmod(node, self.size)
        if direction is Direction.UP:
            return node - self.size if row > 0 else None
        if direction is Direction.DOWN:
            return node + self.size if row < self.size - 1 else None
        if direction is Direction.LEFT:
            return node - 1 if col > 0 else None
        return node + 1 if col < self.size - 1 else None

    def can_move(self, node: int, direction: Direction) -> bool:
        other = self.neighbor(node, direction)
        if other is None or self.is_blocked(other):
            return False
        return self.has_edge(node, other)

    def shortest_path_length(self) -> Optional[int]:
        """Breadth-first distance from start to target, or None when unreachable."""
        if self.is_blocked(self.start) or self.is_blocked(self.target):
            return None
        distances = {self.start: 0}
        queue = deque([self.start])
        while queue:
            node = queue.popleft()
            if node == self.target:
                return distances[node]
            for direction in Direction:
                other = self.neighbor(node, direction)
                if other is None or other in distances or not self.can_move(node, direction):
                    continue
                distances[other] = distances[node] + 1
                queue.append(other)
        return None


class ChallengeGenerator:
    """Procedural round content for each game variant.

    All randomness comes from the injected ``random.Random``, so a seeded
    generator reproduces the same sequence of challenges.
    """

    MAX_ROUTING_ATTEMPTS = 25

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def timing(self, config: LevelConfig) -> TimingChallenge:
        width = config.zone_width
        max_start = 1.0 - width - 0.02
        zone_start = self._rng.uniform(0.02, max_start)
        return TimingChallenge(zone_start=zone_start, zone_width=width, duration=config.pulse_duration)

    def pattern(self, config: LevelConfig) -> PatternChallenge:
        grid_size = config.pattern_grid_size
        cells = range(grid_size * grid_size)
        sequence: list[int] = []
        for _ in range(config.pattern_length):
            previous = sequence[-1] if sequence else None
            sequence.append(self._rng.choice([cell for cell in cells if cell != previous]))
        return PatternChallenge(grid_size=grid_size, sequence=tuple(sequence))

    def grid(self, config: LevelConfig) -> GridChallenge:
        """Generate a routing grid whose target is reachable within the move budget."""
        for attempt in range(1, self.MAX_ROUTING_ATTEMPTS + 1):
            challenge = self._random_grid(config)
            distance = challenge.shortest_path_length()
            if distance is not None and distance <= challenge.move_budget:
                return challenge
            logger.debug("Discarding unsolvable routing grid (attempt %d)", attempt)
        logger.info("No solvable routing grid after %d attempts; using an open grid", self.MAX_ROUTING_ATTEMPTS)
        return self._place_endpoints(config, frozenset())

    def _random_grid(self, config: LevelConfig) -> GridChallenge:
        size = ROUTING_GRID_SIZE
        corners = {0, size - 1, size * (size - 1), size * size - 1}
        probability = config.block_probability
        blocked = frozenset(
            node for node in range(size * size) if node not in corners and self._rng.random() < probability
        )
        return self._place_endpoints(config, blocked)

    def _place_endpoints(self, config: LevelConfig, blocked: FrozenSet[int]) -> GridChallenge:
        size = ROUTING_GRID_SIZE
        last_node = size * size - 1
        open_nodes = [node for node in range(size * size) if node not in blocked]

        start_candidates = [node for node in open_nodes if node < size]
        start = self._rng.choice(start_candidates) if start_candidates else 0

        target_candidates = [node for node in open_nodes if node >= size * (size - 1)]
        target = self._rng.choice(target_candidates) if target_candidates else last_node

        if target == start:
            others = [node for node in open_nodes if node != start]
            target = others[-1] if others else last_node

        return GridChallenge.build(
            start=start,
            target=target,
            move_budget=config.move_budget,
            blocked=blocked,
            size=size,
        )
