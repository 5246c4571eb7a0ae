"""
Flow Puzzle - Level Generator (Server)

Алгоритм:
1. Терминалы: по паре случайных клеток на цвет, с минимальной дистанцией
2. Маршруты: A* по очереди для каждого цвета, занятые клетки обходим
3. Приёмка: все цвета соединены и покрыто >= 80% поля, иначе новая попытка

Жадная последовательная трассировка не гарантирует решения даже когда оно
существует, поэтому число попыток всегда ограничено вызывающим кодом.
"""

import heapq
import itertools
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..config import settings
from .grid import (
    NEIGHBOR_OFFSETS,
    Coord,
    Grid,
    Puzzle,
    SolvedPath,
    TerminalPair,
    manhattan,
)


logger = logging.getLogger(__name__)


# ============================================
# SEEDED RANDOM
# ============================================

class SeededRandom:
    """Детерминированный PRNG для воспроизводимости уровней."""

    def __init__(self, seed: int):
        self.seed = seed
        self._state = seed & 0x7FFFFFFF

    def next(self) -> float:
        """Возвращает число в [0, 1)."""
        self._state = (self._state * 1103515245 + 12345) & 0x7FFFFFFF
        return self._state / 0x80000000

    def next_int(self, min_val: int, max_val: int) -> int:
        """Возвращает целое число в диапазоне [min, max]."""
        if min_val > max_val:
            return min_val
        return min_val + int(self.next() * (max_val - min_val + 1))


def make_rng(seed: Optional[int] = None) -> SeededRandom:
    if seed is None:
        seed = random.randrange(1, 0x7FFFFFFF)
    return SeededRandom(seed)


# ============================================
# LEVEL PROGRESSION
# ============================================

DIFFICULTY_TIERS = ["easy", "medium", "hard", "expert", "master", "grandmaster"]


def get_level_params(level: int) -> Tuple[int, int]:
    """Размер поля и число цветов для процедурного уровня."""
    size = min(settings.BASE_GRID_SIZE + level // 10, settings.MAX_GRID_SIZE)
    num_colors = min(settings.BASE_COLORS + level // 3, settings.MAX_COLORS)
    return size, num_colors


def difficulty_for(num_colors: int) -> str:
    """3 colors and fewer are easy, every extra color is one tier up."""
    tier = max(0, num_colors - 3)
    return DIFFICULTY_TIERS[min(tier, len(DIFFICULTY_TIERS) - 1)]


def min_terminal_distance(size: int) -> int:
    return max(3, size // 2)


# ============================================
# TERMINAL PLACEMENT
# ============================================

def place_terminals(
    size: int,
    num_colors: int,
    rng: SeededRandom,
    max_attempts: Optional[int] = None,
) -> List[TerminalPair]:
    """
    Places one terminal pair per color.

    A color that finds no valid pair within max_attempts samples is skipped,
    so the result may be shorter than num_colors. Accepted pairs are never
    revisited.
    """
    if max_attempts is None:
        max_attempts = settings.PLACEMENT_MAX_ATTEMPTS
    min_dist = min_terminal_distance(size)

    terminals: List[TerminalPair] = []
    used: Set[Coord] = set()

    for color in range(num_colors):
        for _ in range(max_attempts):
            start = (rng.next_int(0, size - 1), rng.next_int(0, size - 1))
            end = (rng.next_int(0, size - 1), rng.next_int(0, size - 1))

            if start in used or end in used:
                continue
            if manhattan(start, end) < min_dist:
                continue

            used.add(start)
            used.add(end)
            terminals.append(TerminalPair(color=color, start=start, end=end))
            break
        else:
            logger.debug(
                f"[Generator] color {color} not placed after {max_attempts} samples "
                f"(size={size}, min_dist={min_dist})"
            )

    return terminals


# ============================================
# PATH ROUTING (A*)
# ============================================

def _neighbors(pos: Coord, size: int) -> List[Coord]:
    x, y = pos
    result = []
    for dx, dy in NEIGHBOR_OFFSETS:
        nx, ny = x + dx, y + dy
        if 0 <= nx < size and 0 <= ny < size:
            result.append((nx, ny))
    return result


def _reconstruct_path(came_from: Dict[Coord, Coord], current: Coord) -> List[Coord]:
    path = [current]
    while current in came_from:
        current = came_from[current]
        path.append(current)
    path.reverse()
    return path


def find_path(
    start: Coord,
    end: Coord,
    claimed: Set[Coord],
    size: int,
) -> Optional[List[Coord]]:
    """
    Shortest 4-connected path from start to end, or None.

    Claimed cells are impassable except end itself. The frontier is ordered
    by (g + manhattan, insertion order), so equal-cost ties resolve the same
    way on every run.
    """
    counter = itertools.count()
    open_heap = [(manhattan(start, end), next(counter), start)]
    came_from: Dict[Coord, Coord] = {}
    g_score: Dict[Coord, int] = {start: 0}
    closed: Set[Coord] = set()

    while open_heap:
        _, _, current = heapq.heappop(open_heap)

        if current == end:
            return _reconstruct_path(came_from, current)

        if current in closed:
            continue
        closed.add(current)

        for neighbor in _neighbors(current, size):
            if neighbor in claimed and neighbor != end:
                continue

            tentative = g_score[current] + 1
            if neighbor not in g_score or tentative < g_score[neighbor]:
                came_from[neighbor] = current
                g_score[neighbor] = tentative
                heapq.heappush(
                    open_heap,
                    (tentative + manhattan(neighbor, end), next(counter), neighbor),
                )

    return None


def route_terminals(
    terminals: List[TerminalPair],
    size: int,
) -> Tuple[List[SolvedPath], List[int]]:
    """
    Routes every pair in placement order.

    Returns (paths, failed_colors). A committed path claims its cells for the
    colors routed after it; terminals are claimed from the start.
    """
    terminal_cells: Set[Coord] = set()
    for pair in terminals:
        terminal_cells.add(pair.start)
        terminal_cells.add(pair.end)

    claimed = set(terminal_cells)
    paths: List[SolvedPath] = []
    failed: List[int] = []

    for pair in terminals:
        path = find_path(pair.start, pair.end, claimed, size)
        if path is None:
            failed.append(pair.color)
            continue

        paths.append(SolvedPath(color=pair.color, path=path))
        for pos in path:
            if pos not in terminal_cells:
                claimed.add(pos)

    return paths, failed


def covered_cells(paths: List[SolvedPath]) -> Set[Coord]:
    covered: Set[Coord] = set()
    for solved in paths:
        covered.update(solved.path)
    return covered


# ============================================
# ASSEMBLER
# ============================================

PLACEMENT_EXHAUSTED = "placement_exhausted"
ROUTING_FAILED = "routing_failed"
LOW_COVERAGE = "low_coverage"


class GenerationError(RuntimeError):
    """Attempt budget ran out before an acceptable puzzle was assembled."""

    def __init__(self, size: int, num_colors: int, attempts: int, failures: Dict[str, int]):
        self.size = size
        self.num_colors = num_colors
        self.attempts = attempts
        self.failures = dict(failures)
        super().__init__(
            f"No acceptable {size}x{size} puzzle with {num_colors} colors "
            f"after {attempts} attempts ({self.failures})"
        )


@dataclass
class GenerationResult:
    puzzle: Optional[Puzzle]
    attempts: int
    failures: Dict[str, int] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.puzzle is not None


def is_acceptable(
    paths: List[SolvedPath],
    size: int,
    num_colors: int,
    min_coverage: Optional[float] = None,
) -> bool:
    """Every requested color is routed and paths cover at least min_coverage of the board."""
    if min_coverage is None:
        min_coverage = settings.MIN_COVERAGE
    if len(paths) != num_colors:
        return False
    return len(covered_cells(paths)) >= size * size * min_coverage


def _attempt(
    size: int,
    num_colors: int,
    rng: SeededRandom,
    placement_attempts: Optional[int],
    min_coverage: float,
) -> Tuple[Optional[Puzzle], Optional[str]]:
    terminals = place_terminals(size, num_colors, rng, placement_attempts)
    if len(terminals) < num_colors:
        return None, PLACEMENT_EXHAUSTED

    paths, failed = route_terminals(terminals, size)
    if failed:
        return None, ROUTING_FAILED

    if not is_acceptable(paths, size, num_colors, min_coverage):
        return None, LOW_COVERAGE

    grid = Grid.from_terminals(size, terminals)
    for solved in paths:
        grid.fill_path(solved.color, solved.path)

    puzzle = Puzzle(
        size=size,
        num_colors=num_colors,
        grid=grid,
        terminals=terminals,
        solution=paths,
        difficulty=difficulty_for(num_colors),
        generated=True,
    )
    return puzzle, None


def generate_puzzle(
    size: int,
    num_colors: int,
    rng: Optional[SeededRandom] = None,
    seed: Optional[int] = None,
    max_attempts: Optional[int] = None,
    min_coverage: Optional[float] = None,
    placement_attempts: Optional[int] = None,
) -> GenerationResult:
    """
    Генерирует головоломку: размещение + трассировка + приёмка.

    Каждая попытка начинается с пустого поля. После max_attempts неудач
    возвращается результат с puzzle=None.
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    if num_colors <= 0:
        raise ValueError(f"num_colors must be positive, got {num_colors}")

    if rng is None:
        rng = make_rng(seed)
    if max_attempts is None:
        max_attempts = settings.GENERATION_MAX_ATTEMPTS
    if min_coverage is None:
        min_coverage = settings.MIN_COVERAGE

    failures = {PLACEMENT_EXHAUSTED: 0, ROUTING_FAILED: 0, LOW_COVERAGE: 0}

    for attempt in range(1, max_attempts + 1):
        puzzle, reason = _attempt(size, num_colors, rng, placement_attempts, min_coverage)
        if puzzle is not None:
            puzzle.seed = rng.seed
            logger.info(
                f"[Generator] size={size} colors={num_colors} seed={rng.seed} "
                f"accepted on attempt {attempt} failures={failures}"
            )
            return GenerationResult(puzzle=puzzle, attempts=attempt, failures=failures)
        failures[reason] += 1

    logger.warning(
        f"[Generator] size={size} colors={num_colors} seed={rng.seed} "
        f"gave up after {max_attempts} attempts failures={failures}"
    )
    return GenerationResult(puzzle=None, attempts=max_attempts, failures=failures)


def generate_puzzle_or_raise(size: int, num_colors: int, **kwargs) -> Puzzle:
    result = generate_puzzle(size, num_colors, **kwargs)
    if result.puzzle is None:
        raise GenerationError(size, num_colors, result.attempts, result.failures)
    return result.puzzle
