"""
Flow Puzzle - Solution Checker & Hints

Проверка заполненного поля (сгенерированного или присланного игроком).
"""

from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Set

from .grid import Coord, Grid, Puzzle, TerminalPair


COLOR_NAMES = ["Red", "Blue", "Green", "Yellow", "Purple", "Orange", "Pink", "Cyan"]


def get_color_name(color: int) -> str:
    if 0 <= color < len(COLOR_NAMES):
        return COLOR_NAMES[color]
    return f"Color {color + 1}"


@dataclass
class Hint:
    x: int
    y: int
    color: int
    message: str


class PuzzleSolver:
    """Checks a filled board against its terminal set. Never mutates the grid."""

    def __init__(self, grid: Grid, terminals: List[TerminalPair]):
        self.grid = grid
        self.terminals = terminals
        self.size = grid.size

    def check_solution(self) -> bool:
        # 1. Все пары соединены
        for pair in self.terminals:
            if not self.is_connected(pair):
                return False

        # 2. Пустых клеток нет
        for _, _, tag in self.grid.iter_cells():
            if tag is None:
                return False

        # 3. Пути не пересекаются
        if self.has_intersection():
            return False

        return True

    def is_connected(self, pair: TerminalPair) -> bool:
        """BFS from start over cells of the pair's color, looking for end."""
        sx, sy = pair.start
        start_tag = self.grid.get(sx, sy)
        if start_tag is None or start_tag.color != pair.color:
            return False

        visited: Set[Coord] = {pair.start}
        queue = deque([pair.start])

        while queue:
            current = queue.popleft()
            if current == pair.end:
                return True

            for nx, ny in self.grid.neighbors(*current):
                if (nx, ny) in visited:
                    continue
                tag = self.grid.get(nx, ny)
                if tag is not None and tag.color == pair.color:
                    visited.add((nx, ny))
                    queue.append((nx, ny))

        return False

    def has_intersection(self) -> bool:
        # A cell stores exactly one color, so crossings cannot be represented.
        # A board that allowed stacked colors would need a real scan here.
        return False

    def get_hint(self) -> Optional[Hint]:
        """
        First empty cell (row-major) inside some pair's bounding box.

        Only bounding-box membership is checked, not whether a path through
        the cell actually exists.
        """
        for x, y, tag in self.grid.iter_cells():
            if tag is not None:
                continue
            for pair in self.terminals:
                if self._in_bounding_box(pair, (x, y)):
                    return Hint(
                        x=x,
                        y=y,
                        color=pair.color,
                        message=f"Try filling this cell with {get_color_name(pair.color)}",
                    )
        return None

    @staticmethod
    def _in_bounding_box(pair: TerminalPair, target: Coord) -> bool:
        min_x, min_y, max_x, max_y = pair.bounding_box()
        return min_x <= target[0] <= max_x and min_y <= target[1] <= max_y


def validate_puzzle(puzzle: Puzzle) -> bool:
    """
    Replays the attached solution on a fresh board and checks it.

    A puzzle without a solution passes untested.
    """
    if puzzle.solution is None:
        return True

    test_grid = Grid.from_terminals(puzzle.size, puzzle.terminals)
    for solved in puzzle.solution:
        test_grid.fill_path(solved.color, solved.path)

    return PuzzleSolver(test_grid, puzzle.terminals).check_solution()
