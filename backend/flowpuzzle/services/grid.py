"""
Flow Puzzle - Grid Model

Square board where every cell is either empty or holds a (kind, color) tag.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple


Coord = Tuple[int, int]

SOURCE = "source"
PATH = "path"

# down, right, up, left
NEIGHBOR_OFFSETS = [(0, 1), (1, 0), (0, -1), (-1, 0)]


@dataclass(frozen=True)
class CellTag:
    """Содержимое клетки: терминал (source) или отрезок пути (path)."""
    kind: str
    color: int


@dataclass(frozen=True)
class TerminalPair:
    """Two fixed endpoint cells of one color."""
    color: int
    start: Coord
    end: Coord

    def bounding_box(self) -> Tuple[int, int, int, int]:
        """(min_x, min_y, max_x, max_y) of the two terminals."""
        return (
            min(self.start[0], self.end[0]),
            min(self.start[1], self.end[1]),
            max(self.start[0], self.end[0]),
            max(self.start[1], self.end[1]),
        )


@dataclass
class SolvedPath:
    """Маршрут одного цвета от start до end включительно."""
    color: int
    path: List[Coord] = field(default_factory=list)


def manhattan(a: Coord, b: Coord) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


class Grid:
    """size x size board. Rows are indexed by y, columns by x."""

    def __init__(self, size: int):
        if size <= 0:
            raise ValueError(f"Grid size must be positive, got {size}")
        self.size = size
        self.cells: List[List[Optional[CellTag]]] = [
            [None for _ in range(size)] for _ in range(size)
        ]

    @classmethod
    def from_terminals(cls, size: int, terminals: List[TerminalPair]) -> "Grid":
        """Empty board with a source cell for every terminal."""
        grid = cls(size)
        for pair in terminals:
            grid.place_terminal(pair)
        return grid

    def is_valid(self, x: int, y: int) -> bool:
        """Клетка в границах поля."""
        return 0 <= x < self.size and 0 <= y < self.size

    def get(self, x: int, y: int) -> Optional[CellTag]:
        return self.cells[y][x]

    def set(self, x: int, y: int, tag: Optional[CellTag]):
        if not self.is_valid(x, y):
            raise IndexError(f"Cell ({x}, {y}) is outside a {self.size}x{self.size} grid")
        self.cells[y][x] = tag

    def is_empty(self, x: int, y: int) -> bool:
        return self.cells[y][x] is None

    def place_terminal(self, pair: TerminalPair):
        for x, y in (pair.start, pair.end):
            self.set(x, y, CellTag(SOURCE, pair.color))

    def fill_path(self, color: int, path: List[Coord]):
        """Пишет клетки пути в пустые клетки. Занятые клетки не трогаем."""
        for x, y in path:
            if self.is_valid(x, y) and self.is_empty(x, y):
                self.cells[y][x] = CellTag(PATH, color)

    def neighbors(self, x: int, y: int) -> List[Coord]:
        result = []
        for dx, dy in NEIGHBOR_OFFSETS:
            nx, ny = x + dx, y + dy
            if self.is_valid(nx, ny):
                result.append((nx, ny))
        return result

    def iter_cells(self) -> Iterator[Tuple[int, int, Optional[CellTag]]]:
        """Row-major walk: (x, y, tag)."""
        for y in range(self.size):
            for x in range(self.size):
                yield x, y, self.cells[y][x]

    def filled_count(self) -> int:
        return sum(1 for _, _, tag in self.iter_cells() if tag is not None)

    def to_rows(self) -> List[List[Optional[Dict[str, object]]]]:
        """JSON-friendly form: rows of {kind, color} or None."""
        return [
            [None if tag is None else {"kind": tag.kind, "color": tag.color} for tag in row]
            for row in self.cells
        ]

    def to_color_rows(self) -> List[List[Optional[int]]]:
        return [[None if tag is None else tag.color for tag in row] for row in self.cells]

    @classmethod
    def from_color_rows(
        cls,
        rows: List[List[Optional[int]]],
        terminals: List[TerminalPair],
    ) -> "Grid":
        """
        Builds a board from a player fill (rows of color or None).
        Terminal cells are always sources of their own color.
        """
        grid = cls(len(rows))
        for y, row in enumerate(rows):
            if len(row) != grid.size:
                raise ValueError(f"Row {y} has {len(row)} cells, expected {grid.size}")
            for x, color in enumerate(row):
                if color is not None:
                    grid.cells[y][x] = CellTag(PATH, int(color))
        for pair in terminals:
            grid.place_terminal(pair)
        return grid

    def __repr__(self) -> str:
        return f"Grid(size={self.size}, filled={self.filled_count()})"


def _pair_to_list(pos: Coord) -> List[int]:
    return [pos[0], pos[1]]


@dataclass
class Puzzle:
    """
    Собранная головоломка.

    grid хранит source-клетки всех терминалов; у сгенерированных уровней
    в нём же лежат path-клетки найденного решения.
    """
    size: int
    num_colors: int
    grid: Grid
    terminals: List[TerminalPair]
    solution: Optional[List[SolvedPath]] = None
    id: Optional[int] = None
    difficulty: Optional[str] = None
    obstacles: Optional[List[Dict[str, object]]] = None
    level: Optional[int] = None
    seed: Optional[int] = None
    generated: bool = False

    def to_record(self) -> Dict[str, object]:
        """Serializes to the catalog record format ([x, y] coordinates)."""
        record: Dict[str, object] = {
            "id": self.id if self.id is not None else self.level,
            "size": self.size,
            "difficulty": self.difficulty,
            "endpoints": [
                {"color": t.color, "start": _pair_to_list(t.start), "end": _pair_to_list(t.end)}
                for t in self.terminals
            ],
        }
        if self.solution is not None:
            record["solution"] = [
                {"color": s.color, "path": [_pair_to_list(p) for p in s.path]}
                for s in self.solution
            ]
        if self.obstacles is not None:
            record["obstacles"] = [dict(o) for o in self.obstacles]
        return record
