"""
Flow Puzzle - Pydantic Schemas

Все схемы валидации в одном файле.
"""

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


Point = Tuple[int, int]  # [x, y]
Difficulty = Literal["easy", "medium", "hard", "expert", "master", "grandmaster"]


def _check_endpoints(endpoints, size: int):
    """Every terminal inside the board, no cell shared by two terminals."""
    seen = set()
    for ep in endpoints:
        for point in (ep.start, ep.end):
            if not (0 <= point[0] < size and 0 <= point[1] < size):
                raise ValueError(f"Endpoint {list(point)} is outside a {size}x{size} grid")
            if point in seen:
                raise ValueError(f"Endpoint {list(point)} is used twice")
            seen.add(point)


# ============================================
# PUZZLE RECORD
# ============================================

class Endpoint(BaseModel):
    """Пара терминалов одного цвета."""
    color: int = Field(ge=0)
    start: Point
    end: Point

    @model_validator(mode="after")
    def check_distinct(self) -> "Endpoint":
        if self.start == self.end:
            raise ValueError(f"Color {self.color}: start and end must differ")
        return self


class SolutionPath(BaseModel):
    """Маршрут одного цвета."""
    color: int = Field(ge=0)
    path: List[Point]


class Obstacle(BaseModel):
    """Препятствие. Генератор и проверка его не учитывают."""
    type: Literal["wall", "ice", "portal"]
    position: Point
    target: Optional[Point] = None


class GridCell(BaseModel):
    kind: Literal["source", "path"]
    color: int


class PuzzleRecord(BaseModel):
    """Формат уровня в каталоге."""
    id: Optional[int] = None
    size: int = Field(ge=1, le=64)
    difficulty: Optional[Difficulty] = None
    endpoints: List[Endpoint] = Field(min_length=1)
    solution: Optional[List[SolutionPath]] = None
    obstacles: Optional[List[Obstacle]] = None

    @model_validator(mode="after")
    def check_coordinates(self) -> "PuzzleRecord":
        _check_endpoints(self.endpoints, self.size)
        for sol in self.solution or []:
            for point in sol.path:
                if not (0 <= point[0] < self.size and 0 <= point[1] < self.size):
                    raise ValueError(f"Path cell {list(point)} is outside a {self.size}x{self.size} grid")
        return self


class PuzzleResponse(PuzzleRecord):
    """Уровень для клиента: запись каталога + поле."""
    level: Optional[int] = None
    seed: Optional[int] = None
    num_colors: int
    generated: bool = False
    grid: List[List[Optional[GridCell]]]


# ============================================
# GENERATION
# ============================================

class GenerateRequest(BaseModel):
    """Запрос процедурной генерации."""
    size: int = Field(ge=3, le=12)
    num_colors: int = Field(ge=1, le=10)
    seed: Optional[int] = Field(default=None, ge=0)
    max_attempts: Optional[int] = Field(default=None, ge=1, le=20000)


class GenerateResponse(BaseModel):
    puzzle: PuzzleResponse
    attempts: int


# ============================================
# VALIDATION / CHECK / HINT
# ============================================

class ValidateResponse(BaseModel):
    valid: bool
    has_solution: bool


class BoardRequest(BaseModel):
    """Поле игрока: строки цветов (null = пустая клетка)."""
    size: int = Field(ge=1, le=64)
    endpoints: List[Endpoint] = Field(min_length=1)
    grid: List[List[Optional[int]]]

    @field_validator("grid")
    @classmethod
    def check_colors(cls, value: List[List[Optional[int]]]) -> List[List[Optional[int]]]:
        for row in value:
            for color in row:
                if color is not None and color < 0:
                    raise ValueError(f"Colors must be non-negative, got {color}")
        return value

    @model_validator(mode="after")
    def check_shape(self) -> "BoardRequest":
        if len(self.grid) != self.size or any(len(row) != self.size for row in self.grid):
            raise ValueError(f"grid must be {self.size}x{self.size}")
        _check_endpoints(self.endpoints, self.size)
        return self


class CheckResponse(BaseModel):
    solved: bool
    filled: int
    total: int


class HintResponse(BaseModel):
    """Ответ подсказки."""
    found: bool
    x: Optional[int] = None
    y: Optional[int] = None
    color: Optional[int] = None
    message: Optional[str] = None
