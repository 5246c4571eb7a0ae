"""
Flow Puzzle - Puzzles API

Уровни (каталог + процедурные), генерация, проверка решения, подсказки.
"""

import logging
import time
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ..config import settings
from ..middleware.security import limiter, validate_json_size
from ..schemas import (
    BoardRequest, CheckResponse, GenerateRequest, GenerateResponse,
    HintResponse, PuzzleRecord, PuzzleResponse, ValidateResponse,
)
from ..services.generator import GenerationError, generate_puzzle
from ..services.grid import Grid, Puzzle, TerminalPair
from ..services.level_loader import get_puzzle_for_level, normalize_record, puzzle_from_record
from ..services.solver import PuzzleSolver, validate_puzzle


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/puzzles", tags=["puzzles"])


# ============================================
# HELPERS
# ============================================

def _serialize_puzzle(puzzle: Puzzle) -> Dict[str, Any]:
    """Puzzle -> dict в формате PuzzleResponse."""
    return {
        **puzzle.to_record(),
        "level": puzzle.level,
        "seed": puzzle.seed,
        "num_colors": puzzle.num_colors,
        "generated": puzzle.generated,
        "grid": puzzle.grid.to_rows(),
    }


def _terminals_from_request(body: BoardRequest):
    return [TerminalPair(color=ep.color, start=ep.start, end=ep.end) for ep in body.endpoints]


# ============================================
# LEVEL CACHE (in-memory LRU)
# ============================================

@lru_cache(maxsize=settings.LEVEL_CACHE_SIZE)
def _cached_level(level_num: int) -> Optional[Dict[str, Any]]:
    """
    LRU кэш уровней. Процедурные уровни детерминированы (seed = номер уровня),
    поэтому неудача генерации тоже кэшируется как None.
    """
    try:
        puzzle = get_puzzle_for_level(
            level_num,
            max_attempts=settings.LEVEL_GENERATION_MAX_ATTEMPTS,
        )
    except GenerationError as e:
        logger.warning(f"[Level] level={level_num} generation failed: {e}")
        return None
    return _serialize_puzzle(puzzle)


def get_cached_level(level_num: int) -> Optional[Dict[str, Any]]:
    return _cached_level(level_num)


def clear_level_cache():
    _cached_level.cache_clear()


# ============================================
# ENDPOINTS
# ============================================

@router.get("/level/{level_num}", response_model=PuzzleResponse)
@limiter.limit(settings.RATE_LIMIT_LEVEL)
def get_level(request: Request, level_num: int):
    if level_num < 1:
        raise HTTPException(status_code=400, detail="Invalid level number")

    started = time.monotonic()
    level_data = get_cached_level(level_num)
    if level_data is None:
        raise HTTPException(status_code=503, detail="Could not generate this level")

    elapsed_ms = (time.monotonic() - started) * 1000
    logger.info(f"[Level] level={level_num} generated={level_data['generated']} endpoint_ms={elapsed_ms:.1f}")
    return level_data


@router.post(
    "/generate",
    response_model=GenerateResponse,
    dependencies=[Depends(validate_json_size)],
)
@limiter.limit(settings.RATE_LIMIT_GENERATE)
def generate(request: Request, body: GenerateRequest):
    started = time.monotonic()
    result = generate_puzzle(
        body.size,
        body.num_colors,
        seed=body.seed,
        max_attempts=body.max_attempts,
    )
    elapsed_ms = (time.monotonic() - started) * 1000
    logger.info(
        f"[Generate] size={body.size} colors={body.num_colors} attempts={result.attempts} "
        f"success={result.success} endpoint_ms={elapsed_ms:.1f}"
    )

    if result.puzzle is None:
        raise HTTPException(
            status_code=503,
            detail=f"No acceptable puzzle after {result.attempts} attempts",
        )

    return GenerateResponse(puzzle=_serialize_puzzle(result.puzzle), attempts=result.attempts)


@router.post(
    "/validate",
    response_model=ValidateResponse,
    dependencies=[Depends(validate_json_size)],
)
def validate(body: PuzzleRecord):
    record = normalize_record(body.model_dump(exclude_none=True), body.id or 0)
    if record is None:
        raise HTTPException(status_code=400, detail="Invalid puzzle record")

    puzzle = puzzle_from_record(record)
    valid = validate_puzzle(puzzle)
    return ValidateResponse(valid=valid, has_solution=puzzle.solution is not None)


@router.post(
    "/check",
    response_model=CheckResponse,
    dependencies=[Depends(validate_json_size)],
)
def check(body: BoardRequest):
    terminals = _terminals_from_request(body)
    grid = Grid.from_color_rows(body.grid, terminals)
    solved = PuzzleSolver(grid, terminals).check_solution()
    return CheckResponse(solved=solved, filled=grid.filled_count(), total=grid.size * grid.size)


@router.post(
    "/hint",
    response_model=HintResponse,
    dependencies=[Depends(validate_json_size)],
)
def hint(body: BoardRequest):
    terminals = _terminals_from_request(body)
    grid = Grid.from_color_rows(body.grid, terminals)
    found = PuzzleSolver(grid, terminals).get_hint()
    if found is None:
        return HintResponse(found=False)
    return HintResponse(found=True, x=found.x, y=found.y, color=found.color, message=found.message)
