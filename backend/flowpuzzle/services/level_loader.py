import copy
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..config import settings
from .generator import SeededRandom, generate_puzzle_or_raise, get_level_params
from .grid import Grid, Puzzle, SolvedPath, TerminalPair


logger = logging.getLogger(__name__)

VALID_DIFFICULTIES = {"easy", "medium", "hard", "expert", "master", "grandmaster"}
VALID_OBSTACLE_TYPES = {"wall", "ice", "portal"}
LEGACY_DIFFICULTY_MAP = {
    "normal": "medium",
    "extreme": "expert",
}


def levels_dir() -> Path:
    return Path(settings.LEVELS_DIR)


def _to_int_pair(coord: Any) -> Optional[Tuple[int, int]]:
    if not isinstance(coord, (list, tuple)) or len(coord) != 2:
        return None
    try:
        return int(coord[0]), int(coord[1])
    except (TypeError, ValueError):
        return None


def _in_bounds(pair: Tuple[int, int], size: int) -> bool:
    return 0 <= pair[0] < size and 0 <= pair[1] < size


def _normalize_difficulty(value: Any) -> str:
    if not isinstance(value, str):
        return "medium"
    normalized = value.strip().lower()
    normalized = LEGACY_DIFFICULTY_MAP.get(normalized, normalized)
    if normalized in VALID_DIFFICULTIES:
        return normalized
    return "medium"


def _normalize_endpoints(raw_endpoints: Any, size: int) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(raw_endpoints, list) or not raw_endpoints:
        return None

    endpoints = []
    seen_cells = set()
    for raw in raw_endpoints:
        if not isinstance(raw, dict):
            return None
        start = _to_int_pair(raw.get("start"))
        end = _to_int_pair(raw.get("end"))
        try:
            color = int(raw.get("color"))
        except (TypeError, ValueError):
            return None
        if start is None or end is None or start == end:
            return None
        if not _in_bounds(start, size) or not _in_bounds(end, size):
            return None
        if start in seen_cells or end in seen_cells:
            return None
        seen_cells.update((start, end))
        endpoints.append({"color": color, "start": list(start), "end": list(end)})

    return endpoints


def _normalize_solution(raw_solution: Any, size: int) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(raw_solution, list):
        return None

    solution = []
    for raw in raw_solution:
        if not isinstance(raw, dict):
            continue
        try:
            color = int(raw.get("color"))
        except (TypeError, ValueError):
            continue
        cells = []
        for raw_cell in raw.get("path", []):
            pair = _to_int_pair(raw_cell)
            if pair is not None and _in_bounds(pair, size):
                cells.append(list(pair))
        solution.append({"color": color, "path": cells})

    return solution


def _normalize_obstacles(raw_obstacles: Any, size: int) -> List[Dict[str, Any]]:
    if not isinstance(raw_obstacles, list):
        return []

    obstacles = []
    for raw in raw_obstacles:
        if not isinstance(raw, dict):
            continue
        kind = str(raw.get("type", "")).strip().lower()
        if kind not in VALID_OBSTACLE_TYPES:
            continue
        position = _to_int_pair(raw.get("position"))
        if position is None or not _in_bounds(position, size):
            continue
        obstacle: Dict[str, Any] = {"type": kind, "position": list(position)}
        target = _to_int_pair(raw.get("target"))
        if target is not None and _in_bounds(target, size):
            obstacle["target"] = list(target)
        obstacles.append(obstacle)

    return obstacles


def _find_level_file(level_num: int) -> Optional[Path]:
    for name in (f"level_{level_num}.json", f"{level_num}.json"):
        path = levels_dir() / name
        if path.exists():
            return path
    return None


def normalize_record(raw_data: Dict[str, Any], level_num: int) -> Optional[Dict[str, Any]]:
    """Normalizes a raw catalog record. Returns None when it is unusable."""
    try:
        size = int(raw_data.get("size", 0))
    except (TypeError, ValueError):
        return None
    if size <= 0:
        return None

    endpoints = _normalize_endpoints(raw_data.get("endpoints"), size)
    if endpoints is None:
        return None

    record: Dict[str, Any] = {
        "id": raw_data.get("id", level_num),
        "size": size,
        "difficulty": _normalize_difficulty(raw_data.get("difficulty")),
        "endpoints": endpoints,
    }
    if "solution" in raw_data:
        solution = _normalize_solution(raw_data["solution"], size)
        if solution is not None:
            record["solution"] = solution
    if "obstacles" in raw_data:
        record["obstacles"] = _normalize_obstacles(raw_data["obstacles"], size)
    return record


@lru_cache(maxsize=None)
def _read_level_file(level_num: int) -> Optional[Dict[str, Any]]:
    file_path = _find_level_file(level_num)
    if not file_path:
        return None

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            raw_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"[LevelLoader] Error reading level file {file_path}: {e}")
        return None

    if not isinstance(raw_data, dict):
        logger.error(f"[LevelLoader] Level file {file_path} is not a JSON object")
        return None

    record = normalize_record(raw_data, level_num)
    if record is None:
        logger.error(f"[LevelLoader] Level file {file_path} has invalid size or endpoints")
        return None

    logger.debug(
        f"[LevelLoader] Level {level_num}: size={record['size']}, "
        f"colors={len(record['endpoints'])}, solution={'solution' in record}"
    )
    return record


def load_level_record(level_num: int) -> Optional[Dict[str, Any]]:
    """Normalized catalog record for a level, or None if the level file is missing or broken."""
    record = _read_level_file(level_num)
    return copy.deepcopy(record) if record is not None else None


def catalog_size() -> int:
    """Number of consecutive catalog levels starting from level 1."""
    count = 0
    while _find_level_file(count + 1) is not None:
        count += 1
    return count


def clear_catalog_cache():
    _read_level_file.cache_clear()


def puzzle_from_record(record: Dict[str, Any], level: Optional[int] = None) -> Puzzle:
    """Builds a Puzzle from a normalized record. The grid holds terminals only."""
    size = record["size"]
    terminals = [
        TerminalPair(color=ep["color"], start=tuple(ep["start"]), end=tuple(ep["end"]))
        for ep in record["endpoints"]
    ]
    solution = None
    if "solution" in record:
        solution = [
            SolvedPath(color=s["color"], path=[tuple(p) for p in s["path"]])
            for s in record["solution"]
        ]

    return Puzzle(
        size=size,
        num_colors=len(terminals),
        grid=Grid.from_terminals(size, terminals),
        terminals=terminals,
        solution=solution,
        id=record.get("id"),
        difficulty=record.get("difficulty"),
        obstacles=record.get("obstacles"),
        level=level,
    )


def get_puzzle_for_level(
    level: int,
    seed: Optional[int] = None,
    max_attempts: Optional[int] = None,
) -> Puzzle:
    """
    Catalog level when the index is covered by level files, otherwise a
    procedural puzzle. Procedural levels are seeded with the level number
    by default, so the same level always yields the same board.

    Raises ValueError for level < 1 and GenerationError when the attempt
    budget runs out.
    """
    if level < 1:
        raise ValueError(f"Level must be >= 1, got {level}")

    if level <= catalog_size():
        record = load_level_record(level)
        if record is not None:
            return puzzle_from_record(record, level=level)
        logger.warning(f"[LevelLoader] Level {level} file is broken, generating instead")

    size, num_colors = get_level_params(level)
    rng = SeededRandom(level if seed is None else seed)
    puzzle = generate_puzzle_or_raise(size, num_colors, rng=rng, max_attempts=max_attempts)
    puzzle.id = level
    puzzle.level = level
    return puzzle
