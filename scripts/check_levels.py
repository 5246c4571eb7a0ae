#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any


ROOT_DIR = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT_DIR / "backend"
LEVELS_DIR = BACKEND_DIR / "flowpuzzle" / "levels"

if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from flowpuzzle.services.generator import generate_puzzle, get_level_params  # noqa: E402
from flowpuzzle.services.level_loader import normalize_record, puzzle_from_record  # noqa: E402
from flowpuzzle.services.solver import validate_puzzle  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Audit catalog level files and benchmark procedural generation."
    )
    parser.add_argument(
        "--levels-dir",
        type=Path,
        default=LEVELS_DIR,
        help="Directory with level_<n>.json files.",
    )
    parser.add_argument(
        "--generate",
        type=int,
        nargs="*",
        default=[],
        metavar="LEVEL",
        help="Procedural levels to generate and report on (e.g. --generate 11 20 50).",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=5000,
        help="Attempt budget per generated level.",
    )
    return parser.parse_args()


def level_number_from_path(path: Path) -> int | None:
    stem = path.stem
    if not stem.startswith("level_"):
        return None
    raw_number = stem.removeprefix("level_")
    try:
        return int(raw_number)
    except ValueError:
        return None


def path_problems(record: dict[str, Any]) -> list[str]:
    """Structural problems of attached solution paths."""
    problems: list[str] = []
    endpoints = {ep["color"]: ep for ep in record["endpoints"]}

    for solved in record.get("solution", []):
        color = solved["color"]
        path = [tuple(p) for p in solved["path"]]
        endpoint = endpoints.get(color)
        if endpoint is None:
            problems.append(f"solution color {color} has no endpoints")
            continue
        if not path or path[0] != tuple(endpoint["start"]) or path[-1] != tuple(endpoint["end"]):
            problems.append(f"color {color}: path does not run start -> end")
        if len(set(path)) != len(path):
            problems.append(f"color {color}: path repeats a cell")
        for a, b in zip(path, path[1:]):
            if abs(a[0] - b[0]) + abs(a[1] - b[1]) != 1:
                problems.append(f"color {color}: {list(a)} -> {list(b)} is not orthogonal")
                break

    return problems


def audit_level(path: Path) -> list[str]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    level_number = level_number_from_path(path) or 0
    record = normalize_record(raw, level_number)
    if record is None:
        return ["invalid size or endpoints"]

    problems = path_problems(record)
    if "solution" in record and not validate_puzzle(puzzle_from_record(record)):
        problems.append("attached solution does not solve the puzzle")
    return problems


def benchmark(level: int, max_attempts: int) -> None:
    size, num_colors = get_level_params(level)
    started = time.time()
    result = generate_puzzle(size, num_colors, seed=level, max_attempts=max_attempts)
    elapsed = (time.time() - started) * 1000

    status = "ok" if result.success else "FAILED"
    print(f"Level {level:4d} {status} | {elapsed:8.1f}ms | {size}x{size}, {num_colors} colors")
    print(f"  attempts={result.attempts} failures={result.failures}")
    if result.puzzle is not None:
        covered = sum(len(s.path) for s in result.puzzle.solution or [])
        print(f"  coverage={covered / (size * size) * 100:.1f}%")


def main() -> int:
    args = parse_args()

    if not args.levels_dir.exists():
        raise SystemExit(f"Levels directory not found: {args.levels_dir}")

    checked = 0
    broken = 0

    paths = sorted(
        args.levels_dir.glob("level_*.json"),
        key=lambda p: level_number_from_path(p) or 0,
    )
    for path in paths:
        checked += 1
        problems = audit_level(path)
        if not problems:
            continue

        broken += 1
        print(f"{path.name}: {len(problems)} problem(s)")
        for problem in problems:
            print(f"  {problem}")

    print(f"Checked {checked} level files, problems in {broken} file(s).")

    for level in args.generate:
        benchmark(level, args.max_attempts)

    return 1 if broken else 0


if __name__ == "__main__":
    raise SystemExit(main())
