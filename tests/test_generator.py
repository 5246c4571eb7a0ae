from __future__ import annotations

import itertools

import pytest

from flowpuzzle.services.generator import (
    LOW_COVERAGE,
    PLACEMENT_EXHAUSTED,
    GenerationError,
    SeededRandom,
    difficulty_for,
    find_path,
    generate_puzzle,
    generate_puzzle_or_raise,
    get_level_params,
    is_acceptable,
    min_terminal_distance,
    place_terminals,
    route_terminals,
)
from flowpuzzle.services.grid import SOURCE, SolvedPath, TerminalPair, manhattan
from flowpuzzle.services.solver import PuzzleSolver


def assert_valid_path(path, start, end, size):
    assert path[0] == start
    assert path[-1] == end
    assert len(set(path)) == len(path)
    for x, y in path:
        assert 0 <= x < size and 0 <= y < size
    for a, b in zip(path, path[1:]):
        assert manhattan(a, b) == 1


# ----------------------------
# Seeded random
# ----------------------------

def test_seeded_random_is_reproducible():
    a = SeededRandom(42)
    b = SeededRandom(42)
    assert [a.next_int(0, 9) for _ in range(50)] == [b.next_int(0, 9) for _ in range(50)]


def test_seeded_random_stays_in_range():
    rng = SeededRandom(3)
    values = [rng.next_int(2, 5) for _ in range(500)]
    assert min(values) >= 2
    assert max(values) <= 5
    assert all(0.0 <= rng.next() < 1.0 for _ in range(500))


# ----------------------------
# Terminal placement
# ----------------------------

@pytest.mark.parametrize("size,num_colors,seed", [(5, 3, 1), (6, 6, 2), (8, 7, 3), (12, 10, 4)])
def test_place_terminals_distinct_and_separated(size, num_colors, seed):
    terminals = place_terminals(size, num_colors, SeededRandom(seed))
    assert len(terminals) == num_colors

    cells = [pos for t in terminals for pos in (t.start, t.end)]
    assert len(set(cells)) == 2 * num_colors

    min_dist = min_terminal_distance(size)
    for t in terminals:
        assert manhattan(t.start, t.end) >= min_dist
        assert t.start != t.end


def test_place_terminals_colors_follow_placement_order():
    terminals = place_terminals(7, 5, SeededRandom(9))
    assert [t.color for t in terminals] == list(range(5))


def test_place_terminals_skips_colors_when_exhausted():
    # A 2x2 board has no pair at distance >= 3.
    assert place_terminals(2, 2, SeededRandom(5), max_attempts=20) == []


def test_min_terminal_distance():
    assert min_terminal_distance(4) == 3
    assert min_terminal_distance(5) == 3
    assert min_terminal_distance(8) == 4
    assert min_terminal_distance(12) == 6


# ----------------------------
# Routing
# ----------------------------

@pytest.mark.parametrize(
    "start,end",
    [((0, 0), (4, 4)), ((4, 0), (0, 4)), ((2, 1), (2, 4)), ((0, 3), (4, 3))],
)
def test_find_path_unobstructed_is_shortest(start, end):
    path = find_path(start, end, {start, end}, 5)
    assert_valid_path(path, start, end, 5)
    assert len(path) - 1 == manhattan(start, end)


def test_find_path_is_deterministic():
    claimed = {(0, 0), (5, 5), (2, 2), (3, 3)}
    first = find_path((0, 0), (5, 5), claimed, 6)
    second = find_path((0, 0), (5, 5), claimed, 6)
    assert first == second


def test_find_path_avoids_claimed_cells():
    claimed = {(0, 0), (4, 0), (1, 0), (2, 0), (3, 0)}
    path = find_path((0, 0), (4, 0), claimed, 5)
    assert_valid_path(path, (0, 0), (4, 0), 5)
    assert not (set(path[1:-1]) & claimed)
    assert len(path) - 1 == 6


def test_find_path_enters_claimed_end():
    path = find_path((0, 0), (0, 2), {(0, 0), (0, 2)}, 3)
    assert path == [(0, 0), (0, 1), (0, 2)]


def test_find_path_returns_none_when_walled_off():
    wall = {(2, y) for y in range(5)}
    assert find_path((0, 0), (4, 4), wall | {(0, 0), (4, 4)}, 5) is None


def test_route_terminals_paths_are_disjoint():
    terminals = [
        TerminalPair(color=0, start=(0, 0), end=(4, 0)),
        TerminalPair(color=1, start=(0, 1), end=(4, 1)),
        TerminalPair(color=2, start=(0, 4), end=(4, 4)),
    ]
    paths, failed = route_terminals(terminals, 5)
    assert failed == []
    assert [p.color for p in paths] == [0, 1, 2]

    for solved, pair in zip(paths, terminals):
        assert_valid_path(solved.path, pair.start, pair.end, 5)

    for a, b in itertools.combinations(paths, 2):
        assert not (set(a.path) & set(b.path))


def test_route_terminals_reports_blocked_color():
    # Color 0 runs straight down column 1 and seals color 1's start in column 0.
    terminals = [
        TerminalPair(color=0, start=(1, 0), end=(1, 4)),
        TerminalPair(color=1, start=(0, 2), end=(3, 2)),
    ]
    paths, failed = route_terminals(terminals, 5)
    assert [p.color for p in paths] == [0]
    assert failed == [1]


# ----------------------------
# Acceptance / assembly
# ----------------------------

def test_is_acceptable_requires_every_color():
    paths = [SolvedPath(color=0, path=[(x, y) for y in range(3) for x in range(3)])]
    assert is_acceptable(paths, 3, 1, 0.8)
    assert not is_acceptable(paths, 3, 2, 0.8)


def test_is_acceptable_coverage_threshold():
    paths = [SolvedPath(color=0, path=[(0, 0), (1, 0), (2, 0)])]
    assert not is_acceptable(paths, 3, 1, 0.8)
    assert is_acceptable(paths, 3, 1, 0.3)


def test_generate_puzzle_properties():
    result = generate_puzzle(5, 3, rng=SeededRandom(2024), max_attempts=5000)
    assert result.success
    puzzle = result.puzzle
    assert 1 <= result.attempts <= 5000
    assert puzzle.generated
    assert puzzle.size == 5
    assert puzzle.num_colors == 3
    assert len(puzzle.terminals) == 3
    assert puzzle.difficulty == "easy"
    assert puzzle.seed == 2024

    terminals = {t.color: t for t in puzzle.terminals}
    for solved in puzzle.solution:
        pair = terminals[solved.color]
        assert_valid_path(solved.path, pair.start, pair.end, 5)

    for a, b in itertools.combinations(puzzle.solution, 2):
        assert not (set(a.path[1:-1]) & set(b.path[1:-1]))

    covered = {pos for solved in puzzle.solution for pos in solved.path}
    assert len(covered) >= 0.8 * 25
    assert puzzle.grid.filled_count() == len(covered)

    for pair in puzzle.terminals:
        for x, y in (pair.start, pair.end):
            tag = puzzle.grid.get(x, y)
            assert tag.kind == SOURCE
            assert tag.color == pair.color

    solver = PuzzleSolver(puzzle.grid, puzzle.terminals)
    assert all(solver.is_connected(pair) for pair in puzzle.terminals)


def test_generate_puzzle_same_seed_same_board():
    first = generate_puzzle(5, 3, seed=77, max_attempts=5000).puzzle
    second = generate_puzzle(5, 3, seed=77, max_attempts=5000).puzzle
    assert first.terminals == second.terminals
    assert first.grid.to_rows() == second.grid.to_rows()


def test_generate_puzzle_gives_up_after_budget():
    result = generate_puzzle(2, 1, seed=1, max_attempts=4, placement_attempts=5)
    assert not result.success
    assert result.puzzle is None
    assert result.attempts == 4
    assert result.failures[PLACEMENT_EXHAUSTED] == 4


def test_generate_puzzle_counts_low_coverage():
    # One color on a 6x6 board can never cover 80% with a shortest path.
    result = generate_puzzle(6, 1, seed=8, max_attempts=10)
    assert not result.success
    assert result.failures[LOW_COVERAGE] == 10


def test_generate_puzzle_or_raise():
    with pytest.raises(GenerationError) as excinfo:
        generate_puzzle_or_raise(2, 1, seed=1, max_attempts=3, placement_attempts=2)
    assert excinfo.value.attempts == 3
    assert excinfo.value.failures[PLACEMENT_EXHAUSTED] == 3


@pytest.mark.parametrize("size,num_colors", [(0, 3), (5, 0)])
def test_generate_puzzle_rejects_bad_arguments(size, num_colors):
    with pytest.raises(ValueError):
        generate_puzzle(size, num_colors, seed=1, max_attempts=1)


# ----------------------------
# Level progression
# ----------------------------

@pytest.mark.parametrize(
    "level,expected",
    [(1, (5, 3)), (11, (6, 6)), (20, (7, 9)), (30, (8, 10)), (200, (12, 10))],
)
def test_get_level_params(level, expected):
    assert get_level_params(level) == expected


@pytest.mark.parametrize(
    "num_colors,tier",
    [(1, "easy"), (3, "easy"), (4, "medium"), (5, "hard"), (6, "expert"), (7, "master"), (10, "grandmaster")],
)
def test_difficulty_for(num_colors, tier):
    assert difficulty_for(num_colors) == tier
