from __future__ import annotations

from flowpuzzle.services.grid import PATH, CellTag, Grid, Puzzle, SolvedPath, TerminalPair
from flowpuzzle.services.solver import PuzzleSolver, get_color_name, validate_puzzle


def test_level_one_solution_is_accepted(level_one, solved_level_one):
    solver = PuzzleSolver(solved_level_one, level_one.terminals)
    assert solved_level_one.filled_count() == 25
    assert solver.check_solution()


def test_missing_interior_cell_is_rejected(level_one, solved_level_one):
    # (2, 2) is an interior cell of color 2.
    solved_level_one.set(2, 2, None)
    assert not PuzzleSolver(solved_level_one, level_one.terminals).check_solution()


def test_recolored_interior_cell_breaks_connection(level_one, solved_level_one):
    # (2, 0) is the only link between color 0's start and the rest of its path.
    solved_level_one.set(2, 0, CellTag(PATH, 1))
    solver = PuzzleSolver(solved_level_one, level_one.terminals)

    color_zero = level_one.terminals[0]
    assert not solver.is_connected(color_zero)
    assert solver.is_connected(level_one.terminals[1])
    assert not solver.check_solution()


def test_terminals_only_board_is_not_solved(level_one):
    solver = PuzzleSolver(level_one.grid, level_one.terminals)
    assert not solver.check_solution()


def test_has_intersection_is_always_false(level_one, solved_level_one):
    assert PuzzleSolver(solved_level_one, level_one.terminals).has_intersection() is False


def test_checker_does_not_mutate_grid(level_one, solved_level_one):
    before = solved_level_one.to_rows()
    PuzzleSolver(solved_level_one, level_one.terminals).check_solution()
    assert solved_level_one.to_rows() == before


# ----------------------------
# Hints
# ----------------------------

def test_hint_points_at_first_empty_cell(level_one):
    hint = PuzzleSolver(level_one.grid, level_one.terminals).get_hint()
    assert (hint.x, hint.y) == (1, 0)
    assert hint.color == 0
    assert hint.message == "Try filling this cell with Red"


def test_hint_none_on_full_board(level_one, solved_level_one):
    assert PuzzleSolver(solved_level_one, level_one.terminals).get_hint() is None


def test_hint_skips_cells_outside_every_bounding_box():
    terminals = [
        TerminalPair(color=0, start=(0, 0), end=(3, 0)),
        TerminalPair(color=1, start=(4, 1), end=(4, 4)),
    ]
    grid = Grid.from_terminals(5, terminals)
    grid.fill_path(0, [(1, 0), (2, 0)])

    hint = PuzzleSolver(grid, terminals).get_hint()
    assert (hint.x, hint.y) == (4, 2)
    assert hint.color == 1
    assert "Blue" in hint.message


def test_hint_none_when_no_box_covers_an_empty_cell():
    terminals = [TerminalPair(color=0, start=(0, 0), end=(3, 0))]
    grid = Grid.from_terminals(4, terminals)
    grid.fill_path(0, [(1, 0), (2, 0)])
    assert PuzzleSolver(grid, terminals).get_hint() is None


def test_color_names():
    assert get_color_name(0) == "Red"
    assert get_color_name(7) == "Cyan"
    assert get_color_name(8) == "Color 9"


# ----------------------------
# validate_puzzle
# ----------------------------

def test_validate_level_one(level_one):
    assert validate_puzzle(level_one)


def test_validate_without_solution_passes():
    terminals = [TerminalPair(color=0, start=(0, 0), end=(2, 2))]
    puzzle = Puzzle(size=3, num_colors=1, grid=Grid.from_terminals(3, terminals), terminals=terminals)
    assert validate_puzzle(puzzle)


def test_validate_rejects_partial_solution(level_one):
    level_one.solution = [s for s in level_one.solution if s.color != 2]
    assert not validate_puzzle(level_one)


def test_validate_overlay_never_overwrites_terminals():
    terminals = [
        TerminalPair(color=0, start=(0, 0), end=(1, 0)),
        TerminalPair(color=1, start=(0, 1), end=(1, 1)),
    ]
    # Color 0 claims to run through color 1's start; the terminal keeps its color.
    solution = [
        SolvedPath(color=0, path=[(0, 0), (0, 1), (1, 1), (1, 0)]),
        SolvedPath(color=1, path=[(0, 1), (1, 1)]),
    ]
    puzzle = Puzzle(
        size=2,
        num_colors=2,
        grid=Grid.from_terminals(2, terminals),
        terminals=terminals,
        solution=solution,
    )
    assert validate_puzzle(puzzle)
