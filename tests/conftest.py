from __future__ import annotations

import pytest

from flowpuzzle.services.grid import Grid
from flowpuzzle.services.level_loader import clear_catalog_cache, load_level_record, puzzle_from_record


@pytest.fixture(autouse=True)
def fresh_catalog_cache():
    clear_catalog_cache()
    yield
    clear_catalog_cache()


@pytest.fixture
def level_one():
    return puzzle_from_record(load_level_record(1), level=1)


@pytest.fixture
def solved_level_one(level_one):
    """Level 1 board filled with its attached solution."""
    grid = Grid.from_terminals(level_one.size, level_one.terminals)
    for solved in level_one.solution:
        grid.fill_path(solved.color, solved.path)
    return grid
