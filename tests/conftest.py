# tests/conftest.py
import copy
import sys
from pathlib import Path

import pytest

# Add project root to sys.path so the top-level modules import without installing
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

SOLUTION = [
    [5, 3, 4, 6, 7, 8, 9, 1, 2],
    [6, 7, 2, 1, 9, 5, 3, 4, 8],
    [1, 9, 8, 3, 4, 2, 5, 6, 7],
    [8, 5, 9, 7, 6, 1, 4, 2, 3],
    [4, 2, 6, 8, 5, 3, 7, 9, 1],
    [7, 1, 3, 9, 2, 4, 8, 5, 6],
    [9, 6, 1, 5, 3, 7, 2, 8, 4],
    [2, 8, 7, 4, 1, 9, 6, 3, 5],
    [3, 4, 5, 2, 8, 6, 1, 7, 9],
]

PUZZLE = [
    [5, 3, 0, 0, 7, 0, 0, 0, 0],
    [6, 0, 0, 1, 9, 5, 0, 0, 0],
    [0, 9, 8, 0, 0, 0, 0, 6, 0],
    [8, 0, 0, 0, 6, 0, 0, 0, 3],
    [4, 0, 0, 8, 0, 3, 0, 0, 1],
    [7, 0, 0, 0, 2, 0, 0, 0, 6],
    [0, 6, 0, 0, 0, 0, 2, 8, 0],
    [0, 0, 0, 4, 1, 9, 0, 0, 5],
    [0, 0, 0, 0, 8, 0, 0, 7, 9],
]


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def solution():
    return copy.deepcopy(SOLUTION)


@pytest.fixture
def puzzle():
    return copy.deepcopy(PUZZLE)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_puzzle():
    """Build a session puzzle from SOLUTION with the given cells blanked."""

    def _make(blanks, mode="classic", difficulty="easy", cages=None):
        board = copy.deepcopy(SOLUTION)
        for r, c in blanks:
            board[r][c] = 0
        return {
            "mode": mode,
            "difficulty": difficulty,
            "solution": copy.deepcopy(SOLUTION),
            "puzzle": board,
            "cages": cages or [],
        }

    return _make
