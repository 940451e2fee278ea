import copy
import json
import random

import pytest

import generate
from generate import (
    clue_target,
    count_clues,
    count_solutions,
    create_puzzle,
    empty_board,
    generate_full_board,
    given_mask,
    has_unique_solution,
    is_valid,
    peers,
)


def assert_solved(board):
    digits = list(range(1, 10))
    for row in board:
        assert sorted(row) == digits
    for c in range(9):
        assert sorted(board[r][c] for r in range(9)) == digits
    for br in range(0, 9, 3):
        for bc in range(0, 9, 3):
            box = [board[r][c] for r in range(br, br + 3) for c in range(bc, bc + 3)]
            assert sorted(box) == digits


# ---------- Constraint checker ----------


def test_is_valid_rejects_row_column_and_box_repeats(puzzle):
    assert not is_valid(puzzle, 0, 2, 5)  # row
    assert not is_valid(puzzle, 2, 0, 4)  # column
    assert not is_valid(puzzle, 1, 1, 8)  # box
    assert is_valid(puzzle, 0, 2, 4)


def test_is_valid_ignores_the_cell_itself(solution):
    assert is_valid(solution, 4, 4, solution[4][4])


def test_is_valid_unchanged_after_undone_trial(puzzle):
    before = is_valid(puzzle, 0, 3, 6)
    puzzle[0][2] = 6
    puzzle[0][2] = 0
    assert is_valid(puzzle, 0, 3, 6) == before


@pytest.mark.parametrize("row,col", [(-1, 0), (0, 9), (9, 9)])
def test_is_valid_rejects_out_of_range_cells(puzzle, row, col):
    with pytest.raises(ValueError):
        is_valid(puzzle, row, col, 1)


def test_peers_of_a_cell():
    ps = peers(4, 4)
    assert len(ps) == 20
    assert (4, 4) not in ps
    assert (3, 5) in ps and (0, 4) in ps and (4, 8) in ps


# ---------- Board generation ----------


def test_generated_board_is_solved():
    for seed in range(3):
        assert_solved(generate_full_board(random.Random(seed)))


def test_generation_is_reproducible_with_seed():
    assert generate_full_board(random.Random(7)) == generate_full_board(random.Random(7))


def test_generation_varies_between_seeds():
    assert generate_full_board(random.Random(1)) != generate_full_board(random.Random(2))


# ---------- Solution counting ----------


def test_full_board_has_one_solution(solution):
    assert count_solutions(solution) == 1


def test_known_puzzle_is_unique(puzzle):
    assert has_unique_solution(puzzle)


def test_count_stops_at_limit():
    assert count_solutions(empty_board(), limit=2) == 2
    assert count_solutions(empty_board(), limit=3) == 3


def test_count_restores_board(puzzle):
    before = copy.deepcopy(puzzle)
    count_solutions(puzzle)
    assert puzzle == before


def test_ambiguous_puzzle_is_not_unique(solution):
    # 6 and 7 can trade places in rows 0 and 3, columns 3 and 4
    for r, c in [(0, 3), (0, 4), (3, 3), (3, 4)]:
        solution[r][c] = 0
    assert count_solutions(solution) == 2
    assert not has_unique_solution(solution)


# ---------- Clue removal ----------


def test_hard_classic_puzzle_has_unique_solution():
    rng = random.Random(11)
    solution = generate_full_board(rng)
    puzzle = create_puzzle(solution, clue_target("classic", "hard"), rng)

    assert 30 <= count_clues(puzzle) <= 81
    assert count_solutions(copy.deepcopy(puzzle), 2) == 1
    for r in range(9):
        for c in range(9):
            assert puzzle[r][c] in (0, solution[r][c])


def test_create_puzzle_leaves_solution_untouched():
    rng = random.Random(3)
    solution = generate_full_board(rng)
    before = copy.deepcopy(solution)
    create_puzzle(solution, 45, rng)
    assert solution == before


def test_easy_target_is_met_exactly():
    rng = random.Random(5)
    puzzle = create_puzzle(generate_full_board(rng), 45, rng)
    assert count_clues(puzzle) == 45


def test_given_mask(puzzle):
    mask = given_mask(puzzle)
    assert mask[0][0] is True
    assert mask[0][2] is False
    assert sum(v for row in mask for v in row) == count_clues(puzzle)


def test_clue_targets():
    assert clue_target("classic", "easy") == 45
    assert clue_target("killer", "easy") == 32
    assert clue_target("classic", "expert") == 24
    assert clue_target("killer", "expert") == 14
    with pytest.raises(ValueError):
        clue_target("jigsaw", "easy")
    with pytest.raises(ValueError):
        clue_target("classic", "evil")


# ---------- CLI ----------


def test_cli_writes_and_extends_collection(tmp_path, monkeypatch):
    monkeypatch.setattr(generate, "DIFFICULTIES", ("easy",))
    output = tmp_path / "sudoku.json"

    generate.main(["--count", "2", "--seed", "4", "--output", str(output)])
    generate.main(["--count", "1", "--seed", "5", "--output", str(output)])

    data = json.loads(output.read_text(encoding="utf-8"))
    assert [p["id"] for p in data["puzzles"]] == [1, 2, 3]
    for entry in data["puzzles"]:
        assert entry["mode"] == "classic"
        assert entry["difficulty"] == "easy"
        assert entry["clues"] == count_clues(entry["puzzle"])
        assert has_unique_solution(entry["puzzle"])


def test_cli_rejects_zero_count(tmp_path):
    with pytest.raises(SystemExit):
        generate.main(["--count", "0", "--output", str(tmp_path / "x.json")])
