import argparse
import copy
import json
import logging
import os
import random
import sys
import time

SIZE = 9
BOX = 3
TOTAL_CELLS = SIZE * SIZE
CELLS = [(r, c) for r in range(SIZE) for c in range(SIZE)]

MODES = ("classic", "killer")
DIFFICULTIES = ("easy", "medium", "hard", "expert")

# Target number of clues left in the puzzle, per difficulty and mode.
DIFFICULTY_PRESETS = {
    "easy": {"classic": 45, "killer": 32},
    "medium": {"classic": 36, "killer": 26},
    "hard": {"classic": 30, "killer": 20},
    "expert": {"classic": 24, "killer": 14},
}

OUTPUT_FILE = "sudoku.json"

logger = logging.getLogger(__name__)


def check_cell(row, col):
    if not (0 <= row < SIZE and 0 <= col < SIZE):
        raise ValueError(f"cell ({row}, {col}) is outside the {SIZE}x{SIZE} board")


def check_digit(num):
    if isinstance(num, bool) or not isinstance(num, int) or not 1 <= num <= SIZE:
        raise ValueError(f"digit must be in 1..{SIZE}, got {num!r}")


def clue_target(mode, difficulty):
    if mode not in MODES:
        raise ValueError(f"unknown mode: {mode!r}")
    if difficulty not in DIFFICULTY_PRESETS:
        raise ValueError(f"unknown difficulty: {difficulty!r}")
    return DIFFICULTY_PRESETS[difficulty][mode]


def empty_board():
    return [[0] * SIZE for _ in range(SIZE)]


def peers(row, col):
    """Cells sharing a row, column or box with (row, col), the cell excluded."""
    out = set()
    for i in range(SIZE):
        out.add((row, i))
        out.add((i, col))
    br, bc = BOX * (row // BOX), BOX * (col // BOX)
    for r in range(br, br + BOX):
        for c in range(bc, bc + BOX):
            out.add((r, c))
    out.discard((row, col))
    return out


# ---------------------------------------------------------------------------
# Constraint checking
# ---------------------------------------------------------------------------


def _is_valid(board, row, col, num):
    for i in range(SIZE):
        if i != col and board[row][i] == num:
            return False
        if i != row and board[i][col] == num:
            return False
    br, bc = BOX * (row // BOX), BOX * (col // BOX)
    for r in range(br, br + BOX):
        for c in range(bc, bc + BOX):
            if (r, c) != (row, col) and board[r][c] == num:
                return False
    return True


def is_valid(board, row, col, num):
    """Return True if `num` can go at (row, col) without repeating a digit in
    its row, column or box. The cell's own content is ignored."""
    check_cell(row, col)
    return _is_valid(board, row, col, num)


# ---------------------------------------------------------------------------
# Board generation (randomized backtracking)
# ---------------------------------------------------------------------------


def generate_full_board(rng=random):
    board = empty_board()

    def fill(pos):
        if pos == TOTAL_CELLS:
            return True
        row, col = divmod(pos, SIZE)
        nums = list(range(1, SIZE + 1))
        rng.shuffle(nums)
        for num in nums:
            if _is_valid(board, row, col, num):
                board[row][col] = num
                if fill(pos + 1):
                    return True
                board[row][col] = 0
        return False

    if not fill(0):
        raise RuntimeError("backtracking failed to fill an empty board")
    return board


# ---------------------------------------------------------------------------
# Uniqueness
# ---------------------------------------------------------------------------


def _find_empty(board):
    for r in range(SIZE):
        for c in range(SIZE):
            if board[r][c] == 0:
                return r, c
    return None


def count_solutions(board, limit=2):
    """Count solutions up to `limit`. Returns as soon as limit is reached.

    The board is mutated while searching and restored before returning.
    """
    empty = _find_empty(board)
    if empty is None:
        return 1

    row, col = empty
    count = 0
    for num in range(1, SIZE + 1):
        if _is_valid(board, row, col, num):
            board[row][col] = num
            count += count_solutions(board, limit)
            board[row][col] = 0
            if count >= limit:
                return count
    return count


def has_unique_solution(board):
    test_board = copy.deepcopy(board)
    return count_solutions(test_board, limit=2) == 1


# ---------------------------------------------------------------------------
# Clue removal
# ---------------------------------------------------------------------------


def create_puzzle(solution, clues, rng=random):
    """Blank cells of `solution` in one random pass while the puzzle keeps a
    single solution, stopping once only `clues` filled cells are left.

    A cell whose removal would allow a second solution is restored and never
    retried, so the result can hold more clues than asked for.
    """
    puzzle = copy.deepcopy(solution)
    positions = list(CELLS)
    rng.shuffle(positions)

    remaining = TOTAL_CELLS
    for row, col in positions:
        if remaining <= clues:
            break
        backup = puzzle[row][col]
        puzzle[row][col] = 0
        if has_unique_solution(puzzle):
            remaining -= 1
        else:
            puzzle[row][col] = backup

    if remaining > clues:
        logger.warning("Clue removal stranded at %d clues (target %d)", remaining, clues)
    return puzzle


def given_mask(puzzle):
    return [[value != 0 for value in row] for row in puzzle]


def count_clues(puzzle):
    return sum(1 for row in puzzle for value in row if value != 0)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def board_to_key(board):
    return tuple(tuple(row) for row in board)


def load_existing_puzzles(filepath):
    if not os.path.exists(filepath):
        return {"puzzles": []}
    with open(filepath, "r", encoding="utf-8") as f:
        return json.load(f)


def save_puzzles(data, filepath):
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def get_existing_keys(data):
    keys = set()
    for entry in data["puzzles"]:
        keys.add(board_to_key(entry["puzzle"]))
    return keys


# ---------------------------------------------------------------------------
# Main generation loop
# ---------------------------------------------------------------------------


def generate_puzzles(count_per_level, filepath=OUTPUT_FILE, rng=random):
    data = load_existing_puzzles(filepath)
    existing_keys = get_existing_keys(data)
    next_id = max((p["id"] for p in data["puzzles"]), default=0) + 1

    total = count_per_level * len(DIFFICULTIES)
    generated = 0

    for difficulty in DIFFICULTIES:
        clues = clue_target("classic", difficulty)
        print(f"\n--- {difficulty.capitalize()} - {clues} clues ---")

        for _ in range(count_per_level):
            attempts = 0
            while True:
                attempts += 1
                solution = generate_full_board(rng)
                puzzle = create_puzzle(solution, clues, rng)
                key = board_to_key(puzzle)

                if key not in existing_keys:
                    existing_keys.add(key)
                    break

                if attempts > 100:
                    print(f"  Warning: took {attempts} attempts to avoid duplicate")

            entry = {
                "id": next_id,
                "mode": "classic",
                "difficulty": difficulty,
                "clues": count_clues(puzzle),
                "puzzle": puzzle,
                "solution": solution,
            }
            data["puzzles"].append(entry)
            next_id += 1
            generated += 1
            print(f"  [{generated}/{total}] Generated puzzle #{entry['id']} "
                  f"({entry['clues']} clues)")

    save_puzzles(data, filepath)
    print(f"\nDone! {generated} puzzles saved to {filepath}")
    print(f"Total puzzles in file: {len(data['puzzles'])}")
    return data


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate Sudoku puzzles")
    parser.add_argument(
        "--count",
        type=int,
        required=True,
        help="Number of puzzles to generate per difficulty level",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--output", default=OUTPUT_FILE, help="Output JSON file")
    args = parser.parse_args(argv)

    if args.count < 1:
        print("Error: --count must be at least 1")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    print(f"Generating {args.count} puzzle(s) per level x {len(DIFFICULTIES)} levels "
          f"= {args.count * len(DIFFICULTIES)} total")
    start = time.time()
    generate_puzzles(args.count, args.output, random.Random(args.seed))
    elapsed = time.time() - start
    print(f"Time elapsed: {elapsed:.1f}s")


if __name__ == "__main__":
    main()
