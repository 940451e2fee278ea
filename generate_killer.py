import argparse
import logging
import random
import sys
import time

from generate import (
    CELLS,
    DIFFICULTIES,
    SIZE,
    board_to_key,
    clue_target,
    count_clues,
    create_puzzle,
    empty_board,
    generate_full_board,
    load_existing_puzzles,
    save_puzzles,
)

# Requested cage sizes; repeats weight the draw towards 2 and 3.
CAGE_SIZE_POOL = (1, 2, 2, 3, 3, 4)

OUTPUT_FILE = "sudoku_killer.json"

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Grid adjacency
# ---------------------------------------------------------------------------

_DIRS = [(-1, 0), (1, 0), (0, -1), (0, 1)]


def _cell_neighbors(r, c):
    out = []
    for dr, dc in _DIRS:
        nr, nc = r + dr, c + dc
        if 0 <= nr < SIZE and 0 <= nc < SIZE:
            out.append((nr, nc))
    return tuple(out)


_NBR = {cell: _cell_neighbors(*cell) for cell in CELLS}

# ---------------------------------------------------------------------------
# Cage generation (random region growth)
# ---------------------------------------------------------------------------


def generate_cages(solution, rng=random):
    """Partition the board into small connected cages.

    Each cage grows from a random unclaimed seed towards a size drawn from
    CAGE_SIZE_POOL, one random unclaimed neighbour at a time, and stops early
    when it is walled in. Cages are returned in creation order as
    ``{"cells": [(r, c), ...], "sum": int}`` with the seed first.
    """
    remaining = set(CELLS)
    cages = []

    while remaining:
        seed = rng.choice(sorted(remaining))
        target_size = rng.choice(CAGE_SIZE_POOL)

        cells = [seed]
        remaining.discard(seed)

        while len(cells) < target_size:
            frontier = []
            for cell in cells:
                for nb in _NBR[cell]:
                    if nb in remaining and nb not in frontier:
                        frontier.append(nb)
            if not frontier:
                break
            nxt = rng.choice(frontier)
            remaining.discard(nxt)
            cells.append(nxt)

        cage_sum = sum(solution[r][c] for r, c in cells)
        cages.append({"cells": cells, "sum": cage_sum})

    logger.debug("Partitioned board into %d cages", len(cages))
    return cages


def empty_cage_edges():
    return [[{"top": False, "right": False, "bottom": False, "left": False}
             for _ in range(SIZE)] for _ in range(SIZE)]


def build_cage_maps(cages):
    """Return (cage_map, cage_edges, cage_labels) for a cage list.

    cage_map holds 1-based cage ids. cage_edges marks the sides of each cell
    that border another cage or the edge of the board. cage_labels carries the
    cage sum on the top-left cell of each cage and 0 elsewhere.
    """
    cage_map = empty_board()
    cage_labels = empty_board()

    for index, cage in enumerate(cages, start=1):
        for r, c in cage["cells"]:
            cage_map[r][c] = index
        top_r, top_c = min(tuple(cell) for cell in cage["cells"])
        cage_labels[top_r][top_c] = cage["sum"]

    cage_edges = []
    for r in range(SIZE):
        row = []
        for c in range(SIZE):
            cid = cage_map[r][c]
            row.append({
                "top": r == 0 or cage_map[r - 1][c] != cid,
                "right": c == SIZE - 1 or cage_map[r][c + 1] != cid,
                "bottom": r == SIZE - 1 or cage_map[r + 1][c] != cid,
                "left": c == 0 or cage_map[r][c - 1] != cid,
            })
        cage_edges.append(row)

    return cage_map, cage_edges, cage_labels


def cage_issues(cages, board):
    """Ids (1-based) of cages that are over their sum, full with the wrong
    sum, or holding the same digit twice."""
    issues = set()
    for index, cage in enumerate(cages, start=1):
        total = 0
        empty = 0
        seen = set()
        has_dup = False
        for r, c in cage["cells"]:
            value = board[r][c]
            if value == 0:
                empty += 1
                continue
            total += value
            if value in seen:
                has_dup = True
            seen.add(value)

        if total > cage["sum"] or (empty == 0 and total != cage["sum"]) or has_dup:
            issues.add(index)
    return issues


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def cages_to_key(cages):
    parts = []
    for cage in cages:
        cells_tuple = tuple(tuple(c) for c in sorted(cage["cells"]))
        parts.append((cells_tuple, cage["sum"]))
    return tuple(sorted(parts))


def get_existing_keys(data):
    keys = set()
    for entry in data["puzzles"]:
        keys.add((board_to_key(entry["puzzle"]), cages_to_key(entry["cages"])))
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
        clues = clue_target("killer", difficulty)
        print(f"\n--- {difficulty.capitalize()} - {clues} clues ---")

        for _ in range(count_per_level):
            t0 = time.time()
            attempts = 0
            while True:
                attempts += 1
                solution = generate_full_board(rng)
                puzzle = create_puzzle(solution, clues, rng)
                cages = generate_cages(solution, rng)

                key = (board_to_key(puzzle), cages_to_key(cages))
                if key not in existing_keys:
                    existing_keys.add(key)
                    break

            entry = {
                "id": next_id,
                "mode": "killer",
                "difficulty": difficulty,
                "clues": count_clues(puzzle),
                "puzzle": puzzle,
                "cages": [{"cells": [list(cell) for cell in cage["cells"]],
                           "sum": cage["sum"]} for cage in cages],
                "solution": solution,
            }
            data["puzzles"].append(entry)
            next_id += 1
            generated += 1
            elapsed = time.time() - t0
            n_cages = len(cages)
            avg_sz = len(CELLS) / n_cages
            print(f"  [{generated}/{total}] #{entry['id']} "
                  f"({entry['clues']} clues, {n_cages} cages, avg {avg_sz:.1f}, "
                  f"{elapsed:.1f}s, {attempts} attempts)")

    save_puzzles(data, filepath)
    print(f"\nDone! {generated} puzzles saved to {filepath}")
    print(f"Total puzzles in file: {len(data['puzzles'])}")
    return data


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate Killer Sudoku puzzles")
    parser.add_argument(
        "--count", type=int, required=True,
        help="Number of puzzles to generate per difficulty level",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--output", default=OUTPUT_FILE, help="Output JSON file")
    args = parser.parse_args(argv)
    if args.count < 1:
        print("Error: --count must be at least 1")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    print(
        f"Generating {args.count} puzzle(s) per level x "
        f"{len(DIFFICULTIES)} levels "
        f"= {args.count * len(DIFFICULTIES)} total"
    )
    start = time.time()
    generate_puzzles(args.count, args.output, random.Random(args.seed))
    print(f"Total time: {time.time() - start:.1f}s")


if __name__ == "__main__":
    main()
