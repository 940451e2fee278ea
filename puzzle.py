import logging
import random
import time

from generate import (
    clue_target,
    count_clues,
    create_puzzle,
    empty_board,
    generate_full_board,
    given_mask,
)
from generate_killer import build_cage_maps, empty_cage_edges, generate_cages

logger = logging.getLogger(__name__)


def generate_puzzle(mode, difficulty, rng=random):
    """Build everything a new game needs for `mode` and `difficulty`.

    Classic puzzles come back with an empty cage list, all-zero id and label
    maps, and edge flags that are all False.
    """
    clues = clue_target(mode, difficulty)
    t0 = time.time()

    solution = generate_full_board(rng)
    puzzle = create_puzzle(solution, clues, rng)

    if mode == "killer":
        cages = generate_cages(solution, rng)
        cage_map, cage_edges, cage_labels = build_cage_maps(cages)
    else:
        cages = []
        cage_map, cage_edges, cage_labels = empty_board(), empty_cage_edges(), empty_board()

    logger.debug("Generated %s/%s puzzle with %d clues in %.2fs",
                 mode, difficulty, count_clues(puzzle), time.time() - t0)
    return {
        "mode": mode,
        "difficulty": difficulty,
        "solution": solution,
        "puzzle": puzzle,
        "given": given_mask(puzzle),
        "cages": cages,
        "cage_map": cage_map,
        "cage_edges": cage_edges,
        "cage_labels": cage_labels,
    }
