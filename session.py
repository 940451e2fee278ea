import copy
import logging
import random
import time

from generate import (
    BOX,
    CELLS,
    DIFFICULTIES,
    MODES,
    SIZE,
    check_cell,
    check_digit,
    empty_board,
    is_valid,
    peers,
)
from generate_killer import build_cage_maps, cage_issues, empty_cage_edges
from puzzle import generate_puzzle
from stats import record_solve, reset_streak
from storage import SETTINGS_VERSION, MemoryStore, load_settings, load_stats, save_settings, save_stats

GENERATING = "generating"
SOLVING = "solving"
SOLVED = "solved"
OUT_OF_MISTAKES = "out_of_mistakes"

logger = logging.getLogger(__name__)


class SudokuSession:
    """Live state of one player working through a puzzle.

    Moves come in through select_cell / input_number / clear_selected /
    toggle_note / give_hint. Once the session is solved or out of mistakes,
    further moves are ignored until new_game().
    """

    def __init__(self, store=None, mode="classic", difficulty="easy", rng=random,
                 clock=time.monotonic, puzzle=None):
        self.store = store if store is not None else MemoryStore()
        self.rng = rng
        self.clock = clock

        settings = load_settings(self.store)
        self.auto_check = settings["auto_check"]
        self.mistake_limit = settings["mistake_limit"]
        self.note_mode = False
        self.stats = load_stats(self.store)

        self.mode = mode
        self.difficulty = difficulty
        self.state = GENERATING
        self.selected = None
        self.mistakes = 0
        self.hints_used = 0
        self._start_time = 0.0
        self._end_time = None

        self.solution = empty_board()
        self.puzzle = empty_board()
        self.board = empty_board()
        self.given = [[False] * SIZE for _ in range(SIZE)]
        self.hinted = [[False] * SIZE for _ in range(SIZE)]
        self.notes = [[set() for _ in range(SIZE)] for _ in range(SIZE)]
        self.cages = []
        self.cage_map = empty_board()
        self.cage_edges = empty_cage_edges()
        self.cage_labels = empty_board()

        if puzzle is not None:
            self.load_puzzle(puzzle)
        else:
            self.new_game()

    @property
    def solved(self):
        return self.state == SOLVED

    @property
    def game_over(self):
        return self.state == OUT_OF_MISTAKES

    @property
    def finished(self):
        return self.state in (SOLVED, OUT_OF_MISTAKES)

    # -----------------------------------------------------------------------
    # Game lifecycle
    # -----------------------------------------------------------------------

    def new_game(self, mode=None, difficulty=None):
        if mode is not None and mode not in MODES:
            raise ValueError(f"unknown mode: {mode!r}")
        if difficulty is not None and difficulty not in DIFFICULTIES:
            raise ValueError(f"unknown difficulty: {difficulty!r}")

        self._abandon()
        if mode is not None:
            self.mode = mode
        if difficulty is not None:
            self.difficulty = difficulty

        self.state = GENERATING
        self.load_puzzle(generate_puzzle(self.mode, self.difficulty, self.rng))

    def load_puzzle(self, data):
        """Start solving a puzzle as produced by generate_puzzle() or stored in a
        collection written by the generator scripts."""
        if data["mode"] not in MODES:
            raise ValueError(f"unknown mode: {data['mode']!r}")
        if data["difficulty"] not in DIFFICULTIES:
            raise ValueError(f"unknown difficulty: {data['difficulty']!r}")

        self._abandon()
        self.mode = data["mode"]
        self.difficulty = data["difficulty"]
        self.solution = copy.deepcopy(data["solution"])
        self.puzzle = copy.deepcopy(data["puzzle"])
        self.board = copy.deepcopy(data["puzzle"])
        self.given = [[value != 0 for value in row] for row in self.puzzle]
        self.hinted = [[False] * SIZE for _ in range(SIZE)]
        self.notes = [[set() for _ in range(SIZE)] for _ in range(SIZE)]
        self.cages = copy.deepcopy(data.get("cages") or [])
        if self.cages:
            self.cage_map, self.cage_edges, self.cage_labels = build_cage_maps(self.cages)
        else:
            self.cage_map, self.cage_edges, self.cage_labels = empty_board(), empty_cage_edges(), empty_board()

        self.selected = None
        self.mistakes = 0
        self.hints_used = 0
        self._start_time = self.clock()
        self._end_time = None
        self.state = SOLVING
        logger.debug("Started %s/%s puzzle", self.mode, self.difficulty)

    def _abandon(self):
        if self.state != SOLVING or not self.has_user_progress():
            return
        logger.info("Abandoning %s puzzle in progress, streak reset", self.mode)
        reset_streak(self.stats, self.mode)
        save_stats(self.store, self.stats)

    def has_user_progress(self):
        for r, c in CELLS:
            if self.given[r][c]:
                continue
            if self.board[r][c] != 0 or self.notes[r][c]:
                return True
        return False

    def elapsed_seconds(self):
        end = self._end_time if self._end_time is not None else self.clock()
        return int(end - self._start_time)

    def _stop_timer(self):
        self._end_time = self.clock()

    # -----------------------------------------------------------------------
    # Settings
    # -----------------------------------------------------------------------

    def _save_settings(self):
        save_settings(self.store, {
            "version": SETTINGS_VERSION,
            "auto_check": self.auto_check,
            "mistake_limit": self.mistake_limit,
        })

    def toggle_note_mode(self):
        self.note_mode = not self.note_mode

    def toggle_auto_check(self):
        self.auto_check = not self.auto_check
        self._save_settings()

    def set_mistake_limit(self, limit):
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise ValueError(f"mistake limit must be a non-negative integer, got {limit!r}")
        self.mistake_limit = limit
        self._save_settings()

    # -----------------------------------------------------------------------
    # Player input
    # -----------------------------------------------------------------------

    def select_cell(self, row, col):
        check_cell(row, col)
        self.selected = (row, col)

    def move_selection(self, dr, dc):
        if self.selected is None:
            self.select_cell(0, 0)
            return
        r, c = self.selected
        self.select_cell((r + dr) % SIZE, (c + dc) % SIZE)

    def _clear_notes_in_peers(self, row, col, value):
        for r, c in peers(row, col):
            self.notes[r][c].discard(value)

    def toggle_note(self, value):
        check_digit(value)
        if self.finished or self.selected is None:
            return
        r, c = self.selected
        if self.given[r][c] or self.board[r][c] != 0:
            return
        self.notes[r][c] ^= {value}

    def input_number(self, value):
        check_digit(value)
        if self.finished or self.selected is None:
            return
        r, c = self.selected
        if self.given[r][c]:
            return
        if self.note_mode:
            self.toggle_note(value)
            return
        if self.board[r][c] == value:
            return

        self.board[r][c] = value
        self.notes[r][c].clear()
        self._clear_notes_in_peers(r, c, value)
        if value != self.solution[r][c] and self.auto_check:
            self._register_mistake()
        self._check_solved()

    def clear_selected(self):
        if self.finished or self.selected is None:
            return
        r, c = self.selected
        if self.given[r][c]:
            return
        if self.board[r][c] == 0 and not self.notes[r][c]:
            return
        self.board[r][c] = 0
        self.notes[r][c].clear()

    def give_hint(self):
        if self.finished:
            return None
        empties = [(r, c) for r, c in CELLS if self.board[r][c] == 0]
        if not empties:
            return None
        r, c = self.rng.choice(empties)
        value = self.solution[r][c]
        self.board[r][c] = value
        self.given[r][c] = True
        self.hinted[r][c] = True
        self.notes[r][c].clear()
        self._clear_notes_in_peers(r, c, value)
        self.hints_used += 1
        self._check_solved()
        return r, c

    # -----------------------------------------------------------------------
    # Terminal transitions
    # -----------------------------------------------------------------------

    def _register_mistake(self):
        self.mistakes += 1
        if self.mistake_limit > 0 and self.mistakes >= self.mistake_limit:
            self.state = OUT_OF_MISTAKES
            self._stop_timer()
            logger.info("Mistake limit %d reached", self.mistake_limit)
            reset_streak(self.stats, self.mode)
            save_stats(self.store, self.stats)

    def _check_solved(self):
        if self.state != SOLVING:
            return
        if self.board != self.solution:
            return
        self.state = SOLVED
        self._stop_timer()
        elapsed = self.elapsed_seconds()
        logger.info("Solved %s/%s in %ds", self.mode, self.difficulty, elapsed)
        record_solve(self.stats, self.mode, self.difficulty, elapsed, self.mistakes)
        save_stats(self.store, self.stats)

    # -----------------------------------------------------------------------
    # Board inspection
    # -----------------------------------------------------------------------

    def cage_issues(self):
        if self.mode != "killer":
            return set()
        return cage_issues(self.cages, self.board)

    def highlights(self):
        """Per-cell sets of highlight flags for the current board."""
        selected = self.selected
        selected_value = self.board[selected[0]][selected[1]] if selected else 0
        show_errors = self.auto_check
        bad_cages = self.cage_issues() if show_errors else set()
        killer = self.mode == "killer"

        result = []
        for r in range(SIZE):
            row = []
            for c in range(SIZE):
                flags = set()
                value = self.board[r][c]
                if selected is not None:
                    sr, sc = selected
                    if (r, c) == selected:
                        flags.add("selected")
                    else:
                        if r == sr or c == sc or (r // BOX == sr // BOX and c // BOX == sc // BOX):
                            flags.add("peer")
                        if selected_value != 0 and value == selected_value:
                            flags.add("same_value")
                        if killer and self.cage_map[r][c] == self.cage_map[sr][sc]:
                            flags.add("same_cage")
                if show_errors and value != 0:
                    if not is_valid(self.board, r, c, value):
                        flags.add("conflict")
                    if value != self.solution[r][c]:
                        flags.add("error")
                if killer and self.cage_map[r][c] in bad_cages:
                    flags.add("cage_error")
                row.append(flags)
            result.append(row)
        return result
