"""Board state and outcome evaluation.

GameState is the single source of truth for the board. Both peers keep an
identical GameState by applying the same moves in the same order. If they
ever diverge, the session is desynced.

Cells are numbered row by row:

    0 | 1 | 2
    3 | 4 | 5
    6 | 7 | 8
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from online_tictactoe.config import NUM_CELLS


class Mark(Enum):
    """A player's symbol. FIRST always opens the game."""
    FIRST = "O"
    SECOND = "X"

    @property
    def other(self) -> Mark:
        return Mark.SECOND if self is Mark.FIRST else Mark.FIRST


class OutcomeKind(Enum):
    IN_PROGRESS = auto()
    WIN = auto()
    TIE = auto()


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of evaluating a board.

    Attributes:
        kind: IN_PROGRESS, WIN or TIE.
        winner: The winning mark (WIN only).
        line: The three cells that completed the win (WIN only).
    """
    kind: OutcomeKind
    winner: Mark | None = None
    line: tuple[int, int, int] | None = None

    @property
    def is_over(self) -> bool:
        return self.kind is not OutcomeKind.IN_PROGRESS

    def describe(self) -> str:
        """Human-readable summary, e.g. "O Won!" or "Tie!!"."""
        if self.kind is OutcomeKind.WIN:
            return f"{self.winner.value} Won!"
        if self.kind is OutcomeKind.TIE:
            return "Tie!!"
        return "In progress"


IN_PROGRESS = Outcome(OutcomeKind.IN_PROGRESS)
TIE = Outcome(OutcomeKind.TIE)

# Evaluation order: diagonals, rows, columns.
LINES: tuple[tuple[int, int, int], ...] = (
    (0, 4, 8), (2, 4, 6),
    (0, 1, 2), (3, 4, 5), (6, 7, 8),
    (0, 3, 6), (1, 4, 7), (2, 5, 8),
)


class GameState:
    """The 3x3 board.

    Attributes:
        cells: One entry per cell, None when empty.
        move_count: Number of moves applied since the last reset.
    """

    def __init__(self) -> None:
        self.cells: list[Mark | None] = [None] * NUM_CELLS
        self.move_count: int = 0

    def apply_move(self, cell: int, mark: Mark) -> bool:
        """Mark a cell. Returns False (and changes nothing) if it is taken.

        Raises ValueError for an index outside the board.
        """
        if not 0 <= cell < NUM_CELLS:
            raise ValueError(f"Cell index out of range: {cell}")
        if not self.is_empty(cell):
            return False
        self.cells[cell] = mark
        self.move_count += 1
        return True

    def evaluate(self) -> Outcome:
        """Derive the outcome from the current board."""
        for line in LINES:
            a, b, c = line
            mark = self.cells[a]
            if mark is not None and mark is self.cells[b] and mark is self.cells[c]:
                return Outcome(OutcomeKind.WIN, winner=mark, line=line)
        if self.is_full:
            return TIE
        return IN_PROGRESS

    def reset(self) -> None:
        """Empty the board for a replay."""
        self.cells = [None] * NUM_CELLS
        self.move_count = 0

    def is_empty(self, cell: int) -> bool:
        return self.cells[cell] is None

    def empty_cells(self) -> list[int]:
        return [i for i, mark in enumerate(self.cells) if mark is None]

    @property
    def is_full(self) -> bool:
        return not self.empty_cells()
