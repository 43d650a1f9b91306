"""Input handler: converts PyGame events to cell indices.

Left click: pick the cell under the cursor. Clicks outside the board
(e.g. on the status bar) are ignored.
"""

from __future__ import annotations

import pygame

from online_tictactoe.config import BOARD_SIZE, CELL_SIZE


class InputHandler:
    """Converts PyGame mouse events into board cell indices."""

    def __init__(self, cell_size: int = CELL_SIZE, origin: tuple[int, int] = (0, 0)) -> None:
        self._cell_size = cell_size
        self._origin = origin

    def cell_at(self, pos: tuple[int, int]) -> int | None:
        """Return the cell index under a screen position, or None."""
        col = (pos[0] - self._origin[0]) // self._cell_size
        row = (pos[1] - self._origin[1]) // self._cell_size
        if not (0 <= col < BOARD_SIZE and 0 <= row < BOARD_SIZE):
            return None
        return row * BOARD_SIZE + col

    def cell_rect(self, cell: int) -> pygame.Rect:
        """Screen rectangle covered by a cell."""
        row, col = divmod(cell, BOARD_SIZE)
        return pygame.Rect(
            self._origin[0] + col * self._cell_size,
            self._origin[1] + row * self._cell_size,
            self._cell_size,
            self._cell_size,
        )

    def process_events(self, events: list[pygame.event.Event]) -> list[int]:
        """Return the cells clicked in this batch of events, in order."""
        cells: list[int] = []
        for event in events:
            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                cell = self.cell_at(event.pos)
                if cell is not None:
                    cells.append(cell)
        return cells
