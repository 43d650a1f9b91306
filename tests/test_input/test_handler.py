"""Tests for InputHandler: click to cell conversion."""

import pygame

from online_tictactoe.config import CELL_SIZE
from online_tictactoe.input.handler import InputHandler


def click(x: int, y: int, button: int = 1) -> pygame.event.Event:
    return pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=button, pos=(x, y))


class TestCellAt:
    def test_corners(self):
        handler = InputHandler(cell_size=100)
        assert handler.cell_at((0, 0)) == 0
        assert handler.cell_at((299, 0)) == 2
        assert handler.cell_at((0, 299)) == 6
        assert handler.cell_at((299, 299)) == 8

    def test_center(self):
        handler = InputHandler(cell_size=100)
        assert handler.cell_at((150, 150)) == 4

    def test_row_major_numbering(self):
        handler = InputHandler(cell_size=100)
        assert handler.cell_at((250, 150)) == 5
        assert handler.cell_at((50, 250)) == 6

    def test_outside_board(self):
        handler = InputHandler(cell_size=100)
        assert handler.cell_at((300, 50)) is None
        assert handler.cell_at((50, 320)) is None  # status bar
        assert handler.cell_at((-1, 50)) is None

    def test_origin_offset(self):
        handler = InputHandler(cell_size=50, origin=(10, 20))
        assert handler.cell_at((10, 20)) == 0
        assert handler.cell_at((9, 20)) is None
        assert handler.cell_at((10 + 149, 20 + 149)) == 8

    def test_default_cell_size(self):
        handler = InputHandler()
        assert handler.cell_at((CELL_SIZE + 1, 0)) == 1


class TestCellRect:
    def test_rect_matches_cell_at(self):
        handler = InputHandler(cell_size=100)
        for cell in range(9):
            rect = handler.cell_rect(cell)
            assert rect.size == (100, 100)
            assert handler.cell_at(rect.center) == cell
            assert handler.cell_at(rect.topleft) == cell


class TestProcessEvents:
    def test_left_clicks_become_cells(self):
        handler = InputHandler(cell_size=100)
        events = [click(50, 50), click(250, 250)]
        assert handler.process_events(events) == [0, 8]

    def test_other_buttons_ignored(self):
        handler = InputHandler(cell_size=100)
        assert handler.process_events([click(50, 50, button=3)]) == []

    def test_other_events_ignored(self):
        handler = InputHandler(cell_size=100)
        events = [
            pygame.event.Event(pygame.MOUSEMOTION, pos=(50, 50), rel=(1, 1), buttons=(0, 0, 0)),
            pygame.event.Event(pygame.KEYDOWN, key=pygame.K_y),
            click(50, 320),
        ]
        assert handler.process_events(events) == []
