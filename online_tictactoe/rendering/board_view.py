"""PyGame board window: a Presentation backed by a real display.

Draws the 3x3 board and a status bar, turns clicks into local moves and
asks the replay question. Session notifications may arrive on the
remote-listener thread; they are queued and applied by the main loop,
which is the only thread that touches PyGame.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Queue

import pygame

from online_tictactoe.config import (
    BOARD_SIZE,
    CELL_SIZE,
    COLOR_BG,
    COLOR_GRID,
    COLOR_MARK_FIRST,
    COLOR_MARK_SECOND,
    COLOR_OVERLAY,
    COLOR_STATUS_BG,
    COLOR_STATUS_TEXT,
    COLOR_WIN_LINE,
    FPS,
    GRID_LINE_WIDTH,
    MARK_LINE_WIDTH,
    MARK_PADDING,
    NUM_CELLS,
    STATUS_BAR_HEIGHT,
)
from online_tictactoe.game import GameSession
from online_tictactoe.input.handler import InputHandler
from online_tictactoe.networking.protocol import RendezvousError, Role
from online_tictactoe.rendering.presentation import Presentation
from online_tictactoe.simulation.state import Mark, Outcome

logger = logging.getLogger(__name__)

MARK_COLORS = {Mark.FIRST: COLOR_MARK_FIRST, Mark.SECOND: COLOR_MARK_SECOND}
_MAX_STATUS_CHARS = 30


class _ReplayRequest:
    """A replay question posted by the listener thread to the main loop."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.answer = False


class BoardWindow(Presentation):
    """Draws the board and feeds clicks to a GameSession."""

    def __init__(self, screen: pygame.Surface) -> None:
        self._screen = screen
        self._clock = pygame.time.Clock()
        self._font = pygame.font.SysFont("monospace", 16)
        self._large_font = pygame.font.SysFont("monospace", 22, bold=True)
        self._input = InputHandler(CELL_SIZE)
        self._main_thread = threading.current_thread()

        # Notifications from any thread, applied by the main loop
        self._updates: Queue = Queue()

        self._session: GameSession | None = None
        self._cells: list[Mark | None] = [None] * NUM_CELLS
        self._outcome: Outcome | None = None
        self._banner: str | None = None  # set once the session has ended
        self._exit_status = 0
        self._running = True

    @property
    def exit_status(self) -> int:
        return self._exit_status

    # ---- Presentation ----

    def on_local_move_accepted(self, cell: int) -> None:
        self._updates.put(("local_move", cell))

    def on_remote_move_applied(self, cell: int) -> None:
        self._updates.put(("remote_move", cell))

    def on_outcome(self, outcome: Outcome) -> None:
        self._updates.put(("outcome", outcome))

    def on_disconnected(self) -> None:
        self._updates.put(("banner", "Counterpart left the game"))

    def on_fatal_error(self, reason: str) -> None:
        self._updates.put(("fatal_error", reason))

    def on_closed(self) -> None:
        self._updates.put(("banner", "Thanks for playing"))

    def confirm_replay(self) -> bool:
        if threading.current_thread() is self._main_thread:
            return self._ask_replay()
        request = _ReplayRequest()
        self._updates.put(("replay", request))
        request.done.wait()
        return request.answer

    # ---- Connecting ----

    def connect(
        self, address: str, port: int, timeout: float | None = None,
    ) -> GameSession | None:
        """Rendezvous on a worker thread while showing a waiting screen.

        Returns None if the window was closed or the rendezvous failed.
        """
        result: dict[str, GameSession] = {}

        def _worker() -> None:
            try:
                result["session"] = GameSession.connect(
                    address, port, self, timeout=timeout,
                )
            except RendezvousError:
                pass  # already reported through on_fatal_error

        worker = threading.Thread(target=_worker, name="rendezvous", daemon=True)
        worker.start()
        while worker.is_alive():
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    return None
            self._draw_connecting(address, port)
            self._clock.tick(FPS)

        session = result.get("session")
        if session is None:
            self._drain_updates()
            self._wait_for_dismiss()
            return None
        self._attach(session)
        return session

    def _attach(self, session: GameSession) -> None:
        self._session = session
        order = "former" if session.role is Role.ACCEPTOR else "latter"
        pygame.display.set_caption(
            f"OnlineTicTacToe ({order}) {session.local_mark.value}"
        )

    # ---- Main loop ----

    def run(self, session: GameSession) -> int:
        """Play until the session ends and the user dismisses it.

        Returns the process exit status (non-zero after a fatal error).
        """
        if self._session is not session:
            self._attach(session)
        session.start()

        while self._running:
            events = pygame.event.get()
            for event in events:
                if event.type == pygame.QUIT:
                    self._running = False
                elif event.type == pygame.KEYDOWN and (
                    event.key == pygame.K_ESCAPE or self._banner is not None
                ):
                    self._running = False
            if not self._running:
                break

            # Zero timeout: never blocks the frame, False once closed
            if self._banner is None and session.turns.wait_for_local_turn(timeout=0):
                for cell in self._input.process_events(events):
                    if not session.submit_local_move(cell):
                        logger.debug("Cell %d not accepted", cell)

            self._drain_updates()
            self._draw()
            pygame.display.flip()
            self._clock.tick(FPS)

        session.close()
        self._cancel_pending_requests()
        return self._exit_status

    def _drain_updates(self) -> None:
        while True:
            try:
                kind, value = self._updates.get_nowait()
            except Empty:
                return
            if kind == "local_move":
                self._cells[value] = self._session.local_mark
            elif kind == "remote_move":
                self._cells[value] = self._session.remote_mark
            elif kind == "outcome":
                if value.is_over:
                    self._outcome = value
            elif kind == "banner":
                self._banner = value
            elif kind == "fatal_error":
                self._banner = f"Error: {value}"
                self._exit_status = 1
            elif kind == "replay":
                value.answer = self._ask_replay()
                value.done.set()

    def _cancel_pending_requests(self) -> None:
        """Decline any replay question nobody will answer any more."""
        while True:
            try:
                kind, value = self._updates.get_nowait()
            except Empty:
                return
            if kind == "replay":
                value.done.set()

    def _ask_replay(self) -> bool:
        """Modal "play again?" prompt on the main thread."""
        self._drain_updates()
        while True:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self._running = False
                    return False
                if event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_y:
                        self._cells = [None] * NUM_CELLS
                        self._outcome = None
                        return True
                    if event.key in (pygame.K_n, pygame.K_ESCAPE):
                        return False
            self._draw()
            self._draw_overlay("Play again? (Y/N)")
            pygame.display.flip()
            self._clock.tick(FPS)

    def _wait_for_dismiss(self) -> None:
        while True:
            for event in pygame.event.get():
                if event.type in (pygame.QUIT, pygame.KEYDOWN):
                    return
            self._screen.fill(COLOR_STATUS_BG)
            self._draw_status(self._banner or "")
            pygame.display.flip()
            self._clock.tick(FPS)

    # ---- Drawing ----

    def _draw(self) -> None:
        self._screen.fill(COLOR_BG)
        self._draw_grid()
        for cell, mark in enumerate(self._cells):
            if mark is not None:
                self._draw_mark(cell, mark)
        if self._outcome is not None and self._outcome.line is not None:
            self._draw_win_line(self._outcome.line)
        self._draw_status(self._status_text())

    def _status_text(self) -> str:
        if self._banner is not None:
            return self._banner
        if self._outcome is not None:
            return self._outcome.describe()
        if self._session is not None and self._session.turns.is_local_turn:
            return f"Your turn ({self._session.local_mark.value})"
        return "Waiting for opponent..."

    def _draw_grid(self) -> None:
        size = BOARD_SIZE * CELL_SIZE
        for i in range(1, BOARD_SIZE):
            offset = i * CELL_SIZE
            pygame.draw.line(
                self._screen, COLOR_GRID, (offset, 0), (offset, size), GRID_LINE_WIDTH,
            )
            pygame.draw.line(
                self._screen, COLOR_GRID, (0, offset), (size, offset), GRID_LINE_WIDTH,
            )

    def _draw_mark(self, cell: int, mark: Mark) -> None:
        rect = self._input.cell_rect(cell).inflate(-2 * MARK_PADDING, -2 * MARK_PADDING)
        color = MARK_COLORS[mark]
        if mark is Mark.FIRST:
            pygame.draw.circle(
                self._screen, color, rect.center, rect.width // 2, MARK_LINE_WIDTH,
            )
        else:
            pygame.draw.line(self._screen, color, rect.topleft, rect.bottomright, MARK_LINE_WIDTH)
            pygame.draw.line(self._screen, color, rect.topright, rect.bottomleft, MARK_LINE_WIDTH)

    def _draw_win_line(self, line: tuple[int, int, int]) -> None:
        start = self._input.cell_rect(line[0]).center
        end = self._input.cell_rect(line[2]).center
        pygame.draw.line(self._screen, COLOR_WIN_LINE, start, end, MARK_LINE_WIDTH)

    def _draw_status(self, text: str) -> None:
        sw = self._screen.get_width()
        sh = self._screen.get_height()
        bar = pygame.Rect(0, sh - STATUS_BAR_HEIGHT, sw, STATUS_BAR_HEIGHT)
        pygame.draw.rect(self._screen, COLOR_STATUS_BG, bar)
        surf = self._font.render(text[:_MAX_STATUS_CHARS], True, COLOR_STATUS_TEXT)
        self._screen.blit(surf, surf.get_rect(center=bar.center))

    def _draw_overlay(self, text: str) -> None:
        overlay = pygame.Surface(self._screen.get_size(), pygame.SRCALPHA)
        overlay.fill(COLOR_OVERLAY)
        self._screen.blit(overlay, (0, 0))
        surf = self._large_font.render(text, True, COLOR_STATUS_TEXT)
        self._screen.blit(surf, surf.get_rect(center=self._screen.get_rect().center))

    def _draw_connecting(self, address: str, port: int) -> None:
        """Draw the connecting/waiting screen."""
        sw = self._screen.get_width()
        sh = self._screen.get_height()
        self._screen.fill(COLOR_STATUS_BG)
        text = self._font.render("Waiting for opponent...", True, COLOR_STATUS_TEXT)
        self._screen.blit(text, text.get_rect(center=(sw // 2, sh // 2)))
        info = self._font.render(f"{address}:{port}", True, (150, 150, 150))
        self._screen.blit(info, info.get_rect(center=(sw // 2, sh // 2 + 30)))
        pygame.display.flip()
