"""Tests for BoardWindow, driven headlessly through the dummy SDL driver."""

import socket
import threading
import time

import pygame
import pytest

from online_tictactoe.config import CELL_SIZE, WINDOW_HEIGHT, WINDOW_WIDTH
from online_tictactoe.game import GameSession
from online_tictactoe.input.handler import InputHandler
from online_tictactoe.networking.channel import MessageStream
from online_tictactoe.networking.protocol import PeerDisconnectedError, Role
from online_tictactoe.rendering.board_view import BoardWindow
from online_tictactoe.simulation.state import Mark

TIMEOUT = 5.0


# --- Helpers ---

class StopAfter:
    """Clock stand-in that ends the main loop after a number of frames."""

    def __init__(self, frames: int) -> None:
        self.frames = frames

    def tick(self, fps: int = 0) -> int:
        self.frames -= 1
        if self.frames == 0:
            pygame.event.post(pygame.event.Event(pygame.QUIT))
        return 0


def click_cell(cell: int) -> None:
    pos = InputHandler(CELL_SIZE).cell_rect(cell).center
    pygame.event.post(pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=pos))


def press(key: int) -> None:
    pygame.event.post(pygame.event.Event(pygame.KEYDOWN, key=key))


def wait_until(predicate, timeout: float = TIMEOUT) -> bool:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() >= deadline:
            return False
        time.sleep(0.01)
    return True


def ask_in_background(window: BoardWindow) -> tuple[threading.Thread, list[bool]]:
    """Call confirm_replay from another thread, as the listener does."""
    answers: list[bool] = []
    worker = threading.Thread(target=lambda: answers.append(window.confirm_replay()))
    worker.start()
    assert wait_until(lambda: not window._updates.empty())
    return worker, answers


# --- Fixtures ---

@pytest.fixture
def window(monkeypatch):
    monkeypatch.setenv("SDL_VIDEODRIVER", "dummy")
    pygame.display.init()
    pygame.font.init()
    screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
    pygame.event.clear()
    yield BoardWindow(screen)
    pygame.font.quit()
    pygame.display.quit()


@pytest.fixture
def attach(window):
    """Wire the window to a session whose counterpart is a bare stream."""
    opened: list[tuple[GameSession, MessageStream]] = []

    def _attach(role: Role) -> tuple[GameSession, MessageStream]:
        a, b = socket.socketpair()
        session = GameSession(MessageStream(a), role, window)
        peer = MessageStream(b)
        opened.append((session, peer))
        return session, peer

    yield _attach

    for session, peer in opened:
        session.close()
        peer.close()
        session.join(timeout=TIMEOUT)


# --- Main loop ---

class TestRun:
    def test_click_on_our_turn_is_played(self, window, attach):
        session, peer = attach(Role.ACCEPTOR)
        window._clock = StopAfter(1)
        click_cell(4)

        assert window.run(session) == 0
        assert peer.read_move() == 4
        assert window._cells[4] is Mark.FIRST
        assert pygame.display.get_caption()[0] == "OnlineTicTacToe (former) O"

    def test_click_out_of_turn_is_ignored(self, window, attach):
        session, peer = attach(Role.INITIATOR)
        window._clock = StopAfter(1)
        click_cell(0)

        assert window.run(session) == 0
        assert session.state.cells == [None] * 9
        assert window._cells == [None] * 9
        # Nothing was sent before the window closed the session
        with pytest.raises(PeerDisconnectedError):
            peer.read_move()

    def test_fatal_error_sets_exit_status(self, window, attach):
        session, peer = attach(Role.INITIATOR)
        session.start()
        peer._sock.sendall(b"\x00\x00\x00\x09")
        session.join(timeout=TIMEOUT)
        assert not session.is_running

        window._clock = StopAfter(1)
        assert window.run(session) == 1
        assert window.exit_status == 1
        assert window._banner.startswith("Error:")

    def test_counterpart_leaving_is_a_normal_end(self, window, attach):
        session, peer = attach(Role.ACCEPTOR)
        session.start()
        peer.close()
        session.join(timeout=TIMEOUT)

        window._clock = StopAfter(1)
        assert window.run(session) == 0
        assert window._banner == "Counterpart left the game"


class TestExitStatus:
    def test_fatal_error(self, window):
        window.on_fatal_error("boom")
        window._drain_updates()
        assert window.exit_status == 1
        assert window._status_text() == "Error: boom"

    def test_clean_end(self, window):
        window.on_closed()
        window._drain_updates()
        assert window.exit_status == 0
        assert window._status_text() == "Thanks for playing"


# --- Replay prompt ---

class TestReplayPrompt:
    def test_main_thread_prompt_is_modal(self, window):
        window._clock = StopAfter(0)
        press(pygame.K_n)
        assert window.confirm_replay() is False

    def test_listener_request_answered_by_main_loop(self, window):
        window._clock = StopAfter(0)
        window._cells[0] = Mark.FIRST
        worker, answers = ask_in_background(window)

        press(pygame.K_y)
        window._drain_updates()
        worker.join(timeout=TIMEOUT)
        assert answers == [True]
        assert window._cells == [None] * 9  # yes clears the drawn board

    def test_listener_request_declined(self, window):
        window._clock = StopAfter(0)
        worker, answers = ask_in_background(window)

        press(pygame.K_n)
        window._drain_updates()
        worker.join(timeout=TIMEOUT)
        assert answers == [False]

    def test_pending_request_declined_on_shutdown(self, window, attach):
        session, _ = attach(Role.ACCEPTOR)
        worker, answers = ask_in_background(window)

        # Closing before the next frame drains the queue
        pygame.event.post(pygame.event.Event(pygame.QUIT))
        assert window.run(session) == 0
        worker.join(timeout=TIMEOUT)
        assert not worker.is_alive()
        assert answers == [False]
