"""Shared test fixtures for Online Tic-Tac-Toe."""

from __future__ import annotations

import socket

import pytest

from online_tictactoe.game import GameSession
from online_tictactoe.networking.channel import MessageStream
from online_tictactoe.networking.protocol import Role
from online_tictactoe.rendering.presentation import HeadlessPresentation
from online_tictactoe.simulation.state import GameState


@pytest.fixture
def game_state() -> GameState:
    """A fresh, empty board."""
    return GameState()


@pytest.fixture
def stream_pair():
    """Two MessageStreams connected to each other."""
    a, b = socket.socketpair()
    left, right = MessageStream(a), MessageStream(b)
    yield left, right
    left.close()
    right.close()


@pytest.fixture
def free_port() -> int:
    """A TCP port that nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def make_sessions():
    """Factory for a connected (acceptor, initiator) pair of sessions.

    Each side gets a HeadlessPresentation with its own scripted replay
    answers. Listener threads are started; everything is closed on teardown.
    """
    created: list[GameSession] = []

    def _make(acceptor_replays=None, initiator_replays=None):
        a, b = socket.socketpair()
        acceptor = GameSession(
            MessageStream(a), Role.ACCEPTOR, HeadlessPresentation(acceptor_replays),
        )
        initiator = GameSession(
            MessageStream(b), Role.INITIATOR, HeadlessPresentation(initiator_replays),
        )
        created.extend([acceptor, initiator])
        acceptor.start()
        initiator.start()
        return acceptor, initiator

    yield _make

    for session in created:
        session.close()
    for session in created:
        session.join(timeout=2)
