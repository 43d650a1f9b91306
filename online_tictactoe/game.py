"""Game session: rendezvous, turn handoff and replay.

Manages the session lifecycle: PLAYING -> GAME_OVER -> PLAYING | CLOSED.
Local moves come in through submit_local_move() on the caller's thread;
remote moves are read by a dedicated listener thread. Both go through the
same turn guard, so board mutations are totally ordered.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum, auto

from online_tictactoe.config import CONNECT_RETRY_S
from online_tictactoe.networking.channel import MessageStream
from online_tictactoe.networking.protocol import (
    ProtocolError,
    RendezvousError,
    Role,
)
from online_tictactoe.networking.rendezvous import establish
from online_tictactoe.rendering.presentation import Presentation
from online_tictactoe.simulation.state import GameState, Mark, Outcome
from online_tictactoe.simulation.turns import TurnCoordinator

logger = logging.getLogger(__name__)


class SessionPhase(Enum):
    PLAYING = auto()
    GAME_OVER = auto()  # round finished, waiting for the replay decision
    CLOSED = auto()


class DesyncError(Exception):
    """The counterpart played a cell that is already taken on our board."""


def mark_for_role(role: Role) -> Mark:
    """The Acceptor plays FIRST, the Initiator plays SECOND."""
    return Mark.FIRST if role is Role.ACCEPTOR else Mark.SECOND


class GameSession:
    """One game between this process and its counterpart.

    Owns the board, the turn coordinator and the message stream.
    """

    def __init__(
        self,
        stream: MessageStream,
        role: Role,
        presentation: Presentation,
    ) -> None:
        self._stream = stream
        self._role = role
        self._presentation = presentation

        self.local_mark = mark_for_role(role)
        self.remote_mark = self.local_mark.other

        self._state = GameState()
        self._turns = TurnCoordinator(self.local_mark, first_mark=Mark.FIRST)
        self._phase = SessionPhase.PLAYING
        self._peer_gone = False  # peer left while the replay question was open
        self._listener: threading.Thread | None = None

    @classmethod
    def connect(
        cls,
        address: str,
        port: int,
        presentation: Presentation,
        interval: float = CONNECT_RETRY_S,
        timeout: float | None = None,
    ) -> GameSession:
        """Rendezvous with the counterpart and return a ready session.

        A failed rendezvous is reported to the presentation and re-raised.
        """
        try:
            stream, role = establish(address, port, interval=interval, timeout=timeout)
        except RendezvousError as e:
            logger.error("Cannot start session: %s", e)
            presentation.on_fatal_error(str(e))
            raise
        return cls(stream, role, presentation)

    # --- Properties ---

    @property
    def role(self) -> Role:
        return self._role

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def turns(self) -> TurnCoordinator:
        return self._turns

    @property
    def presentation(self) -> Presentation:
        return self._presentation

    @property
    def phase(self) -> SessionPhase:
        with self._turns.guard:
            return self._phase

    @property
    def is_running(self) -> bool:
        return self.phase is not SessionPhase.CLOSED

    @property
    def peer_address(self) -> tuple[str, int] | None:
        return self._stream.peer_address

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the remote-listener thread."""
        if self._listener is not None:
            return
        logger.info(
            "Session started as %s, playing %s",
            self._role.name.lower(), self.local_mark.value,
        )
        self._listener = threading.Thread(
            target=self._listen, name="remote-listener", daemon=True,
        )
        self._listener.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the listener thread to finish."""
        if self._listener is not None:
            self._listener.join(timeout)

    def close(self) -> None:
        """End the session and drop the connection. Safe to call twice."""
        self._shut_down()

    def _shut_down(self) -> bool:
        """Close once. Returns False if the session was already closed."""
        with self._turns.guard:
            if self._phase is SessionPhase.CLOSED:
                return False
            self._phase = SessionPhase.CLOSED
        self._turns.close()
        self._stream.close()
        logger.info("Session closed")
        return True

    # --- Local moves ---

    def submit_local_move(self, cell: int) -> bool:
        """Play a cell for the local user.

        Returns False (no state change, nothing sent, turn kept) if it is
        not our turn, the round is over or the cell is taken.
        """
        with self._turns.guard:
            if self._phase is not SessionPhase.PLAYING:
                return False
            if not self._apply_move(cell, self.local_mark):
                logger.debug("Rejected local move %d", cell)
                return False
            try:
                self._stream.send_move(cell)
            except ConnectionError as e:
                logger.info("Could not send move %d: %s", cell, e)
                self._peer_left()
                return False
            except OSError as e:
                # The boards would diverge; no resend
                self._fail(f"Failed to send move: {e}")
                return False
            self._presentation.on_local_move_accepted(cell)
            outcome = self._report(cell, self.local_mark)
            if not outcome.is_over:
                self._turns.hand_off_to_remote()

        if outcome.is_over:
            self._finish_round()
        return True

    # --- Remote moves ---

    def _listen(self) -> None:
        """Remote-listener loop: wait for the peer's turn, read, apply.

        The stream is watched before the turn, so end of stream is seen
        in every phase, not only while a move is expected.
        """
        try:
            while True:
                self._stream.wait_readable()
                if not self._turns.wait_for_remote_turn():
                    return
                cell = self._stream.read_move()
                outcome = self._apply_remote_move(cell)
                if outcome.is_over:
                    self._finish_round()
        except ConnectionError:
            self._connection_lost()
        except (ProtocolError, DesyncError) as e:
            self._fail(str(e))
        except OSError as e:
            self._fail(f"Connection error: {e}")

    def _connection_lost(self) -> None:
        with self._turns.guard:
            if self._phase is SessionPhase.GAME_OVER:
                # Settled once the local user answers the replay question
                self._peer_gone = True
                return
        self._peer_left()

    def _apply_remote_move(self, cell: int) -> Outcome:
        with self._turns.guard:
            if self._phase is not SessionPhase.PLAYING:
                raise DesyncError(f"Counterpart moved at {cell} outside of a round")
            if not self._apply_move(cell, self.remote_mark):
                raise DesyncError(f"Counterpart played occupied cell {cell}")
            self._presentation.on_remote_move_applied(cell)
            outcome = self._report(cell, self.remote_mark)
            if not outcome.is_over:
                self._turns.hand_off_to_local()
            return outcome

    # --- Shared ---

    def _apply_move(self, cell: int, mark: Mark) -> bool:
        """Apply a move for ``mark`` if it owns the turn. Caller holds the guard."""
        if mark is not self._turns.owner:
            return False
        return self._state.apply_move(cell, mark)

    def _report(self, cell: int, mark: Mark) -> Outcome:
        """Evaluate the board after a move. Caller holds the guard."""
        outcome = self._state.evaluate()
        logger.debug("%s played %d: %s", mark.value, cell, outcome.describe())
        if outcome.is_over:
            self._phase = SessionPhase.GAME_OVER
            logger.info(
                "Round over after %d moves: %s",
                self._state.move_count, outcome.describe(),
            )
        self._presentation.on_outcome(outcome)
        return outcome

    def _finish_round(self) -> None:
        """Ask whether to play again. Runs outside the guard, may block."""
        replay = self._presentation.confirm_replay()
        with self._turns.guard:
            if self._phase is SessionPhase.CLOSED:
                return
            if replay and not self._peer_gone:
                self._state.reset()
                self._phase = SessionPhase.PLAYING
                self._turns.reset()
                logger.info("Starting a new round, %s moves first", Mark.FIRST.value)
                return
        if replay:
            self._peer_left()
        elif self._shut_down():
            logger.info("Thanks for playing")
            self._presentation.on_closed()

    def _peer_left(self) -> None:
        if self._shut_down():
            logger.info("Counterpart disconnected")
            self._presentation.on_disconnected()

    def _fail(self, reason: str) -> None:
        if self._shut_down():
            logger.error("Fatal: %s", reason)
            self._presentation.on_fatal_error(reason)
