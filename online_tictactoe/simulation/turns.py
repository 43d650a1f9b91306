"""Turn coordination between the local-input and remote-listener threads.

Exactly one mark owns the turn at any instant. The owner only changes
after a move has been fully applied to the board, and the board update and
the handoff happen under the same guard. Waiters block on the condition;
nothing polls.

Usage:
    turns = TurnCoordinator(local_mark=Mark.SECOND)
    with turns.guard:
        state.apply_move(cell, mark)
        turns.hand_off_to_local()
"""

from __future__ import annotations

import threading

from online_tictactoe.simulation.state import Mark


class TurnCoordinator:
    """Guarded turn owner shared by both activities of a session."""

    def __init__(self, local_mark: Mark, first_mark: Mark = Mark.FIRST) -> None:
        # Condition() wraps an RLock, so holders of the guard may call the
        # handoff methods below without deadlocking.
        self._cond = threading.Condition()
        self._local_mark = local_mark
        self._first_mark = first_mark
        self._owner = first_mark
        self._closed = False

    @property
    def guard(self) -> threading.Condition:
        return self._cond

    @property
    def owner(self) -> Mark:
        with self._cond:
            return self._owner

    @property
    def is_local_turn(self) -> bool:
        with self._cond:
            return self._owner is self._local_mark

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def wait_for_remote_turn(self, timeout: float | None = None) -> bool:
        """Block until the remote side owns the turn.

        Returns False if the coordinator was closed or the timeout elapsed.
        """
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._closed or self._owner is not self._local_mark,
                timeout,
            )
            return bool(ready) and not self._closed

    def wait_for_local_turn(self, timeout: float | None = None) -> bool:
        """Block until the local side owns the turn.

        Returns False if the coordinator was closed or the timeout elapsed.
        """
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._closed or self._owner is self._local_mark,
                timeout,
            )
            return bool(ready) and not self._closed

    def hand_off_to_remote(self) -> None:
        """Give the turn to the peer after a local move was applied and sent."""
        with self._cond:
            if self._owner is not self._local_mark:
                raise RuntimeError("Cannot hand off: it is not the local turn")
            self._owner = self._local_mark.other
            self._cond.notify_all()

    def hand_off_to_local(self) -> None:
        """Take the turn back after a remote move was applied."""
        with self._cond:
            if self._owner is self._local_mark:
                raise RuntimeError("Cannot hand off: it is already the local turn")
            self._owner = self._local_mark
            self._cond.notify_all()

    def reset(self) -> None:
        """Give the turn back to the first mover (new round)."""
        with self._cond:
            self._owner = self._first_mark
            self._cond.notify_all()

    def close(self) -> None:
        """Release every waiter; the session is over."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
