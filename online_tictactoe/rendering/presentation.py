"""Presentation interface and headless implementation.

Presentation is the boundary between the game session and whatever shows
the game to the user. The session calls the ``on_*`` notifications (from
the input thread or the remote-listener thread) and asks confirm_replay()
when a round ends. The presentation in turn calls
GameSession.submit_local_move() when the user picks a cell.

A HeadlessPresentation is provided so the session can be driven and
tested without a display.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

from online_tictactoe.simulation.state import Outcome


class Presentation(ABC):
    """Abstract interface between a GameSession and its user interface.

    Notifications must return quickly: the session may call them while
    holding its turn guard. Only confirm_replay() may block.
    """

    @abstractmethod
    def on_local_move_accepted(self, cell: int) -> None:
        """Our move was applied and sent to the counterpart."""
        ...

    @abstractmethod
    def on_remote_move_applied(self, cell: int) -> None:
        """The counterpart's move was received and applied."""
        ...

    @abstractmethod
    def on_outcome(self, outcome: Outcome) -> None:
        """The board was evaluated after a move."""
        ...

    @abstractmethod
    def on_disconnected(self) -> None:
        """The counterpart went away. The session is over."""
        ...

    @abstractmethod
    def on_fatal_error(self, reason: str) -> None:
        """The session cannot continue. The process should exit non-zero."""
        ...

    @abstractmethod
    def on_closed(self) -> None:
        """The session ended because the user declined to play again."""
        ...

    @abstractmethod
    def confirm_replay(self) -> bool:
        """Ask the user whether to play another round. May block."""
        ...


@dataclass(frozen=True, slots=True)
class PresentationEvent:
    """One recorded notification, e.g. ("remote_move", 4)."""
    kind: str
    value: object = None


class HeadlessPresentation(Presentation):
    """Records notifications instead of drawing them.

    confirm_replay() answers from a scripted list (declining once the
    script runs out). wait_for() lets another thread block until a given
    notification has arrived.
    """

    def __init__(self, replay_answers: list[bool] | None = None) -> None:
        self._cond = threading.Condition()
        self._replay_answers = list(replay_answers or [])
        self.events: list[PresentationEvent] = []
        self.replay_prompts = 0

    def _record(self, kind: str, value: object = None) -> None:
        with self._cond:
            self.events.append(PresentationEvent(kind, value))
            self._cond.notify_all()

    def on_local_move_accepted(self, cell: int) -> None:
        self._record("local_move", cell)

    def on_remote_move_applied(self, cell: int) -> None:
        self._record("remote_move", cell)

    def on_outcome(self, outcome: Outcome) -> None:
        self._record("outcome", outcome)

    def on_disconnected(self) -> None:
        self._record("disconnected")

    def on_fatal_error(self, reason: str) -> None:
        self._record("fatal_error", reason)

    def on_closed(self) -> None:
        self._record("closed")

    def confirm_replay(self) -> bool:
        with self._cond:
            self.replay_prompts += 1
            answer = self._replay_answers.pop(0) if self._replay_answers else False
        self._record("replay_prompt", answer)
        return answer

    def kinds(self) -> list[str]:
        """The kinds of all notifications so far, in order."""
        with self._cond:
            return [e.kind for e in self.events]

    def values(self, kind: str) -> list[object]:
        """The values of every notification of one kind, in order."""
        with self._cond:
            return [e.value for e in self.events if e.kind == kind]

    def wait_for(self, kind: str, count: int = 1, timeout: float = 5.0) -> bool:
        """Block until ``count`` notifications of ``kind`` have arrived."""
        with self._cond:
            return self._cond.wait_for(
                lambda: sum(1 for e in self.events if e.kind == kind) >= count,
                timeout,
            )
