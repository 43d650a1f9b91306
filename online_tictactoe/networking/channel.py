"""Blocking message stream over a connected TCP socket."""

from __future__ import annotations

import logging
import socket

from online_tictactoe.networking.protocol import PeerDisconnectedError
from online_tictactoe.networking.serialization import (
    GREETING_HEADER,
    MOVE_FMT,
    decode_greeting,
    decode_greeting_length,
    decode_move,
    encode_greeting,
    encode_move,
)

logger = logging.getLogger(__name__)


class MessageStream:
    """Reads and writes protocol messages on a connected socket.

    Reads block the calling thread until a whole message has arrived.
    End of stream raises PeerDisconnectedError; socket errors propagate
    as OSError.
    """

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._sock.settimeout(None)
        self._closed = False
        self._peer_addr: tuple[str, int] | None = None
        if sock.family in (socket.AF_INET, socket.AF_INET6):
            self._peer_addr = sock.getpeername()[:2]

    @property
    def peer_address(self) -> tuple[str, int] | None:
        return self._peer_addr

    # --- Greeting ---

    def send_greeting(self, text: str) -> None:
        self._sock.sendall(encode_greeting(text))

    def read_greeting(self) -> str:
        length = decode_greeting_length(self._recv_exact(GREETING_HEADER.size))
        return decode_greeting(self._recv_exact(length))

    # --- Moves ---

    def send_move(self, cell: int) -> None:
        self._sock.sendall(encode_move(cell))
        logger.debug("Wrote %d to counterpart", cell)

    def read_move(self) -> int:
        cell = decode_move(self._recv_exact(MOVE_FMT.size))
        logger.debug("Counterpart's position = %d", cell)
        return cell

    def wait_readable(self) -> None:
        """Block until the next message starts arriving, without consuming it.

        Raises PeerDisconnectedError at end of stream, so a peer that
        leaves is noticed even when no move is expected from it.
        """
        if not self._sock.recv(1, socket.MSG_PEEK):
            raise PeerDisconnectedError("Counterpart disconnected")

    def close(self) -> None:
        """Shut down and close the socket. Safe to call more than once.

        Shutting down first wakes any thread blocked in a read on this
        socket; it then sees end of stream.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # already disconnected
        self._sock.close()

    def _recv_exact(self, size: int) -> bytes:
        chunks: list[bytes] = []
        remaining = size
        while remaining > 0:
            chunk = self._sock.recv(remaining)
            if not chunk:
                raise PeerDisconnectedError("Counterpart disconnected")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)
