"""Binary serialization for network messages.

All encoding uses struct for a compact, deterministic binary format.
Network byte order (big-endian) throughout. Messages carry no type tag:
each position in the conversation expects exactly one message type.

Wire formats:
    GREETING  [length:u16][utf-8 text:bytes]
    MOVE      [cell:i32]
"""

from __future__ import annotations

import struct

from online_tictactoe.config import NUM_CELLS
from online_tictactoe.networking.protocol import ProtocolError

GREETING_HEADER = struct.Struct("!H")  # text length (u16)
MOVE_FMT = struct.Struct("!i")         # cell index (i32)


# --- Greeting ---

def encode_greeting(text: str) -> bytes:
    """Encode the handshake string with its length prefix."""
    payload = text.encode("utf-8")
    if len(payload) > 0xFFFF:
        raise ValueError("Greeting too long")
    return GREETING_HEADER.pack(len(payload)) + payload


def decode_greeting_length(header: bytes) -> int:
    """Returns the payload length announced by a greeting header."""
    (length,) = GREETING_HEADER.unpack(header)
    return length


def decode_greeting(payload: bytes) -> str:
    """Decode the greeting text (without its length prefix).

    Raises ProtocolError if the bytes are not valid UTF-8.
    """
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Greeting is not valid UTF-8: {e}") from e


# --- Move ---

def encode_move(cell: int) -> bytes:
    """Encode a cell index. Raises ValueError for an index off the board."""
    if not 0 <= cell < NUM_CELLS:
        raise ValueError(f"Cell index out of range: {cell}")
    return MOVE_FMT.pack(cell)


def decode_move(data: bytes) -> int:
    """Decode a move. Raises ProtocolError for an index off the board."""
    if len(data) != MOVE_FMT.size:
        raise ProtocolError(f"Move must be {MOVE_FMT.size} bytes, got {len(data)}")
    (cell,) = MOVE_FMT.unpack(data)
    if not 0 <= cell < NUM_CELLS:
        raise ProtocolError(f"Cell index out of range: {cell}")
    return cell
