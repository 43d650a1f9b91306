"""Network protocol definitions.

Defines the roles and errors shared by the rendezvous, the wire codec
and the game session.

Two messages exist, both sent over one TCP stream:
    GREETING  Initiator -> Acceptor, exactly once, right after connecting.
    MOVE      whoever just moved -> the peer, once per applied move.
"""

from __future__ import annotations

from enum import Enum, auto


class Role(Enum):
    """Which side of the rendezvous this process ended up on."""
    ACCEPTOR = auto()   # accepted the connection, plays first
    INITIATOR = auto()  # opened the connection, plays second


class RendezvousError(Exception):
    """The connection to the peer could not be established."""


class ProtocolError(Exception):
    """The peer sent something that is not a valid message."""


class PeerDisconnectedError(ConnectionError):
    """The stream ended while a message was expected."""
