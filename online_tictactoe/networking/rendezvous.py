"""Leaderless rendezvous between two peers.

Both processes run the same code with each other's address and an agreed
port. Whoever manages to listen on the port may become the Acceptor; a
process that finds the port taken is the Initiator. A listening process
also tries to connect out on every round, which settles the race when both
peers start at the same time on different hosts.

Round by round (each attempt bounded by ``interval`` seconds):

    listening?  accept -> ACCEPTOR
    connect out -> refused/timed out: next round
                -> connected, and our own listener holds
                     nothing            -> INITIATOR
                     our own connection -> self-connection, drop both, next round
                     the peer's         -> crossed connections, tie-break on
                                           endpoints (complementary on both sides)

The handshake follows: the Initiator writes the greeting before reading
anything, the Acceptor reads one greeting before anything else.
"""

from __future__ import annotations

import errno
import logging
import socket
import time

from online_tictactoe.config import (
    CONNECT_RETRY_S,
    GREETING,
    LISTEN_BACKLOG,
    PENDING_CHECK_S,
)
from online_tictactoe.networking.channel import MessageStream
from online_tictactoe.networking.protocol import ProtocolError, RendezvousError, Role

logger = logging.getLogger(__name__)

Address = tuple[str, int]

# Errors that just mean "the peer is not listening yet"
_RETRYABLE_CONNECT_ERRORS = (ConnectionRefusedError, ConnectionResetError, socket.timeout)


def establish(
    address: str,
    port: int,
    interval: float = CONNECT_RETRY_S,
    timeout: float | None = None,
) -> tuple[MessageStream, Role]:
    """Connect to the peer, decide roles and complete the handshake.

    Args:
        address: The peer's host name or IP address.
        port: The agreed port, used for listening and for connecting.
        interval: Bound on each accept/connect attempt, in seconds.
        timeout: Give up after this many seconds. None waits forever.

    Returns:
        (stream, role) with the handshake already done.

    Raises:
        RendezvousError: unresolvable address, unusable port, transport
            error, failed handshake or timeout.
    """
    remote = _resolve(address, port)
    deadline = None if timeout is None else time.monotonic() + timeout

    listener = _open_listener(port)
    try:
        sock, role = _negotiate(listener, remote, interval, deadline)
    finally:
        if listener is not None:
            listener.close()

    logger.info("Connected to %s:%d as %s", remote[0], remote[1], role.name.lower())
    stream = MessageStream(sock)
    try:
        _handshake(stream, role)
    except (OSError, ProtocolError) as e:
        stream.close()
        raise RendezvousError(f"Handshake failed: {e}") from e
    return stream, role


def _resolve(address: str, port: int) -> Address:
    try:
        infos = socket.getaddrinfo(address, port, socket.AF_INET, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise RendezvousError(f"Cannot resolve {address}: {e}") from e
    return infos[0][4][:2]


def _open_listener(port: int) -> socket.socket | None:
    """Listen on the agreed port. Returns None if another process holds it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind(("", port))
        sock.listen(LISTEN_BACKLOG)
    except OSError as e:
        sock.close()
        if e.errno == errno.EADDRINUSE:
            logger.info("Port %d is taken, acting as initiator", port)
            return None
        raise RendezvousError(f"Cannot listen on port {port}: {e}") from e
    logger.info("Listening on port %d", port)
    return sock


def _negotiate(
    listener: socket.socket | None,
    remote: Address,
    interval: float,
    deadline: float | None,
) -> tuple[socket.socket, Role]:
    while True:
        if listener is not None:
            incoming = _try_accept(listener, interval)
            if incoming is not None:
                return incoming, Role.ACCEPTOR

        outgoing = _try_connect(remote, interval)
        if outgoing is not None:
            if listener is None:
                return outgoing, Role.INITIATOR
            resolved = _check_pending(listener, outgoing)
            if resolved is not None:
                return resolved
        elif listener is None:
            # No accept wait to pace the retries
            time.sleep(interval)

        if deadline is not None and time.monotonic() >= deadline:
            raise RendezvousError("Timed out waiting for the counterpart")


def _try_accept(listener: socket.socket, interval: float) -> socket.socket | None:
    listener.settimeout(interval)
    try:
        conn, addr = listener.accept()
    except socket.timeout:
        return None
    except OSError as e:
        raise RendezvousError(f"Accept failed: {e}") from e
    logger.info("Accepted connection from %s:%d", addr[0], addr[1])
    return conn


def _try_connect(remote: Address, interval: float) -> socket.socket | None:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.settimeout(interval)
    try:
        sock.connect(remote)
    except _RETRYABLE_CONNECT_ERRORS as e:
        sock.close()
        logger.debug("Connect to %s:%d failed: %s", remote[0], remote[1], e)
        return None
    except OSError as e:
        sock.close()
        raise RendezvousError(f"Cannot connect to {remote[0]}:{remote[1]}: {e}") from e
    return sock


def _check_pending(
    listener: socket.socket,
    outgoing: socket.socket,
) -> tuple[socket.socket, Role] | None:
    """Settle an outgoing connection against what queued on our own listener.

    Returns None if the outgoing connection turned out to loop back to
    ourselves and nobody else is waiting.
    """
    local = outgoing.getsockname()[:2]
    incoming: socket.socket | None = None
    self_connected = False

    listener.settimeout(PENDING_CHECK_S)
    while True:
        try:
            conn, addr = listener.accept()
        except socket.timeout:
            break
        except OSError as e:
            raise RendezvousError(f"Accept failed: {e}") from e
        if tuple(addr[:2]) == local:
            self_connected = True
            conn.close()
        elif incoming is None:
            incoming = conn
        else:
            conn.close()

    if self_connected:
        logger.debug("Dropped self-connection on %s:%d", local[0], local[1])
        outgoing.close()
        if incoming is None:
            return None
        return incoming, Role.ACCEPTOR

    if incoming is None:
        return outgoing, Role.INITIATOR

    # Both peers connected to each other in the same round. The peer sees
    # the same two endpoints swapped, so it reaches the opposite decision.
    theirs = tuple(incoming.getpeername()[:2])
    logger.info("Crossed connections with %s:%d", theirs[0], theirs[1])
    if local > theirs:
        incoming.close()
        return outgoing, Role.INITIATOR
    outgoing.close()
    return incoming, Role.ACCEPTOR


def _handshake(stream: MessageStream, role: Role) -> None:
    if role is Role.INITIATOR:
        stream.send_greeting(GREETING)
    else:
        greeting = stream.read_greeting()
        logger.info("Counterpart says %r", greeting)
