"""Online Tic-Tac-Toe entry point.

Usage:
    Both players run the same command with each other's address:
        python -m online_tictactoe.main 192.168.1.20 5000   # on host A
        python -m online_tictactoe.main 192.168.1.10 5000   # on host B
    Two windows on one machine:
        python -m online_tictactoe.main 127.0.0.1 5000      # twice
    Verbose logging:
        python -m online_tictactoe.main -v 127.0.0.1 5000
"""

from __future__ import annotations

import argparse
import logging
import socket
import sys

import pygame

from online_tictactoe.config import MIN_PORT, WINDOW_HEIGHT, WINDOW_WIDTH

logger = logging.getLogger(__name__)


def _port(value: str) -> int:
    port = int(value)
    if port < MIN_PORT:
        raise argparse.ArgumentTypeError(f"port must be >= {MIN_PORT}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Online Tic-Tac-Toe: two-player P2P game")
    parser.add_argument("address", help="Counterpart's host name or IP address")
    parser.add_argument(
        "port", type=_port, metavar=f"PORT(>={MIN_PORT})",
        help="Port both players agreed on",
    )
    parser.add_argument(
        "--timeout", type=float, metavar="SECONDS", default=None,
        help="Give up if the counterpart does not show up in time (default: wait forever)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        socket.gethostbyname(args.address)
    except socket.gaierror as e:
        logger.error("Cannot resolve %s: %s", args.address, e)
        sys.exit(1)

    pygame.init()
    screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
    pygame.display.set_caption("OnlineTicTacToe")

    from online_tictactoe.rendering.board_view import BoardWindow

    window = BoardWindow(screen)
    session = window.connect(args.address, args.port, timeout=args.timeout)
    status = window.exit_status if session is None else window.run(session)

    pygame.quit()
    sys.exit(status)


if __name__ == "__main__":
    main()
