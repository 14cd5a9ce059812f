"""Command-line entry point: ircserv <port> <password>."""

from __future__ import annotations

import logging
import re
import signal
import sys
from typing import Optional, Sequence

from ircserv.server import Server

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_port(text: str) -> int:
    """Read a leading integer from ``text`` and check it is a valid port."""
    match = _LEADING_INT.match(text)
    port = int(match.group(1)) if match else 0
    if port <= 0 or port > 65535:
        raise ValueError("Port must be between 1 and 65535")
    return port


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 2:
        print("Usage: ircserv <port> <password>", file=sys.stderr)
        return 1

    try:
        port = parse_port(args[0])
    except ValueError as exc:
        print(f"Invalid port number: {exc}", file=sys.stderr)
        return 1
    password = args[1]

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    with Server(port, password) as server:

        def _shutdown(signum: int, _frame: object) -> None:
            print(f"\nSignal ({signum}) received. Shutting down server...")
            server.stop()
            sys.exit(signum)

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

        try:
            server.setup()
        except OSError as exc:
            print(f"Failed to set up server: {exc}", file=sys.stderr)
            return 1

        print(f"Server started on port {port}")
        server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())