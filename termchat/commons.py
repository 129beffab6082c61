"""Helpers shared by the chat server and the chat client."""

from __future__ import annotations

import socket
import sys
from typing import TextIO

PORT = 8080
MAX_CLIENTS = 10
MAX_NAME_LEN = 16


def read_n_string(stream: TextIO, maxlen: int | None = None) -> str:
    """Read one line from *stream* without its newline, cut to *maxlen* characters.

    A *maxlen* of None or a negative number allows any length.
    Raises EOFError when the stream is exhausted.
    """
    line = stream.readline()
    if not line:
        raise EOFError("end of input")
    if line.endswith("\n"):
        line = line[:-1]
    if maxlen is None or maxlen < 0:
        return line
    return line[:maxlen]


def peer_info(sock: socket.socket) -> tuple[str, int]:
    """Return the (address, port) of the peer a socket is connected to."""
    address = sock.getpeername()
    return address[0], address[1]


def print_peer_info(sock: socket.socket, out: TextIO | None = None) -> None:
    """Print which peer *sock* is connected to; report failures on stderr."""
    out = sys.stdout if out is None else out
    try:
        host, port = peer_info(sock)
    except OSError as exc:
        print(f"getpeername failed: {exc}", file=sys.stderr)
        return
    print(f"Socket {sock.fileno()} connected to {host}:{port}", file=out)
    out.flush()