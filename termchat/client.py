"""Terminal chat client."""

from __future__ import annotations

import codecs
import re
import socket
import sys
import threading
from typing import TextIO

from .commons import MAX_NAME_LEN, print_peer_info, read_n_string

_ERASE_LINE = "\033[F\033[K"
_RECV_SIZE = 1023
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_port(text: str) -> int:
    """Read a port number from its leading digits; raise ValueError if out of range."""
    match = _LEADING_INT.match(text)
    port = int(match.group(1)) if match else 0
    if not 0 < port <= 65535:
        raise ValueError(f"Invalid port number: {text}")
    return port


class ChatClient:
    """Connects a terminal to a chat server over an open socket."""

    def __init__(
        self,
        sock: socket.socket,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ):
        self.sock = sock
        self.stdin = sys.stdin if stdin is None else stdin
        self.stdout = sys.stdout if stdout is None else stdout
        self._out_lock = threading.Lock()

    def _write(self, text: str) -> None:
        with self._out_lock:
            self.stdout.write(text)
            self.stdout.flush()

    def _close(self) -> None:
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()

    def send_username(self) -> str:
        """Prompt for a name and send it, prefixed by its length in one byte."""
        self._write(f"Enter username (max {MAX_NAME_LEN} chars): ")
        name = read_n_string(self.stdin, MAX_NAME_LEN)
        payload = (name + "\n").encode("utf-8")
        self.sock.sendall(bytes([len(payload)]) + payload)
        return name

    def send_loop(self) -> None:
        """Send each input line until input ends, then close the connection."""
        try:
            while True:
                try:
                    line = read_n_string(self.stdin)
                except EOFError:
                    break
                self._write(_ERASE_LINE)
                self.sock.sendall((line + "\n").encode("utf-8"))
        except OSError:
            pass
        finally:
            self._close()
        self._write("send_loop ended\n")

    def receive_loop(self) -> None:
        """Print everything the server sends until it disconnects."""
        decoder = codecs.getincrementaldecoder("utf-8")("replace")
        while True:
            try:
                data = self.sock.recv(_RECV_SIZE)
            except OSError:
                break
            if not data:
                break
            self._write(decoder.decode(data))
        self._write("Server disconnected.\n")
        self._close()

    def run(self) -> int:
        """Join the room and chat until either side ends; return an exit status."""
        print_peer_info(self.sock, self.stdout)
        try:
            self.sock.sendall(b"\0")
            self.send_username()
        except EOFError:
            self._close()
            return 1
        threading.Thread(target=self.send_loop, daemon=True).start()
        self.receive_loop()
        return 0


def main(argv: list[str] | None = None) -> int:
    """Connect to a chat server given as <IP> <port>."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 2:
        print("Usage: termchat-client <IP> <port>", file=sys.stderr)
        return 1
    host, port_text = args
    try:
        port = parse_port(port_text)
    except ValueError as exc:
        print(exc)
        return 1
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((host, port))
    except OSError as exc:
        print(f"connect failed: {exc}", file=sys.stderr)
        sock.close()
        return 1
    return ChatClient(sock).run()


if __name__ == "__main__":
    sys.exit(main())