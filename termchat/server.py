"""Multi-client chat room server."""

from __future__ import annotations

import argparse
import codecs
import random
import shutil
import signal
import socket
import sys
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TextIO

from .commons import MAX_CLIENTS, MAX_NAME_LEN, PORT

_CLEAR_SCREEN = "\033[2J\033[H"
_WELCOME = "Welcome to the chatroom!\nCurrent users:"
_RECV_SIZE = 999
_POLL_INTERVAL = 0.2
_LOG_COLOR = 32


def colorize(color: int, name: str) -> str:
    """Wrap *name* in a bold ANSI colour escape."""
    return f"\033[1;{color}m{name}\033[0m"


def format_message(color: int, name: str, text: str) -> str:
    """Format a chat line as relayed to every member."""
    return f"{colorize(color, name)}: {text}"


def format_join(color: int, name: str) -> str:
    """Notice sent to the others when someone joins."""
    return f">>> {colorize(color, name)} joined the room\n"


def format_leave(color: int, name: str) -> str:
    """Notice sent to the others when someone leaves."""
    return f"<<< {colorize(color, name)} left the room\n"


def welcome_banner(width: int, members: Iterable[tuple[int, str]]) -> str:
    """Screen sent to a newcomer: clear, a rule, greeting and current members."""
    names = "".join(f" {colorize(color, name)}" for color, name in members)
    return f"{_CLEAR_SCREEN}{'=' * width}\n{_WELCOME}{names}\n"


@dataclass
class ClientSlot:
    """One connected member of the room."""

    sock: socket.socket
    color: int
    name: str = ""


class ChatRoom:
    """A fixed number of client slots guarded by a lock."""

    def __init__(self, max_clients: int = MAX_CLIENTS, rng: random.Random | None = None):
        if max_clients < 1:
            raise ValueError("max_clients must be at least 1")
        self.max_clients = max_clients
        self.lock = threading.RLock()
        self._rng = rng if rng is not None else random.Random()
        self._slots: list[ClientSlot | None] = [None] * max_clients

    def __getitem__(self, slot_id: int) -> ClientSlot:
        if not 0 <= slot_id < self.max_clients:
            raise KeyError(slot_id)
        slot = self._slots[slot_id]
        if slot is None:
            raise KeyError(slot_id)
        return slot

    def __len__(self) -> int:
        with self.lock:
            return sum(slot is not None for slot in self._slots)

    def register(self, sock: socket.socket) -> int:
        """Put *sock* into the first free slot and return the slot's number."""
        with self.lock:
            slot_id = next(
                (index for index, slot in enumerate(self._slots) if slot is None), None
            )
            if slot_id is None:
                raise RuntimeError("no free client slot")
            self._slots[slot_id] = ClientSlot(sock, 31 + self._rng.randrange(6))
            return slot_id

    def set_name(self, slot_id: int, name: str) -> None:
        """Give a member a name, cut to the allowed length."""
        with self.lock:
            self[slot_id].name = name[:MAX_NAME_LEN]

    def release(self, slot_id: int) -> ClientSlot:
        """Free a slot and return the member that held it."""
        with self.lock:
            slot = self[slot_id]
            self._slots[slot_id] = None
            return slot

    def active(self) -> list[tuple[int, ClientSlot]]:
        """Occupied slots in slot order."""
        with self.lock:
            return [(index, slot) for index, slot in enumerate(self._slots) if slot is not None]

    def close_all(self) -> None:
        """Close every member's connection."""
        with self.lock:
            for _, slot in self.active():
                try:
                    slot.sock.shutdown(socket.SHUT_RDWR)
                except OSError:
                    pass
                slot.sock.close()


def _recv_exact(sock: socket.socket, size: int) -> bytes | None:
    chunks = bytearray()
    while len(chunks) < size:
        chunk = sock.recv(size - len(chunks))
        if not chunk:
            return None
        chunks += chunk
    return bytes(chunks)


class ChatServer:
    """Accepts clients and relays every message to the whole room."""

    def __init__(
        self,
        host: str = "",
        port: int = PORT,
        max_clients: int = MAX_CLIENTS,
        out: TextIO | None = None,
    ):
        self.host = host
        self.port = port
        self.out = sys.stdout if out is None else out
        self.room = ChatRoom(max_clients)
        self.width = shutil.get_terminal_size().columns
        self._slots = threading.Semaphore(max_clients)
        self._listener: socket.socket | None = None
        self._closed = threading.Event()
        self._log_lock = threading.Lock()
        self._count = 1

    def _log(self, message: str) -> None:
        with self._log_lock:
            print(message, file=self.out)
            self.out.flush()

    def bind(self) -> tuple[str, int]:
        """Open the listening socket and return the address it is bound to."""
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            listener.bind((self.host, self.port))
            listener.listen(5)
        except OSError:
            listener.close()
            raise
        listener.settimeout(_POLL_INTERVAL)
        self._listener = listener
        return listener.getsockname()

    def serve_forever(self) -> None:
        """Accept clients until the server is shut down."""
        if self._listener is None:
            self.bind()
        while not self._closed.is_set():
            self.accept_one()

    def _accept(self) -> socket.socket | None:
        while not self._closed.is_set():
            try:
                conn, _ = self._listener.accept()
            except TimeoutError:
                continue
            except OSError:
                if self._closed.is_set():
                    return None
                raise
            conn.settimeout(None)
            return conn
        return None

    def accept_one(self) -> int | None:
        """Wait for a free slot, accept one client and start its handler.

        Returns the client's slot number, or None if no client was admitted.
        """
        if self._listener is None:
            raise RuntimeError("server is not bound")
        self._log(f"{self._count} waiting for open slot")
        while not self._slots.acquire(timeout=_POLL_INTERVAL):
            if self._closed.is_set():
                return None
        conn = self._accept()
        if conn is None:
            self._slots.release()
            return None
        try:
            poke = conn.recv(1)
        except OSError:
            poke = b""
        if not poke:
            self._log("poke failed")
            self._slots.release()
            conn.close()
            return None
        try:
            slot_id = self.room.register(conn)
        except RuntimeError:
            conn.close()
            self._slots.release()
            raise
        threading.Thread(
            target=self.handle_client, args=(conn, slot_id), daemon=True
        ).start()
        self._log(f"{self._count} connected to server")
        self._count += 1
        return slot_id

    def _send(self, sock: socket.socket, text: str) -> bool:
        try:
            sock.sendall(text.encode("utf-8"))
        except OSError:
            self._log("send failed")
            return False
        return True

    @staticmethod
    def _read_username(sock: socket.socket) -> str | None:
        header = _recv_exact(sock, 1)
        if header is None:
            return None
        length = header[0]
        raw = _recv_exact(sock, length)
        if raw is None:
            return None
        return raw[: max(length - 1, 0)].decode("utf-8", errors="replace")[:MAX_NAME_LEN]

    def _welcome(self, sock: socket.socket, slot_id: int, name: str) -> None:
        with self.room.lock:
            self.room.set_name(slot_id, name)
            me = self.room[slot_id]
            members = self.room.active()
            self._send(sock, welcome_banner(self.width, [(s.color, s.name) for _, s in members]))
            notice = format_join(me.color, me.name)
            for other_id, other in members:
                if other_id != slot_id:
                    self._send(other.sock, notice)
            self._log(f"my name is {me.name}")

    def _relay(self, sock: socket.socket, slot_id: int) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")("replace")
        while True:
            try:
                data = sock.recv(_RECV_SIZE)
            except OSError:
                return
            if not data:
                return
            text = decoder.decode(data)
            if not text:
                continue
            with self.room.lock:
                me = self.room[slot_id]
                self._log(f"{colorize(_LOG_COLOR, me.name)}: {text}".rstrip("\n"))
                self.broadcast(format_message(me.color, me.name, text))

    def _depart(self, sock: socket.socket, slot_id: int) -> None:
        with self.room.lock:
            me = self.room.release(slot_id)
            self._log(f"{colorize(me.color, me.name)} disconnected")
            self.broadcast(format_leave(me.color, me.name))
        self._slots.release()
        sock.close()

    def handle_client(self, sock: socket.socket, slot_id: int) -> None:
        """Serve one client: read its name, greet it, relay its messages."""
        try:
            name = self._read_username(sock)
            if name is not None:
                self._welcome(sock, slot_id, name)
                self._relay(sock, slot_id)
        except OSError:
            pass
        finally:
            self._depart(sock, slot_id)

    def broadcast(self, data: str) -> int:
        """Send *data* to every member; return how many sends succeeded."""
        with self.room.lock:
            return sum(self._send(slot.sock, data) for _, slot in self.room.active())

    def shutdown(self) -> None:
        """Stop accepting and disconnect every client."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._log("Shutting down the server")
        if self._listener is not None:
            self._listener.close()
        self.room.close_all()


def main(argv: list[str] | None = None) -> int:
    """Run the chat server until interrupted."""
    parser = argparse.ArgumentParser(prog="termchat-server", description="Run a chat room.")
    parser.add_argument("--host", default="", help="address to listen on")
    parser.add_argument("--port", type=int, default=PORT, help="port to listen on")
    args = parser.parse_args(argv)
    server = ChatServer(args.host, args.port)
    server.bind()
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.shutdown()
        return int(signal.SIGINT)
    return 0


if __name__ == "__main__":
    sys.exit(main())