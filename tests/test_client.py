import io
import socket
import threading

import pytest

from termchat.client import ChatClient, main, parse_port
from termchat.commons import MAX_NAME_LEN


@pytest.mark.parametrize("text, port", [("8080", 8080), ("65535", 65535), ("1", 1)])
def test_parse_port_valid(text, port):
    assert parse_port(text) == port


def test_parse_port_leading_digits():
    assert parse_port("80abc") == 80


@pytest.mark.parametrize("text", ["0", "65536", "abc", "-5", ""])
def test_parse_port_invalid(text):
    with pytest.raises(ValueError, match="Invalid port number"):
        parse_port(text)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    b.settimeout(5)
    yield a, b
    a.close()
    b.close()


def _read_all(sock):
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk


def test_send_username_frames_name(pair):
    a, b = pair
    out = io.StringIO()
    client = ChatClient(a, io.StringIO("alice\n"), out)
    assert client.send_username() == "alice"
    data = b.recv(64)
    assert data[0] == len(data) - 1
    assert data[1:] == b"alice\n"
    assert out.getvalue().startswith("Enter username")


def test_send_username_truncates(pair):
    a, b = pair
    client = ChatClient(a, io.StringIO("z" * 40 + "\n"), io.StringIO())
    name = client.send_username()
    data = b.recv(64)
    assert name == "z" * MAX_NAME_LEN
    assert data[1:] == name.encode() + b"\n"


def test_send_username_eof(pair):
    a, _ = pair
    client = ChatClient(a, io.StringIO(""), io.StringIO())
    with pytest.raises(EOFError):
        client.send_username()


def test_send_loop_sends_lines_then_closes(pair):
    a, b = pair
    out = io.StringIO()
    ChatClient(a, io.StringIO("hi\nthere\n"), out).send_loop()
    assert _read_all(b) == b"hi\nthere\n"
    assert out.getvalue().endswith("send_loop ended\n")
    assert a.fileno() == -1


def test_receive_loop_prints_until_disconnect(pair):
    a, b = pair
    out = io.StringIO()
    b.sendall("héllo".encode())
    b.close()
    ChatClient(a, io.StringIO(), out).receive_loop()
    assert out.getvalue() == "héllo" + "Server disconnected.\n"


def test_run_joins_and_chats():
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]
    received = {}

    def serve():
        conn, _ = listener.accept()
        conn.settimeout(5)
        received["data"] = _read_all(conn)
        conn.close()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    sock = socket.create_connection(("127.0.0.1", port), timeout=5)
    sock.settimeout(None)
    out = io.StringIO()
    try:
        status = ChatClient(sock, io.StringIO("alice\nhi\n"), out).run()
        thread.join(timeout=5)
    finally:
        listener.close()
    assert status == 0
    assert received["data"] == b"\0" + bytes([len(b"alice\n")]) + b"alice\n" + b"hi\n"
    assert f"connected to 127.0.0.1:{port}" in out.getvalue()


def test_main_usage(capsys):
    assert main(["127.0.0.1"]) == 1
    assert "Usage" in capsys.readouterr().err


def test_main_bad_port(capsys):
    assert main(["127.0.0.1", "99999"]) == 1
    assert "Invalid port number: 99999" in capsys.readouterr().out