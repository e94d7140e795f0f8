"""Adversarial tests: the IPC bridge must answer garbage without dying."""

from __future__ import annotations

import json
import socket
import threading

import pytest

from assetforge.bridge.ipc import IpcServer, request
from assetforge.models.values import Value


def _raw(path, data: bytes) -> bytes:
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.connect(str(path))
        sock.sendall(data)
        sock.shutdown(socket.SHUT_WR)
        chunks = []
        while chunk := sock.recv(65536):
            chunks.append(chunk)
    return b"".join(chunks)


def _boom(*args: Value) -> None:
    raise RuntimeError("callback exploded")


@pytest.fixture
def server():
    srv = IpcServer(
        {"double": lambda x: x.as_number() * 2, "boom": _boom},
        handle_signals=False,
    )
    srv.start()
    yield srv
    srv.stop()


MALFORMED = [
    b"",
    b"\n",
    b"not json\n",
    b"\xff\xfe\x00garbage\n",
    b"[1, 2, 3]\n",
    b'"just a string"\n',
    b"{}\n",
    b'{"type": 5}\n',
    b'{"type": "call", "params": [1, 2]}\n',
    b'{"type": "call", "params": "x"}\n',
    b'{"type": "call", "params": {"name": ["double"], "args": [1]}}\n',
    b'{"type": "call", "params": {"name": {"a": 1}, "args": [1]}}\n',
    b'{"type": "call", "params": {"name": "double", "args": {"0": 1}}}\n',
    b'{"type": "call", "params": {"name": "double", "args": [{"x": 1}]}}\n',
    b'{"type": "call", "params": {"name": "double", "args": ["a"]}}\n',
    b'{"type": "call", "params": {"name": "boom", "args": []}}\n',
    b'{"type": "shutdown"}\n',
]


class TestMalformedInput:
    @pytest.mark.parametrize("payload", MALFORMED)
    def test_error_response_and_server_survives(self, server: IpcServer, payload: bytes):
        resp = json.loads(_raw(server.socket_path, payload))
        assert set(resp) == {"error"}
        assert isinstance(resp["error"], str) and resp["error"]

        after = request(server.socket_path, {"type": "call", "params": {"name": "double", "args": [21]}})
        assert after == {"result": 42}

    def test_huge_request(self, server: IpcServer):
        blob = "x" * (4 * 1024 * 1024)
        resp = request(server.socket_path, {"type": "call", "params": {"name": blob, "args": []}})
        assert resp == {"error": "invalid func name"}

    def test_client_disconnects_without_reading(self, server: IpcServer):
        for _ in range(20):
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.connect(str(server.socket_path))
                sock.sendall(b'{"type": "list-functions"}\n')
        assert request(server.socket_path, {"type": "list-functions"}) == {"result": ["boom", "double"]}

    def test_many_concurrent_mixed_clients(self, server: IpcServer):
        results: list[dict] = []
        lock = threading.Lock()

        def client(i: int):
            if i % 3 == 0:
                resp = json.loads(_raw(server.socket_path, b"garbage\n"))
            else:
                resp = request(server.socket_path, {"type": "call", "params": {"name": "double", "args": [i]}})
            with lock:
                results.append((i, resp))

        threads = [threading.Thread(target=client, args=(i,)) for i in range(60)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 60
        for i, resp in results:
            if i % 3 == 0:
                assert "error" in resp
            else:
                assert resp == {"result": i * 2}


class TestDeepNesting:
    def test_undecodable_nesting_gets_error_reply(self, server: IpcServer):
        payload = b'{"type": "call", "params": {"name": "double", "args": ' + b"[" * 100_000 + b"\n"
        resp = json.loads(_raw(server.socket_path, payload))
        assert resp["error"].startswith("invalid request")
        assert request(server.socket_path, {"type": "list-functions"}) == {"result": ["boom", "double"]}

    def test_deeply_nested_argument_is_rejected(self, server: IpcServer):
        arg = b"[" * 900 + b"1" + b"]" * 900
        payload = b'{"type": "call", "params": {"name": "double", "args": [' + arg + b"]}}\n"
        resp = json.loads(_raw(server.socket_path, payload))
        assert resp["error"].startswith("invalid args: value nested deeper than")
        after = request(server.socket_path, {"type": "call", "params": {"name": "double", "args": [4]}})
        assert after == {"result": 8}
