"""Local-socket callback server for child processes.

A child process (the style compiler, in practice) cannot call into the
build directly.  Instead the build starts an :class:`IpcServer`, exports
its socket path through :data:`SOCKET_ENV`, and the child sends one JSON
request per connection:

* ``{"type": "list-functions"}`` returns the sorted callback names.
* ``{"type": "call", "params": {"name": ..., "args": [...]}}`` invokes a
  callback with :class:`~assetforge.models.values.Value` arguments and
  returns its result.

Protocol errors are answered with ``{"error": ...}``; they never take the
server down.  The socket lives in a private temporary directory that is
removed when the server stops.

Lifecycle::

    CREATED -> RUNNING -> SHUTTING_DOWN -> STOPPED
"""

from __future__ import annotations

import json
import logging
import shutil
import signal
import socket
import tempfile
import threading
from collections.abc import Callable, Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from assetforge.errors import AssetforgeError
from assetforge.models.ipc import CALL, LIST_FUNCTIONS, IpcRequest, IpcResponse
from assetforge.models.values import Value

logger = logging.getLogger(__name__)

SOCKET_ENV = "ASSETFORGE_SOCK"
TEMP_PREFIX = "assetforge-ipc-callback"
SOCKET_NAME = "control.sock"

# A callback receives tagged values and returns anything Value.wrap accepts.
Callback = Callable[..., Any]

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class IpcError(AssetforgeError):
    """Base class for bridge failures on the host side."""


class BridgeStateError(IpcError):
    """Raised on a lifecycle operation that the current state forbids."""


class ServerState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class IpcServer:
    """Per-build callback server on a private Unix socket.

    Parameters
    ----------
    callbacks:
        Mapping of callback name to callable.
    handle_signals:
        Stop the server on SIGINT/SIGTERM.  Only honoured when started from
        the main thread; previous handlers are chained and restored.
    accept_timeout:
        Poll interval of the accept loop, bounding how long ``stop()``
        waits for the listener to notice shutdown.
    """

    def __init__(
        self,
        callbacks: Mapping[str, Callback],
        *,
        handle_signals: bool = True,
        accept_timeout: float = 0.2,
    ) -> None:
        self._callbacks: dict[str, Callback] = dict(callbacks)
        self._handle_signals = handle_signals
        self._accept_timeout = accept_timeout

        self._state = ServerState.CREATED
        self._state_lock = threading.RLock()
        self._stop_event = threading.Event()
        self._temp_dir: Path | None = None
        self._listener: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None
        self._handlers: set[threading.Thread] = set()
        self._handlers_lock = threading.Lock()
        self._previous_handlers: dict[int, Any] = {}

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def callback_names(self) -> list[str]:
        return sorted(self._callbacks)

    @property
    def temp_dir(self) -> Path | None:
        return self._temp_dir

    @property
    def socket_path(self) -> Path:
        """Path of the listening socket.

        Raises
        ------
        BridgeStateError
            If the server has not been started.
        """
        if self._temp_dir is None:
            raise BridgeStateError("server has not been started")
        return self._temp_dir / SOCKET_NAME

    def env(self) -> dict[str, str]:
        """Environment entries a child needs to reach this server."""
        return {SOCKET_ENV: str(self.socket_path)}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> IpcServer:
        """Bind the socket and begin accepting connections."""
        with self._state_lock:
            if self._state is not ServerState.CREATED:
                raise BridgeStateError(f"cannot start server in state {self._state.value}")
            self._temp_dir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
            listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                listener.bind(str(self._temp_dir / SOCKET_NAME))
                listener.listen()
                listener.settimeout(self._accept_timeout)
            except OSError:
                listener.close()
                shutil.rmtree(self._temp_dir, ignore_errors=True)
                self._temp_dir = None
                raise
            self._listener = listener
            self._state = ServerState.RUNNING

        self._install_signal_handlers()
        self._accept_thread = threading.Thread(
            target=self._accept_loop, name="ipc-accept", daemon=True
        )
        self._accept_thread.start()
        logger.debug("ipc server listening on %s", self.socket_path)
        return self

    def stop(self) -> None:
        """Stop accepting, wait for in-flight requests and remove the socket.

        Idempotent; stopping a server that never started moves it straight
        to ``STOPPED``.
        """
        with self._state_lock:
            if self._state in (ServerState.SHUTTING_DOWN, ServerState.STOPPED):
                return
            if self._state is ServerState.CREATED:
                self._state = ServerState.STOPPED
                return
            self._state = ServerState.SHUTTING_DOWN

        self._stop_event.set()
        if self._accept_thread is not None and self._accept_thread is not threading.current_thread():
            self._accept_thread.join()
        if self._listener is not None:
            self._listener.close()

        with self._handlers_lock:
            handlers = list(self._handlers)
        for thread in handlers:
            thread.join()

        self._restore_signal_handlers()
        if self._temp_dir is not None:
            shutil.rmtree(self._temp_dir, ignore_errors=True)

        with self._state_lock:
            self._state = ServerState.STOPPED
        logger.debug("ipc server stopped")

    def __enter__(self) -> IpcServer:
        return self.start()

    def __exit__(self, *exc: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _install_signal_handlers(self) -> None:
        if not self._handle_signals or threading.current_thread() is not threading.main_thread():
            return
        for signum in _HANDLED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._on_signal)

    def _restore_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        for signum, previous in self._previous_handlers.items():
            signal.signal(signum, previous)
        self._previous_handlers.clear()

    def _on_signal(self, signum: int, frame: Any) -> None:
        logger.info("received signal %d, stopping ipc server", signum)
        previous = self._previous_handlers.get(signum)
        self.stop()
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_IGN:
            return
        elif signum == signal.SIGINT:
            raise KeyboardInterrupt
        else:
            raise SystemExit(128 + signum)

    # ------------------------------------------------------------------
    # Serving
    # ------------------------------------------------------------------

    def _accept_loop(self) -> None:
        assert self._listener is not None
        while not self._stop_event.is_set():
            try:
                conn, _ = self._listener.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if not self._stop_event.is_set():
                    logger.error("ipc accept failed: %s", exc)
                return
            conn.settimeout(None)
            thread = threading.Thread(target=self._serve_connection, args=(conn,), daemon=True)
            with self._handlers_lock:
                self._handlers.add(thread)
            thread.start()

    def _serve_connection(self, conn: socket.socket) -> None:
        try:
            with conn, conn.makefile("rb") as reader:
                line = reader.readline()
                response = self.dispatch(line)
                conn.sendall(response.to_line())
        except OSError as exc:
            logger.warning("ipc connection failed: %s", exc)
        finally:
            with self._handlers_lock:
                self._handlers.discard(threading.current_thread())

    def dispatch(self, raw: bytes | str) -> IpcResponse:
        """Answer one raw request line."""
        try:
            req = IpcRequest.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            return IpcResponse.fail(f"invalid request: {_first_line(exc)}")
        except RecursionError:
            return IpcResponse.fail("invalid request: nested too deeply")

        if req.type == LIST_FUNCTIONS:
            return IpcResponse.ok(self.callback_names)
        if req.type == CALL:
            return self._call(req.params)
        return IpcResponse.fail("unknown request type")

    def _call(self, params: dict[str, Any] | None) -> IpcResponse:
        params = params or {}
        name = params.get("name")
        if not name:
            return IpcResponse.fail("missing name in call")
        if "args" not in params or not isinstance(params["args"], list):
            return IpcResponse.fail("missing args in call")
        fn = self._callbacks.get(name) if isinstance(name, str) else None
        if fn is None:
            return IpcResponse.fail("invalid func name")

        try:
            args = [Value.from_wire(a) for a in params["args"]]
        except (TypeError, RecursionError) as exc:
            return IpcResponse.fail(f"invalid args: {exc}")

        try:
            result = fn(*args)
            return IpcResponse.ok(Value.wrap(result).to_wire())
        except Exception as exc:
            logger.debug("callback %s failed: %s", name, exc)
            return IpcResponse.fail(str(exc) or type(exc).__name__)

    def __repr__(self) -> str:
        return f"IpcServer(state={self._state.value}, callbacks={self.callback_names})"


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


def request(sock_path: Path | str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Send one request to a server at *sock_path* and return the decoded response."""
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.connect(str(sock_path))
        sock.sendall(json.dumps(payload).encode("utf-8") + b"\n")
        sock.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return json.loads(b"".join(chunks))


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__
