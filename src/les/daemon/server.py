"""Unix-socket connection server.

Each accepted connection gets its own handler thread that reads one request
until the peer half-closes, runs it against the Index, writes one response
and closes. Handler threads are daemonic: shutdown does not wait for them.
"""

from __future__ import annotations

import contextlib
import os
import socket
import socketserver
import threading
import time
from pathlib import Path

import structlog

from les.core.errors import InternalError, LesError, PatternError, ProtocolError
from les.core.logging import clear_request_id, set_request_id
from les.daemon.protocol import (
    ErrorResponse,
    PingRequest,
    PongResponse,
    QueryResultResponse,
    Response,
    decode_request,
    encode_response,
)
from les.index.ops import Index

logger = structlog.get_logger()

_READ_CHUNK = 64 * 1024


def handle_payload(index: Index, payload: bytes) -> Response:
    """Decode a request, execute it, and build the single response."""
    try:
        request = decode_request(payload)
    except ProtocolError as e:
        logger.warning("request_rejected", error=e.message)
        return ErrorResponse(message=e.message)

    if isinstance(request, PingRequest):
        logger.debug("request_handled", type="ping")
        return PongResponse()

    start = time.monotonic()
    try:
        entries = index.run_query(request.query)
    except PatternError as e:
        logger.info("query_rejected", pattern=request.query.pattern, error=e.message)
        return ErrorResponse(message=e.message)
    except LesError as e:
        logger.error("query_failed", code=e.error_name, error=e.message, **e.details)
        return ErrorResponse(message=e.message)

    logger.info(
        "request_handled",
        type="query",
        mode=request.query.mode.value,
        results=len(entries),
        duration_ms=round((time.monotonic() - start) * 1000, 1),
    )
    return QueryResultResponse(entries=entries)


def read_until_eof(sock: socket.socket) -> bytes:
    chunks: list[bytes] = []
    while True:
        chunk = sock.recv(_READ_CHUNK)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


class _RequestHandler(socketserver.BaseRequestHandler):
    server: _UnixServer

    def handle(self) -> None:
        set_request_id()
        sock: socket.socket = self.request
        try:
            if self.server.read_timeout_sec is not None:
                sock.settimeout(self.server.read_timeout_sec)
            try:
                payload = read_until_eof(sock)
            except TimeoutError:
                logger.warning("request_read_timeout", timeout=self.server.read_timeout_sec)
                response: Response = ErrorResponse(message="Invalid request: read timed out")
            else:
                try:
                    response = handle_payload(self.server.index, payload)
                except Exception as e:
                    err = InternalError.unexpected(str(e), error_type=type(e).__name__)
                    logger.exception("request_failed", **err.details)
                    response = ErrorResponse(message=err.message)
            sock.sendall(encode_response(response))
        except OSError as e:
            logger.warning("client_error", error=str(e))
        finally:
            clear_request_id()


class _UnixServer(socketserver.ThreadingUnixStreamServer):
    daemon_threads = True
    # server_close() must not wait for in-flight handlers
    block_on_close = False

    def __init__(self, socket_path: str, index: Index, read_timeout_sec: float | None) -> None:
        self.index = index
        self.read_timeout_sec = read_timeout_sec
        super().__init__(socket_path, _RequestHandler)


class ConnectionServer:
    """Owns the listening socket and its accept thread."""

    def __init__(
        self,
        socket_path: str | Path,
        index: Index,
        read_timeout_sec: float | None = None,
    ) -> None:
        self.socket_path = Path(socket_path)
        self.index = index
        self.read_timeout_sec = read_timeout_sec
        self._server: _UnixServer | None = None
        self._thread: threading.Thread | None = None

    def bind(self) -> None:
        """Remove any stale socket file and bind the listener."""
        if self.socket_path.exists() or self.socket_path.is_symlink():
            self.socket_path.unlink()
        self.socket_path.parent.mkdir(parents=True, exist_ok=True)
        self._server = _UnixServer(str(self.socket_path), self.index, self.read_timeout_sec)
        logger.info("server_listening", socket=str(self.socket_path))

    def serve_in_background(self) -> None:
        """Bind if needed and run the accept loop on its own thread."""
        if self._server is None:
            self.bind()
        assert self._server is not None
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="les-accept",
            daemon=True,
        )
        self._thread.start()

    def close(self) -> None:
        """Stop accepting, close the listener, remove the socket file."""
        if self._server is not None:
            if self._thread is not None:
                self._server.shutdown()
                self._thread.join(timeout=2.0)
                self._thread = None
            self._server.server_close()
            self._server = None
        with contextlib.suppress(FileNotFoundError):
            os.unlink(self.socket_path)
        logger.info("server_stopped", socket=str(self.socket_path))
