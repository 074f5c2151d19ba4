"""Tests for request handling and the Unix-socket connection server."""

from __future__ import annotations

import os
import socket
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from les.client.transport import send_request
from les.core.errors import StorageError
from les.daemon.protocol import (
    ErrorResponse,
    PingRequest,
    PongResponse,
    QueryRequest,
    QueryResultResponse,
    decode_response,
)
from les.daemon.server import ConnectionServer, handle_payload
from les.index.models import Entry, PatternMode, Query
from les.index.ops import Index


@pytest.fixture
def built_index(index: Index, tree: Path) -> Index:
    index.rebuild([str(tree)])
    return index


@pytest.fixture
def server(built_index: Index, socket_path: str) -> Generator[ConnectionServer, None, None]:
    srv = ConnectionServer(socket_path, built_index, read_timeout_sec=5.0)
    srv.serve_in_background()
    yield srv
    srv.close()


def _raw_exchange(socket_path: str, payload: bytes) -> bytes:
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.settimeout(5.0)
        sock.connect(socket_path)
        sock.sendall(payload)
        sock.shutdown(socket.SHUT_WR)
        chunks = []
        while chunk := sock.recv(4096):
            chunks.append(chunk)
    return b"".join(chunks)


class TestHandlePayload:
    def test_ping(self, index: Index) -> None:
        assert isinstance(handle_payload(index, b'{"type": "ping"}'), PongResponse)

    def test_query(self, built_index: Index, tree: Path) -> None:
        response = handle_payload(
            built_index, b'{"type": "query", "query": {"pattern": "readme"}}'
        )

        assert isinstance(response, QueryResultResponse)
        assert [e.path for e in response.entries] == [str(tree / "docs" / "readme.md")]

    def test_malformed_request(self, index: Index) -> None:
        response = handle_payload(index, b"garbage")

        assert isinstance(response, ErrorResponse)
        assert response.message.startswith("Invalid request: ")

    def test_bad_pattern(self, index: Index) -> None:
        response = handle_payload(
            index, b'{"type": "query", "query": {"pattern": "[", "mode": "glob"}}'
        )

        assert isinstance(response, ErrorResponse)
        assert "Invalid glob pattern" in response.message

    def test_bad_regex(self, index: Index) -> None:
        response = handle_payload(
            index, b'{"type": "query", "query": {"pattern": "(", "mode": "regex"}}'
        )

        assert isinstance(response, ErrorResponse)
        assert "Invalid regex pattern" in response.message

    def test_storage_error_becomes_error_response(self) -> None:
        index = MagicMock(spec=Index)
        index.run_query.side_effect = StorageError.corrupt_record("/x", "bad")

        response = handle_payload(index, b'{"type": "query", "query": {"pattern": "x"}}')

        assert isinstance(response, ErrorResponse)
        assert "Corrupt index record" in response.message


class TestConnectionServer:
    def test_ping_round_trip(self, server: ConnectionServer, socket_path: str) -> None:
        assert isinstance(send_request(socket_path, PingRequest(), timeout=5.0), PongResponse)

    def test_query_round_trip(
        self, server: ConnectionServer, socket_path: str, tree: Path
    ) -> None:
        request = QueryRequest(query=Query(pattern="*.py", mode=PatternMode.GLOB))

        response = send_request(socket_path, request, timeout=5.0)

        assert isinstance(response, QueryResultResponse)
        assert len(response.entries) == 1
        entry = response.entries[0]
        assert isinstance(entry, Entry)
        assert entry.path == str(tree / "src" / "main.py")
        assert entry.is_dir is False
        assert entry.size == len("print('hello')")

    def test_malformed_payload_gets_error_response(
        self, server: ConnectionServer, socket_path: str
    ) -> None:
        response = decode_response(_raw_exchange(socket_path, b'{"type": "nope"}'))

        assert isinstance(response, ErrorResponse)
        assert response.message.startswith("Invalid request: ")

    def test_serves_sequential_connections(
        self, server: ConnectionServer, socket_path: str
    ) -> None:
        for _ in range(5):
            assert isinstance(send_request(socket_path, PingRequest(), timeout=5.0), PongResponse)

    def test_bind_replaces_stale_socket(self, built_index: Index, socket_path: str) -> None:
        Path(socket_path).write_text("stale")

        srv = ConnectionServer(socket_path, built_index)
        srv.serve_in_background()
        try:
            assert isinstance(send_request(socket_path, PingRequest(), timeout=5.0), PongResponse)
        finally:
            srv.close()

    def test_close_removes_socket(self, built_index: Index, socket_path: str) -> None:
        srv = ConnectionServer(socket_path, built_index)
        srv.serve_in_background()
        assert os.path.exists(socket_path)

        srv.close()

        assert not os.path.exists(socket_path)

    def test_read_timeout(self, built_index: Index, socket_path: str) -> None:
        srv = ConnectionServer(socket_path, built_index, read_timeout_sec=0.2)
        srv.serve_in_background()
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.settimeout(5.0)
                sock.connect(socket_path)
                sock.sendall(b'{"type": "ping"}')
                # No half-close: the server gives up waiting for end of input
                data = sock.recv(4096)
            response = decode_response(data)
        finally:
            srv.close()

        assert isinstance(response, ErrorResponse)
        assert "timed out" in response.message

    def test_unexpected_failure_gets_internal_error(self, socket_path: str) -> None:
        index = MagicMock(spec=Index)
        index.run_query.side_effect = RuntimeError("boom")
        srv = ConnectionServer(socket_path, index, read_timeout_sec=5.0)
        srv.serve_in_background()
        try:
            data = _raw_exchange(socket_path, b'{"type": "query", "query": {"pattern": "x"}}')
            # The server keeps serving after the failure
            assert isinstance(send_request(socket_path, PingRequest(), timeout=5.0), PongResponse)
        finally:
            srv.close()

        response = decode_response(data)
        assert isinstance(response, ErrorResponse)
        assert response.message == "Internal error: boom"
