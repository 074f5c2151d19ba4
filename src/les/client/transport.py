"""Client side of the wire protocol: one request, one response, per connection."""

from __future__ import annotations

import socket

from les.core.errors import ProtocolError
from les.daemon.protocol import (
    Request,
    Response,
    decode_response,
    encode_request,
)

_READ_CHUNK = 64 * 1024


def send_request(socket_path: str, request: Request, timeout: float | None = None) -> Response:
    """Send request to the daemon and return its decoded response.

    The write side is shut down after sending so the daemon sees end of input.

    Raises:
        ProtocolError: If the daemon is unreachable or answers with garbage.
    """
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            sock.connect(socket_path)
            sock.sendall(encode_request(request))
            sock.shutdown(socket.SHUT_WR)

            chunks: list[bytes] = []
            while chunk := sock.recv(_READ_CHUNK):
                chunks.append(chunk)
    except OSError as e:
        raise ProtocolError.transport_failed(socket_path, str(e)) from e

    return decode_response(b"".join(chunks))
