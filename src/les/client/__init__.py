"""Client module exports."""

from les.client.transport import send_request

__all__ = ["send_request"]
