"""Wire protocol: one JSON message per direction per connection.

Requests:  {"type": "query", "query": {...}} | {"type": "ping"}
Responses: {"type": "pong"}
         | {"type": "query_result", "entries": [{path, is_dir, size, mtime}, ...]}
         | {"type": "error", "message": "..."}
"""

from __future__ import annotations

from typing import Annotated, Literal, TypeAlias

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from les.core.errors import ProtocolError
from les.index.models import Entry, Query


class QueryRequest(BaseModel):
    type: Literal["query"] = "query"
    query: Query


class PingRequest(BaseModel):
    type: Literal["ping"] = "ping"


class PongResponse(BaseModel):
    type: Literal["pong"] = "pong"


class QueryResultResponse(BaseModel):
    type: Literal["query_result"] = "query_result"
    entries: list[Entry] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    type: Literal["error"] = "error"
    message: str


Request: TypeAlias = Annotated[QueryRequest | PingRequest, Field(discriminator="type")]
Response: TypeAlias = Annotated[
    PongResponse | QueryResultResponse | ErrorResponse, Field(discriminator="type")
]

_request_adapter: TypeAdapter[Request] = TypeAdapter(Request)
_response_adapter: TypeAdapter[Response] = TypeAdapter(Response)


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(part) for part in err["loc"])
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def decode_request(data: bytes) -> Request:
    """Parse a request payload.

    Raises:
        ProtocolError: If the payload is not a valid tagged request.
    """
    try:
        return _request_adapter.validate_json(data)
    except ValidationError as e:
        raise ProtocolError.malformed_request(_first_error(e)) from e


def encode_request(request: Request) -> bytes:
    return _request_adapter.dump_json(request)


def decode_response(data: bytes) -> Response:
    """Parse a response payload.

    Raises:
        ProtocolError: If the payload is not a valid tagged response.
    """
    try:
        return _response_adapter.validate_json(data)
    except ValidationError as e:
        raise ProtocolError.malformed_response(_first_error(e)) from e


def encode_response(response: Response) -> bytes:
    return _response_adapter.dump_json(response)
