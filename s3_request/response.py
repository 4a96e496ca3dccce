"""Response ingestion: buffered, etag-only, streamed to a sink, or headers only."""

from __future__ import annotations

import logging
from typing import Protocol
from typing import runtime_checkable

import httpx
from pydantic import BaseModel

from s3_request.errors import EncodingError
from s3_request.errors import TransportError


logger = logging.getLogger(__name__)


class ResponseData(BaseModel):
    body: bytes
    status_code: int
    headers: dict[str, str]

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def as_str(self) -> str:
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(f"Response body is not valid UTF-8: {e}") from e


@runtime_checkable
class ByteSink(Protocol):
    """Destination for a streamed download.

    ``write`` must complete before the next chunk is requested; ``flush``
    signals that the stream ended.
    """

    async def write(self, data: bytes) -> object: ...

    async def flush(self) -> None: ...


class BytesSink:
    """In-memory sink, mostly useful for tests and small objects."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.flushed = False

    async def write(self, data: bytes) -> int:
        self._buffer.extend(data)
        return len(data)

    async def flush(self) -> None:
        self.flushed = True

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


def header_map(response: httpx.Response) -> dict[str, str]:
    return dict(response.headers.items())


async def read_buffered(response: httpx.Response, etag: bool = False) -> ResponseData:
    """
    Read the whole response, or only its ETag.

    With ``etag`` set the body is never read: the ETag header value (empty when
    absent) is returned as the body.
    """
    try:
        if etag:
            body = response.headers.get("etag", "").encode("ascii", errors="replace")
        else:
            body = await response.aread()
    except httpx.HTTPError as e:
        raise TransportError(f"Failed reading response body: {e}") from e
    finally:
        await response.aclose()

    return ResponseData(body=body, status_code=response.status_code, headers=header_map(response))


async def stream_to_sink(response: httpx.Response, sink: ByteSink, chunk_size: int | None = None) -> int:
    """
    Forward the body to ``sink`` chunk by chunk, in receipt order.

    The first failure, from the network or from the sink, aborts the stream
    and propagates. The response is closed in every case.

    Returns:
        The response status code
    """
    received = 0
    try:
        try:
            async for chunk in response.aiter_bytes(chunk_size):
                await sink.write(chunk)
                received += len(chunk)
        except httpx.HTTPError as e:
            raise TransportError(f"Stream interrupted after {received} bytes: {e}") from e
        await sink.flush()
    finally:
        await response.aclose()

    logger.debug(f"Streamed {received} bytes to sink")
    return response.status_code


async def read_headers(response: httpx.Response) -> tuple[dict[str, str], int]:
    """Return the headers and status, closing the response without reading the body."""
    await response.aclose()
    return header_map(response), response.status_code
