from __future__ import annotations

import logging
import time

import httpx

from s3_request.errors import HttpFailureError
from s3_request.errors import TransportError
from s3_request.request import S3Request
from s3_request.request_id import request_scope
from s3_request.response import ByteSink
from s3_request.response import ResponseData
from s3_request.response import read_buffered
from s3_request.response import read_headers
from s3_request.response import stream_to_sink
from s3_request.transport import Transport
from s3_request.xml_helpers import error_code_from_body


logger = logging.getLogger(__name__)


class RequestExecutor:
    """
    Sends request descriptors through a transport and hands back the result.

    Args:
        transport: HTTP collaborator
        strict: When set, a non-2xx status is raised as HttpFailureError with
            the response body instead of being returned
        chunk_size: Chunk size used when streaming to a sink
    """

    def __init__(self, transport: Transport, strict: bool = False, chunk_size: int | None = None) -> None:
        self.transport = transport
        self.strict = strict
        self.chunk_size = chunk_size

    async def response(self, request: S3Request) -> httpx.Response:
        """Issue the request. The returned response's body is unread and must be closed by the caller."""
        url = request.url()
        headers = request.headers()
        body = request.body()

        start = time.monotonic()
        response = await self.transport.execute(request.method, url, headers, body)
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.debug(
            f"{request.method} {url.host}{url.path} -> {response.status_code} "
            f"({len(body)} bytes sent, {elapsed_ms:.1f}ms)"
        )

        if self.strict and not response.is_success:
            try:
                text = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError as e:
                raise TransportError(f"Failed to read error body from {url.host}{url.path}: {e}") from e
            finally:
                await response.aclose()
            logger.warning(f"{request.method} {url.host}{url.path} failed with {response.status_code}")
            raise HttpFailureError(response.status_code, text, error_code_from_body(text))

        return response

    async def response_data(self, request: S3Request, etag: bool = False) -> ResponseData:
        with request_scope():
            response = await self.response(request)
            return await read_buffered(response, etag=etag)

    async def response_data_to_writer(self, request: S3Request, sink: ByteSink) -> int:
        with request_scope():
            response = await self.response(request)
            return await stream_to_sink(response, sink, self.chunk_size)

    async def response_header(self, request: S3Request) -> tuple[dict[str, str], int]:
        with request_scope():
            response = await self.response(request)
            return await read_headers(response)
