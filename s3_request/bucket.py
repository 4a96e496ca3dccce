"""High level bucket client: one method per storage operation."""

from __future__ import annotations

import logging
import os
from typing import Mapping
from typing import Sequence

import aiofiles

from s3_request import command as cmd
from s3_request.bucket_config import AddressingStyle
from s3_request.bucket_config import BucketConfig
from s3_request.config import Config
from s3_request.config import get_config
from s3_request.credentials import CredentialsProvider
from s3_request.credentials import EnvironmentCredentials
from s3_request.errors import HttpFailureError
from s3_request.executor import RequestExecutor
from s3_request.models import CompleteMultipartUploadResult
from s3_request.models import CopyObjectResult
from s3_request.models import InitiateMultipartUploadResponse
from s3_request.models import ListBucketResult
from s3_request.models import ListMultipartUploadsResult
from s3_request.models import parse_location
from s3_request.models import parse_tagging
from s3_request.region import Region
from s3_request.request import PresignedPost
from s3_request.request import S3Request
from s3_request.response import ByteSink
from s3_request.response import ResponseData
from s3_request.transport import HttpxTransport
from s3_request.transport import Transport
from s3_request.xml_helpers import error_code_from_body


logger = logging.getLogger(__name__)


def _ensure_success(data: ResponseData) -> ResponseData:
    """Raise HttpFailureError for a non-2xx response whose body would otherwise be parsed."""
    if not data.is_success:
        body = data.body.decode("utf-8", errors="replace")
        raise HttpFailureError(data.status_code, body, error_code_from_body(body))
    return data


class Bucket:
    """
    Storage operations against a single bucket.

    Every call builds a fresh request descriptor (refreshing credentials),
    then hands it to the executor. Multipart uploads are exposed as their
    individual steps; the caller drives the sequence.
    """

    def __init__(self, config: BucketConfig, executor: RequestExecutor) -> None:
        self.config = config
        self.executor = executor

    @classmethod
    def from_config(
        cls,
        name: str,
        credentials: CredentialsProvider | None = None,
        config: Config | None = None,
        transport: Transport | None = None,
    ) -> Bucket:
        """Build a bucket client from environment configuration."""
        config = config or get_config()
        bucket_config = BucketConfig(
            name=name,
            region=Region.parse(config.default_region),
            credentials=credentials or EnvironmentCredentials(),
            addressing=AddressingStyle.PATH_STYLE if config.path_style else AddressingStyle.VIRTUAL_HOSTED,
        )
        executor = RequestExecutor(
            transport or HttpxTransport(timeout=config.httpx_timeout),
            strict=config.fail_on_err,
            chunk_size=config.stream_chunk_size,
        )
        return cls(bucket_config, executor)

    @property
    def name(self) -> str:
        return self.config.name

    async def _request(self, path: str, command: cmd.Command) -> S3Request:
        return await S3Request.new(self.config, path, command)

    # Objects

    async def put_object(
        self, path: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> ResponseData:
        """Upload an object. The returned body holds the ETag of the stored object."""
        request = await self._request(path, cmd.PutObject(content=content, content_type=content_type))
        return await self.executor.response_data(request, etag=True)

    async def get_object(self, path: str) -> ResponseData:
        request = await self._request(path, cmd.GetObject())
        return await self.executor.response_data(request)

    async def get_object_range(self, path: str, start: int, end: int | None = None) -> ResponseData:
        """Fetch bytes ``start`` to ``end`` inclusive; to the end of the object when ``end`` is None."""
        request = await self._request(path, cmd.GetObjectRange(start=start, end=end))
        return await self.executor.response_data(request)

    async def get_object_to_writer(self, path: str, sink: ByteSink) -> int:
        """Stream an object into ``sink`` without buffering it. Returns the status code."""
        request = await self._request(path, cmd.GetObject())
        return await self.executor.response_data_to_writer(request, sink)

    async def get_object_to_file(self, path: str, destination: str | os.PathLike[str]) -> int:
        request = await self._request(path, cmd.GetObject())
        async with aiofiles.open(destination, mode="wb") as fp:
            return await self.executor.response_data_to_writer(request, fp)

    async def get_object_torrent(self, path: str) -> ResponseData:
        request = await self._request(path, cmd.GetObjectTorrent())
        return await self.executor.response_data(request)

    async def head_object(self, path: str) -> tuple[dict[str, str], int]:
        request = await self._request(path, cmd.HeadObject())
        return await self.executor.response_header(request)

    async def delete_object(self, path: str) -> ResponseData:
        request = await self._request(path, cmd.DeleteObject())
        return await self.executor.response_data(request)

    async def copy_object_internal(self, from_path: str, to_path: str) -> tuple[CopyObjectResult, int]:
        """Server-side copy of an object within this bucket."""
        source = f"/{self.name}/{from_path.lstrip('/')}"
        request = await self._request(to_path, cmd.CopyObject(source_path=source))
        data = _ensure_success(await self.executor.response_data(request))
        return CopyObjectResult.from_xml(data.body), data.status_code

    # Tagging

    async def get_object_tagging(self, path: str) -> tuple[dict[str, str], int]:
        request = await self._request(path, cmd.GetObjectTagging())
        data = _ensure_success(await self.executor.response_data(request))
        return parse_tagging(data.body), data.status_code

    async def put_object_tagging(self, path: str, tags: Mapping[str, str]) -> ResponseData:
        request = await self._request(path, cmd.PutObjectTagging(tags=dict(tags)))
        return await self.executor.response_data(request)

    async def delete_object_tagging(self, path: str) -> ResponseData:
        request = await self._request(path, cmd.DeleteObjectTagging())
        return await self.executor.response_data(request)

    # Listing

    async def list_page(
        self,
        prefix: str = "",
        delimiter: str | None = None,
        continuation_token: str | None = None,
        start_after: str | None = None,
        max_keys: int | None = None,
    ) -> tuple[ListBucketResult, int]:
        """One ListObjectsV2 page."""
        command = cmd.ListObjectsV2(
            prefix=prefix,
            delimiter=delimiter,
            continuation_token=continuation_token,
            start_after=start_after,
            max_keys=max_keys,
        )
        request = await self._request("/", command)
        data = _ensure_success(await self.executor.response_data(request))
        return ListBucketResult.from_xml(data.body), data.status_code

    async def list_page_v1(
        self,
        prefix: str = "",
        delimiter: str | None = None,
        marker: str | None = None,
        max_keys: int | None = None,
    ) -> tuple[ListBucketResult, int]:
        """One legacy ListObjects page."""
        command = cmd.ListObjects(prefix=prefix, delimiter=delimiter, marker=marker, max_keys=max_keys)
        request = await self._request("/", command)
        data = _ensure_success(await self.executor.response_data(request))
        return ListBucketResult.from_xml(data.body), data.status_code

    async def list_all(self, prefix: str = "", delimiter: str | None = None) -> list[ListBucketResult]:
        """Follow continuation tokens until the listing is exhausted."""
        results: list[ListBucketResult] = []
        continuation_token: str | None = None
        while True:
            page, _ = await self.list_page(prefix, delimiter, continuation_token)
            results.append(page)
            if not page.is_truncated or not page.next_continuation_token:
                break
            continuation_token = page.next_continuation_token
        logger.debug(f"Listed {len(results)} page(s) for prefix {prefix!r} in {self.name}")
        return results

    # Multipart

    async def initiate_multipart_upload(
        self, path: str, content_type: str = "application/octet-stream"
    ) -> InitiateMultipartUploadResponse:
        request = await self._request(path, cmd.InitiateMultipartUpload(content_type=content_type))
        data = _ensure_success(await self.executor.response_data(request))
        return InitiateMultipartUploadResponse.from_xml(data.body)

    async def put_multipart_chunk(
        self,
        chunk: bytes,
        path: str,
        part_number: int,
        upload_id: str,
        content_type: str = "application/octet-stream",
    ) -> cmd.Part:
        """Upload one part and return it with the ETag needed to complete the upload."""
        command = cmd.UploadPart(
            part_number=part_number, upload_id=upload_id, content=chunk, content_type=content_type
        )
        request = await self._request(path, command)
        data = _ensure_success(await self.executor.response_data(request, etag=True))
        return cmd.Part(part_number=part_number, etag=data.as_str())

    async def complete_multipart_upload(
        self, path: str, upload_id: str, parts: Sequence[cmd.Part]
    ) -> CompleteMultipartUploadResult:
        request = await self._request(path, cmd.CompleteMultipartUpload(upload_id=upload_id, parts=tuple(parts)))
        data = _ensure_success(await self.executor.response_data(request))
        return CompleteMultipartUploadResult.from_xml(data.body)

    async def abort_upload(self, path: str, upload_id: str) -> None:
        request = await self._request(path, cmd.AbortMultipartUpload(upload_id=upload_id))
        _ensure_success(await self.executor.response_data(request))

    async def list_multiparts_uploads_page(
        self,
        prefix: str | None = None,
        delimiter: str | None = None,
        key_marker: str | None = None,
        max_uploads: int | None = None,
    ) -> tuple[ListMultipartUploadsResult, int]:
        command = cmd.ListMultipartUploads(
            prefix=prefix, delimiter=delimiter, key_marker=key_marker, max_uploads=max_uploads
        )
        request = await self._request("/", command)
        data = _ensure_success(await self.executor.response_data(request))
        return ListMultipartUploadsResult.from_xml(data.body), data.status_code

    # Bucket

    async def create_bucket(self, configuration: cmd.BucketConfiguration | None = None) -> ResponseData:
        """Create this bucket. The location constraint defaults to the bucket's region."""
        if configuration is None:
            configuration = cmd.BucketConfiguration(location_constraint=self.config.region.name)
        request = await self._request("", cmd.CreateBucket(config=configuration))
        return await self.executor.response_data(request)

    async def location(self) -> tuple[str, int]:
        request = await self._request("", cmd.GetBucketLocation())
        data = _ensure_success(await self.executor.response_data(request))
        return parse_location(data.body), data.status_code

    # Presigning, no network involved

    async def presign_get(
        self, path: str, expiry_secs: int, custom_queries: Mapping[str, str] | None = None
    ) -> str:
        request = await self._request(path, cmd.PresignGet(expiry_secs=expiry_secs, custom_queries=custom_queries))
        return request.presigned()

    async def presign_put(
        self, path: str, expiry_secs: int, custom_headers: Mapping[str, str] | None = None
    ) -> str:
        request = await self._request(path, cmd.PresignPut(expiry_secs=expiry_secs, custom_headers=custom_headers))
        return request.presigned()

    async def presign_delete(self, path: str, expiry_secs: int) -> str:
        request = await self._request(path, cmd.PresignDelete(expiry_secs=expiry_secs))
        return request.presigned()

    async def presign_post(self, path: str, post_policy: str) -> PresignedPost:
        request = await self._request(path, cmd.PresignPost(post_policy=post_policy))
        return request.presigned_post()
