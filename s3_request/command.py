"""Operation variants understood by the request builder.

Each variant is a frozen dataclass carrying exactly the data its URL, headers
and body need. The HTTP verb is a class attribute, so the verb mapping is
fixed per variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import ClassVar
from typing import Mapping

from s3_request import xml_helpers
from s3_request.errors import MalformedInputError
from s3_request.signing import sha256_hex


MAX_PART_NUMBER = 10000


class HttpMethod(str, Enum):
    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"
    HEAD = "HEAD"

    def __str__(self) -> str:
        return self.value


class CannedBucketAcl(str, Enum):
    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_READ_WRITE = "public-read-write"
    AUTHENTICATED_READ = "authenticated-read"


@dataclass(frozen=True)
class Multipart:
    """Part coordinates that turn a PutObject into a part upload."""

    part_number: int
    upload_id: str

    def __post_init__(self) -> None:
        _check_part_number(self.part_number)
        if not self.upload_id:
            raise MalformedInputError("upload_id must not be empty")

    def query_pairs(self) -> list[tuple[str, str | None]]:
        return [("partNumber", str(self.part_number)), ("uploadId", self.upload_id)]


@dataclass(frozen=True)
class Part:
    part_number: int
    etag: str


@dataclass(frozen=True)
class BucketConfiguration:
    """Options sent with CreateBucket, as headers plus an optional location body."""

    acl: CannedBucketAcl | None = None
    object_lock_enabled: bool = False
    grant_full_control: str | None = None
    grant_read: str | None = None
    grant_read_acp: str | None = None
    grant_write: str | None = None
    grant_write_acp: str | None = None
    location_constraint: str | None = None

    def headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.acl is not None:
            headers["x-amz-acl"] = self.acl.value
        if self.object_lock_enabled:
            headers["x-amz-bucket-object-lock-enabled"] = "true"
        grants = {
            "x-amz-grant-full-control": self.grant_full_control,
            "x-amz-grant-read": self.grant_read,
            "x-amz-grant-read-acp": self.grant_read_acp,
            "x-amz-grant-write": self.grant_write,
            "x-amz-grant-write-acp": self.grant_write_acp,
        }
        headers.update({name: value for name, value in grants.items() if value})
        return headers

    def location_constraint_payload(self) -> bytes | None:
        # us-east-1 is the implicit default and rejects an explicit constraint
        if not self.location_constraint or self.location_constraint == "us-east-1":
            return None
        root = xml_helpers.create_element("CreateBucketConfiguration", xmlns=xml_helpers.S3_XMLNS)
        xml_helpers.add_subelement(root, "LocationConstraint", self.location_constraint)
        return xml_helpers.to_xml_bytes(root)


def _check_part_number(part_number: int) -> None:
    if not 1 <= part_number <= MAX_PART_NUMBER:
        raise MalformedInputError(f"part_number must be between 1 and {MAX_PART_NUMBER}, got {part_number}")


@dataclass(frozen=True)
class Command:
    """Base for every operation variant.

    ``sends_content_headers`` is false for reads, which carry neither
    Content-Length nor Content-Type.
    """

    http_verb: ClassVar[HttpMethod]
    sends_content_headers: ClassVar[bool] = True

    def body(self) -> bytes:
        return b""

    def media_type(self) -> str:
        return "text/plain"

    def content_length(self) -> int:
        return len(self.body())

    def sha256(self) -> str:
        return sha256_hex(self.body())


@dataclass(frozen=True)
class GetObject(Command):
    http_verb = HttpMethod.GET
    sends_content_headers = False


@dataclass(frozen=True)
class GetObjectRange(Command):
    http_verb = HttpMethod.GET
    sends_content_headers = False

    start: int
    end: int | None = None

    def __post_init__(self) -> None:
        if self.start < 0:
            raise MalformedInputError(f"Range start must not be negative, got {self.start}")
        if self.end is not None and self.end < self.start:
            raise MalformedInputError(f"Range end {self.end} is before start {self.start}")

    def range_header(self) -> str:
        if self.end is None:
            return f"bytes={self.start}-"
        return f"bytes={self.start}-{self.end}"


@dataclass(frozen=True)
class GetObjectTorrent(Command):
    http_verb = HttpMethod.GET
    sends_content_headers = False


@dataclass(frozen=True)
class GetObjectTagging(Command):
    http_verb = HttpMethod.GET
    sends_content_headers = False


@dataclass(frozen=True)
class HeadObject(Command):
    http_verb = HttpMethod.HEAD
    sends_content_headers = False


@dataclass(frozen=True)
class DeleteObject(Command):
    http_verb = HttpMethod.DELETE


@dataclass(frozen=True)
class PutObject(Command):
    http_verb = HttpMethod.PUT

    content: bytes
    content_type: str = "application/octet-stream"
    multipart: Multipart | None = None

    def body(self) -> bytes:
        return self.content

    def media_type(self) -> str:
        return self.content_type


@dataclass(frozen=True)
class PutObjectTagging(Command):
    http_verb = HttpMethod.PUT

    tags: Mapping[str, str]

    def body(self) -> bytes:
        root = xml_helpers.create_element("Tagging")
        tag_set = xml_helpers.add_subelement(root, "TagSet")
        for key, value in self.tags.items():
            tag = xml_helpers.add_subelement(tag_set, "Tag")
            xml_helpers.add_subelement(tag, "Key", key)
            xml_helpers.add_subelement(tag, "Value", value)
        return xml_helpers.to_xml_bytes(root)

    def media_type(self) -> str:
        return "application/xml"


@dataclass(frozen=True)
class DeleteObjectTagging(Command):
    http_verb = HttpMethod.DELETE


@dataclass(frozen=True)
class CopyObject(Command):
    http_verb = HttpMethod.PUT
    sends_content_headers = False

    source_path: str


@dataclass(frozen=True)
class ListObjects(Command):
    http_verb = HttpMethod.GET
    sends_content_headers = False

    prefix: str = ""
    delimiter: str | None = None
    marker: str | None = None
    max_keys: int | None = None


@dataclass(frozen=True)
class ListObjectsV2(Command):
    http_verb = HttpMethod.GET
    sends_content_headers = False

    prefix: str = ""
    delimiter: str | None = None
    continuation_token: str | None = None
    start_after: str | None = None
    max_keys: int | None = None


@dataclass(frozen=True)
class InitiateMultipartUpload(Command):
    http_verb = HttpMethod.POST

    content_type: str = "application/octet-stream"

    def media_type(self) -> str:
        return self.content_type


@dataclass(frozen=True)
class UploadPart(Command):
    http_verb = HttpMethod.PUT

    part_number: int
    upload_id: str
    content: bytes
    content_type: str = "application/octet-stream"

    def __post_init__(self) -> None:
        _check_part_number(self.part_number)

    def body(self) -> bytes:
        return self.content

    def media_type(self) -> str:
        return self.content_type

    def multipart(self) -> Multipart:
        return Multipart(part_number=self.part_number, upload_id=self.upload_id)


@dataclass(frozen=True)
class CompleteMultipartUpload(Command):
    http_verb = HttpMethod.POST

    upload_id: str
    parts: tuple[Part, ...] = field(default_factory=tuple)

    def body(self) -> bytes:
        root = xml_helpers.create_element("CompleteMultipartUpload")
        for part in sorted(self.parts, key=lambda p: p.part_number):
            part_elem = xml_helpers.add_subelement(root, "Part")
            xml_helpers.add_subelement(part_elem, "PartNumber", str(part.part_number))
            xml_helpers.add_subelement(part_elem, "ETag", part.etag)
        return xml_helpers.to_xml_bytes(root)

    def media_type(self) -> str:
        return "application/xml"


@dataclass(frozen=True)
class AbortMultipartUpload(Command):
    http_verb = HttpMethod.DELETE

    upload_id: str


@dataclass(frozen=True)
class ListMultipartUploads(Command):
    http_verb = HttpMethod.GET
    sends_content_headers = False

    prefix: str | None = None
    delimiter: str | None = None
    key_marker: str | None = None
    max_uploads: int | None = None


@dataclass(frozen=True)
class CreateBucket(Command):
    http_verb = HttpMethod.PUT

    config: BucketConfiguration = field(default_factory=BucketConfiguration)

    def body(self) -> bytes:
        return self.config.location_constraint_payload() or b""

    def media_type(self) -> str:
        return "application/xml"


@dataclass(frozen=True)
class GetBucketLocation(Command):
    http_verb = HttpMethod.GET
    sends_content_headers = False


@dataclass(frozen=True)
class PresignGet(Command):
    http_verb = HttpMethod.GET

    expiry_secs: int
    custom_queries: Mapping[str, str] | None = None


@dataclass(frozen=True)
class PresignPut(Command):
    http_verb = HttpMethod.PUT

    expiry_secs: int
    custom_headers: Mapping[str, str] | None = None


@dataclass(frozen=True)
class PresignDelete(Command):
    http_verb = HttpMethod.DELETE

    expiry_secs: int


@dataclass(frozen=True)
class PresignPost(Command):
    http_verb = HttpMethod.POST

    post_policy: str


PRESIGNED_COMMANDS = (PresignGet, PresignPut, PresignDelete, PresignPost)

ALL_COMMANDS: tuple[type[Command], ...] = (
    GetObject,
    GetObjectRange,
    GetObjectTorrent,
    GetObjectTagging,
    HeadObject,
    DeleteObject,
    PutObject,
    PutObjectTagging,
    DeleteObjectTagging,
    CopyObject,
    ListObjects,
    ListObjectsV2,
    InitiateMultipartUpload,
    UploadPart,
    CompleteMultipartUpload,
    AbortMultipartUpload,
    ListMultipartUploads,
    CreateBucket,
    GetBucketLocation,
    PresignGet,
    PresignPut,
    PresignDelete,
    PresignPost,
)
