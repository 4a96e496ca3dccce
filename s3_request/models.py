"""Pydantic models for the XML documents S3 returns."""

from __future__ import annotations

from pydantic import BaseModel

from s3_request import xml_helpers
from s3_request.errors import InvalidResponseError
from s3_request.xml_helpers import Element


def _text(elem: Element, tag: str) -> str | None:
    return xml_helpers.find_text(elem, tag)


def _required(elem: Element, tag: str) -> str:
    value = xml_helpers.find_text(elem, tag)
    if value is None:
        raise InvalidResponseError(f"<{elem.tag}> is missing <{tag}>")
    return value


def _int(elem: Element, tag: str) -> int | None:
    value = xml_helpers.find_text(elem, tag)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as e:
        raise InvalidResponseError(f"<{tag}> is not an integer: {value!r}") from e


def _bool(elem: Element, tag: str) -> bool:
    return (xml_helpers.find_text(elem, tag) or "").strip().lower() == "true"


def _root(data: bytes, expected: str) -> Element:
    root = xml_helpers.parse_xml(data)
    if root.tag != expected:
        raise InvalidResponseError(f"Expected <{expected}> document, got <{root.tag}>")
    return root


def _common_prefixes(root: Element) -> list[CommonPrefix]:
    return [
        CommonPrefix(prefix=_required(elem, "Prefix")) for elem in xml_helpers.find_all(root, "CommonPrefixes")
    ]


class Owner(BaseModel):
    id: str | None = None
    display_name: str | None = None


class ObjectSummary(BaseModel):
    key: str
    last_modified: str | None = None
    e_tag: str | None = None
    size: int = 0
    storage_class: str | None = None
    owner: Owner | None = None


class CommonPrefix(BaseModel):
    prefix: str


class ListBucketResult(BaseModel):
    """One page of ListObjects (v1) or ListObjectsV2 output."""

    name: str
    prefix: str = ""
    delimiter: str | None = None
    max_keys: int | None = None
    is_truncated: bool = False
    key_count: int | None = None
    marker: str | None = None
    next_marker: str | None = None
    continuation_token: str | None = None
    next_continuation_token: str | None = None
    start_after: str | None = None
    contents: list[ObjectSummary] = []
    common_prefixes: list[CommonPrefix] = []

    @classmethod
    def from_xml(cls, data: bytes) -> ListBucketResult:
        root = _root(data, "ListBucketResult")
        contents = []
        for elem in xml_helpers.find_all(root, "Contents"):
            owner_elem = elem.find("Owner")
            owner = None
            if owner_elem is not None:
                owner = Owner(id=_text(owner_elem, "ID"), display_name=_text(owner_elem, "DisplayName"))
            contents.append(
                ObjectSummary(
                    key=_required(elem, "Key"),
                    last_modified=_text(elem, "LastModified"),
                    e_tag=_text(elem, "ETag"),
                    size=_int(elem, "Size") or 0,
                    storage_class=_text(elem, "StorageClass"),
                    owner=owner,
                )
            )

        return cls(
            name=_required(root, "Name"),
            prefix=_text(root, "Prefix") or "",
            delimiter=_text(root, "Delimiter"),
            max_keys=_int(root, "MaxKeys"),
            is_truncated=_bool(root, "IsTruncated"),
            key_count=_int(root, "KeyCount"),
            marker=_text(root, "Marker"),
            next_marker=_text(root, "NextMarker"),
            continuation_token=_text(root, "ContinuationToken"),
            next_continuation_token=_text(root, "NextContinuationToken"),
            start_after=_text(root, "StartAfter"),
            contents=contents,
            common_prefixes=_common_prefixes(root),
        )


class MultipartUpload(BaseModel):
    key: str
    upload_id: str
    initiated: str | None = None
    storage_class: str | None = None


class ListMultipartUploadsResult(BaseModel):
    bucket: str
    prefix: str | None = None
    delimiter: str | None = None
    key_marker: str | None = None
    upload_id_marker: str | None = None
    next_key_marker: str | None = None
    next_upload_id_marker: str | None = None
    max_uploads: int | None = None
    is_truncated: bool = False
    uploads: list[MultipartUpload] = []
    common_prefixes: list[CommonPrefix] = []

    @classmethod
    def from_xml(cls, data: bytes) -> ListMultipartUploadsResult:
        root = _root(data, "ListMultipartUploadsResult")
        uploads = [
            MultipartUpload(
                key=_required(elem, "Key"),
                upload_id=_required(elem, "UploadId"),
                initiated=_text(elem, "Initiated"),
                storage_class=_text(elem, "StorageClass"),
            )
            for elem in xml_helpers.find_all(root, "Upload")
        ]
        return cls(
            bucket=_required(root, "Bucket"),
            prefix=_text(root, "Prefix"),
            delimiter=_text(root, "Delimiter"),
            key_marker=_text(root, "KeyMarker"),
            upload_id_marker=_text(root, "UploadIdMarker"),
            next_key_marker=_text(root, "NextKeyMarker"),
            next_upload_id_marker=_text(root, "NextUploadIdMarker"),
            max_uploads=_int(root, "MaxUploads"),
            is_truncated=_bool(root, "IsTruncated"),
            uploads=uploads,
            common_prefixes=_common_prefixes(root),
        )


class InitiateMultipartUploadResponse(BaseModel):
    bucket: str
    key: str
    upload_id: str

    @classmethod
    def from_xml(cls, data: bytes) -> InitiateMultipartUploadResponse:
        root = _root(data, "InitiateMultipartUploadResult")
        return cls(
            bucket=_required(root, "Bucket"),
            key=_required(root, "Key"),
            upload_id=_required(root, "UploadId"),
        )


class CompleteMultipartUploadResult(BaseModel):
    location: str | None = None
    bucket: str | None = None
    key: str | None = None
    e_tag: str | None = None

    @classmethod
    def from_xml(cls, data: bytes) -> CompleteMultipartUploadResult:
        root = _root(data, "CompleteMultipartUploadResult")
        return cls(
            location=_text(root, "Location"),
            bucket=_text(root, "Bucket"),
            key=_text(root, "Key"),
            e_tag=_text(root, "ETag"),
        )


class CopyObjectResult(BaseModel):
    e_tag: str | None = None
    last_modified: str | None = None

    @classmethod
    def from_xml(cls, data: bytes) -> CopyObjectResult:
        root = _root(data, "CopyObjectResult")
        return cls(e_tag=_text(root, "ETag"), last_modified=_text(root, "LastModified"))


def parse_tagging(data: bytes) -> dict[str, str]:
    """Turn a <Tagging> document into a key -> value mapping."""
    root = _root(data, "Tagging")
    tag_set = root.find("TagSet")
    if tag_set is None:
        return {}
    return {_required(tag, "Key"): _text(tag, "Value") or "" for tag in xml_helpers.find_all(tag_set, "Tag")}


def parse_location(data: bytes) -> str:
    """Region name from a GetBucketLocation answer; an empty constraint means us-east-1."""
    root = _root(data, "LocationConstraint")
    return (root.text or "").strip() or "us-east-1"
