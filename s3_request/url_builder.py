"""Maps a bucket, an object path and a command to the request URL."""

from __future__ import annotations

from typing import Callable
from typing import Iterable

import httpx

from s3_request import command as cmd
from s3_request.bucket_config import BucketConfig
from s3_request.errors import MalformedInputError
from s3_request.signing import uri_encode


QueryPairs = list[tuple[str, str | None]]


def _optional(pairs: QueryPairs, key: str, value: object | None) -> None:
    if value is not None:
        pairs.append((key, str(value)))


def _uploads_query(command: cmd.Command) -> QueryPairs:
    return [("uploads", None)]


def _upload_id_query(command: cmd.AbortMultipartUpload | cmd.CompleteMultipartUpload) -> QueryPairs:
    return [("uploadId", command.upload_id)]


def _torrent_query(command: cmd.Command) -> QueryPairs:
    return [("torrent", None)]


def _tagging_query(command: cmd.Command) -> QueryPairs:
    return [("tagging", "")]


def _put_object_query(command: cmd.PutObject) -> QueryPairs:
    return command.multipart.query_pairs() if command.multipart else []


def _upload_part_query(command: cmd.UploadPart) -> QueryPairs:
    return command.multipart().query_pairs()


def _list_objects_query(command: cmd.ListObjects) -> QueryPairs:
    pairs: QueryPairs = []
    _optional(pairs, "delimiter", command.delimiter)
    pairs.append(("prefix", command.prefix))
    _optional(pairs, "marker", command.marker)
    _optional(pairs, "max-keys", command.max_keys)
    return pairs


def _list_objects_v2_query(command: cmd.ListObjectsV2) -> QueryPairs:
    pairs: QueryPairs = []
    _optional(pairs, "delimiter", command.delimiter)
    pairs.append(("prefix", command.prefix))
    pairs.append(("list-type", "2"))
    _optional(pairs, "continuation-token", command.continuation_token)
    _optional(pairs, "start-after", command.start_after)
    _optional(pairs, "max-keys", command.max_keys)
    return pairs


def _list_multipart_uploads_query(command: cmd.ListMultipartUploads) -> QueryPairs:
    pairs: QueryPairs = [("uploads", None)]
    _optional(pairs, "delimiter", command.delimiter)
    _optional(pairs, "prefix", command.prefix)
    _optional(pairs, "key-marker", command.key_marker)
    _optional(pairs, "max-uploads", command.max_uploads)
    return pairs


def _location_query(command: cmd.Command) -> QueryPairs:
    return [("location", None)]


# Commands missing from this table carry no operation-specific query
OPERATION_QUERY: dict[type[cmd.Command], Callable[..., QueryPairs]] = {
    cmd.InitiateMultipartUpload: _uploads_query,
    cmd.ListMultipartUploads: _list_multipart_uploads_query,
    cmd.AbortMultipartUpload: _upload_id_query,
    cmd.CompleteMultipartUpload: _upload_id_query,
    cmd.GetObjectTorrent: _torrent_query,
    cmd.PutObject: _put_object_query,
    cmd.UploadPart: _upload_part_query,
    cmd.PutObjectTagging: _tagging_query,
    cmd.GetObjectTagging: _tagging_query,
    cmd.DeleteObjectTagging: _tagging_query,
    cmd.ListObjects: _list_objects_query,
    cmd.ListObjectsV2: _list_objects_v2_query,
    cmd.GetBucketLocation: _location_query,
}


def operation_query(command: cmd.Command) -> QueryPairs:
    builder = OPERATION_QUERY.get(type(command))
    return builder(command) if builder else []


def render_query(pairs: Iterable[tuple[str, str | None]]) -> str:
    """Render pairs in order. A ``None`` value renders a bare key such as ``uploads``."""
    parts = []
    for key, value in pairs:
        if value is None:
            parts.append(uri_encode(key, True))
        else:
            parts.append(f"{uri_encode(key, True)}={uri_encode(value, True)}")
    return "&".join(parts)


DOT_SEGMENTS = frozenset({".", ".."})


def object_url_path(path: str) -> str:
    """Encode an object key as URL path, keeping ``/`` as separator."""
    return uri_encode(path[1:] if path.startswith("/") else path, False)


def build_url(
    bucket: BucketConfig,
    path: str,
    command: cmd.Command,
    extra_pairs: Iterable[tuple[str, str | None]] = (),
) -> httpx.URL:
    """
    Build the request URL for a command.

    Args:
        bucket: Bucket addressing and extra query parameters
        path: Object key, with or without a leading slash
        command: Operation being performed
        extra_pairs: Query pairs appended last (presigned credentials, custom queries)

    Returns:
        The parsed URL

    Raises:
        MalformedInputError: when the key has a "." or ".." segment, or the
            result is not a valid URL
    """
    url_str = bucket.base_url()

    if isinstance(command, cmd.CreateBucket):
        pairs: QueryPairs = []
    else:
        # URL parsing would collapse these and address a different key
        if any(segment in DOT_SEGMENTS for segment in path.split("/")):
            raise MalformedInputError(f"Object key {path!r} contains a relative path segment")
        url_str += "/" + object_url_path(path)
        pairs = operation_query(command)
        pairs.extend(bucket.extra_query.items())

    pairs.extend(extra_pairs)
    query = render_query(pairs)
    if query:
        url_str += "?" + query

    try:
        return httpx.URL(url_str)
    except (httpx.InvalidURL, ValueError) as e:
        raise MalformedInputError(f"Cannot build URL for {bucket.name!r} and path {path!r}: {e}") from e
