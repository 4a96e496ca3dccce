from urllib.parse import parse_qsl

import httpx
import pytest
import respx  # type: ignore[import-not-found]
from conftest import ACCESS_KEY
from conftest import SECRET_KEY
from conftest import fake_credentials
from conftest import make_bucket
from sigv4_helpers import verify_header_signature
from sigv4_helpers import verify_presigned_url

from s3_request import command as cmd
from s3_request import xml_helpers
from s3_request.bucket import Bucket
from s3_request.config import Config
from s3_request.credentials import EnvironmentCredentials
from s3_request.errors import HttpFailureError
from s3_request.errors import MissingCredentialError
from s3_request.executor import RequestExecutor
from s3_request.transport import HttpxTransport


HOST = "my-bucket.s3.eu-west-1.amazonaws.com"


class BrokenCredentials:
    def access_key(self):
        return None

    def secret_key(self):
        return None

    def session_token(self):
        return None

    def security_token(self):
        return None

    async def refresh(self) -> None:
        raise RuntimeError("metadata service unreachable")


def _bucket(credentials=None) -> Bucket:
    config = make_bucket(name="my-bucket", region="eu-west-1", credentials=credentials or fake_credentials())
    return Bucket(config, RequestExecutor(HttpxTransport(client=httpx.AsyncClient())))


def _query(request: httpx.Request) -> dict[str, str]:
    return dict(parse_qsl(request.url.query.decode(), keep_blank_values=True))


def _list_page(keys: list[str], next_token: str | None) -> bytes:
    contents = "".join(f"<Contents><Key>{k}</Key><Size>1</Size></Contents>" for k in keys)
    truncated = "true" if next_token else "false"
    token = f"<NextContinuationToken>{next_token}</NextContinuationToken>" if next_token else ""
    return (
        f"<ListBucketResult><Name>my-bucket</Name><Prefix></Prefix><IsTruncated>{truncated}</IsTruncated>"
        f"{token}{contents}</ListBucketResult>"
    ).encode()


@pytest.mark.asyncio
@respx.mock
async def test_put_object_returns_etag():
    def check_request(request: httpx.Request) -> httpx.Response:
        assert request.content == b"hello"
        assert request.headers["content-type"] == "text/plain"
        assert verify_header_signature(request.method, request.url, request.headers, SECRET_KEY)
        return httpx.Response(200, headers={"ETag": '"5d41402abc4b2a76b9719d911017c592"'})

    respx.put(host=HOST, path="/docs/hello.txt").mock(side_effect=check_request)

    data = await _bucket().put_object("/docs/hello.txt", b"hello", content_type="text/plain")

    assert data.status_code == 200
    assert data.as_str() == '"5d41402abc4b2a76b9719d911017c592"'


@pytest.mark.asyncio
@respx.mock
async def test_get_object():
    respx.get(host=HOST, path="/docs/hello.txt").mock(return_value=httpx.Response(200, content=b"hello"))

    data = await _bucket().get_object("docs/hello.txt")

    assert data.body == b"hello"


@pytest.mark.asyncio
@respx.mock
async def test_get_object_range_sends_range():
    route = respx.get(host=HOST, path="/big.bin").mock(return_value=httpx.Response(206, content=b"0123"))

    data = await _bucket().get_object_range("/big.bin", 0, 3)

    assert data.status_code == 206
    assert route.calls.last.request.headers["range"] == "bytes=0-3"


@pytest.mark.asyncio
@respx.mock
async def test_get_object_to_file(tmp_path):
    respx.get(host=HOST, path="/big.bin").mock(return_value=httpx.Response(200, content=b"z" * 5000))
    destination = tmp_path / "big.bin"

    status = await _bucket().get_object_to_file("/big.bin", destination)

    assert status == 200
    assert destination.read_bytes() == b"z" * 5000


@pytest.mark.asyncio
@respx.mock
async def test_head_object():
    respx.head(host=HOST, path="/k").mock(return_value=httpx.Response(200, headers={"ETag": '"e"'}))

    headers, status = await _bucket().head_object("/k")

    assert status == 200
    assert headers["etag"] == '"e"'


@pytest.mark.asyncio
@respx.mock
async def test_delete_object():
    route = respx.delete(host=HOST, path="/k").mock(return_value=httpx.Response(204))

    data = await _bucket().delete_object("/k")

    assert data.status_code == 204
    assert route.called


@pytest.mark.asyncio
@respx.mock
async def test_copy_object_internal():
    route = respx.put(host=HOST, path="/dst.txt").mock(
        return_value=httpx.Response(200, content=b"<CopyObjectResult><ETag>\"e\"</ETag></CopyObjectResult>")
    )

    result, status = await _bucket().copy_object_internal("/src dir/a.txt", "/dst.txt")

    assert status == 200
    assert result.e_tag == '"e"'
    assert route.calls.last.request.headers["x-amz-copy-source"] == "/my-bucket/src%20dir/a.txt"


@pytest.mark.asyncio
@respx.mock
async def test_copy_object_internal_missing_source_raises():
    respx.put(host=HOST, path="/dst.txt").mock(
        return_value=httpx.Response(404, content=b"<Error><Code>NoSuchKey</Code></Error>")
    )

    with pytest.raises(HttpFailureError) as exc_info:
        await _bucket().copy_object_internal("/missing.txt", "/dst.txt")

    assert exc_info.value.code == "NoSuchKey"


@pytest.mark.asyncio
@respx.mock
async def test_object_tagging_round_trip():
    captured: dict[str, bytes] = {}

    def store_tags(request: httpx.Request) -> httpx.Response:
        assert _query(request) == {"tagging": ""}
        assert "content-md5" in request.headers
        captured["body"] = request.content
        return httpx.Response(200)

    respx.put(host=HOST, path="/k").mock(side_effect=store_tags)
    respx.get(host=HOST, path="/k").mock(side_effect=lambda request: httpx.Response(200, content=captured["body"]))

    bucket = _bucket()
    await bucket.put_object_tagging("/k", {"env": "prod"})
    tags, status = await bucket.get_object_tagging("/k")

    assert tags == {"env": "prod"}
    assert status == 200


@pytest.mark.asyncio
@respx.mock
async def test_delete_object_tagging():
    route = respx.delete(host=HOST, path="/k").mock(return_value=httpx.Response(204))

    await _bucket().delete_object_tagging("/k")

    assert _query(route.calls.last.request) == {"tagging": ""}


@pytest.mark.asyncio
@respx.mock
async def test_list_page():
    route = respx.get(host=HOST, path="/").mock(return_value=httpx.Response(200, content=_list_page(["a"], None)))

    page, status = await _bucket().list_page(prefix="a", delimiter="/", max_keys=5)

    assert status == 200
    assert [o.key for o in page.contents] == ["a"]
    assert _query(route.calls.last.request) == {"prefix": "a", "delimiter": "/", "list-type": "2", "max-keys": "5"}


@pytest.mark.asyncio
@respx.mock
async def test_list_page_v1():
    route = respx.get(host=HOST, path="/").mock(return_value=httpx.Response(200, content=_list_page(["a"], None)))

    await _bucket().list_page_v1(prefix="a", marker="m")

    assert _query(route.calls.last.request) == {"prefix": "a", "marker": "m"}


@pytest.mark.asyncio
@respx.mock
async def test_list_all_follows_continuation_tokens():
    route = respx.get(host=HOST, path="/").mock(
        side_effect=[
            httpx.Response(200, content=_list_page(["a", "b"], "token-1")),
            httpx.Response(200, content=_list_page(["c"], None)),
        ]
    )

    pages = await _bucket().list_all(prefix="")

    assert [o.key for page in pages for o in page.contents] == ["a", "b", "c"]
    assert "continuation-token" not in _query(route.calls[0].request)
    assert _query(route.calls[1].request)["continuation-token"] == "token-1"


@pytest.mark.asyncio
@respx.mock
async def test_list_page_error_status_raises():
    respx.get(host=HOST, path="/").mock(
        return_value=httpx.Response(403, content=b"<Error><Code>AccessDenied</Code></Error>")
    )

    with pytest.raises(HttpFailureError) as exc_info:
        await _bucket().list_page()

    assert exc_info.value.status_code == 403
    assert exc_info.value.code == "AccessDenied"


@pytest.mark.asyncio
@respx.mock
async def test_multipart_upload_flow():
    initiated = (
        b"<InitiateMultipartUploadResult><Bucket>my-bucket</Bucket><Key>big.bin</Key>"
        b"<UploadId>upload-1</UploadId></InitiateMultipartUploadResult>"
    )
    completed = (
        b"<CompleteMultipartUploadResult><Bucket>my-bucket</Bucket><Key>big.bin</Key>"
        b'<ETag>"final-2"</ETag></CompleteMultipartUploadResult>'
    )
    completion_bodies: list[bytes] = []

    def upload_part(request: httpx.Request) -> httpx.Response:
        query = _query(request)
        return httpx.Response(200, headers={"ETag": f'"etag-{query["partNumber"]}"'})

    def initiate_or_complete(request: httpx.Request) -> httpx.Response:
        if _query(request) == {"uploads": ""}:
            return httpx.Response(200, content=initiated)
        assert _query(request) == {"uploadId": "upload-1"}
        completion_bodies.append(request.content)
        return httpx.Response(200, content=completed)

    post_route = respx.post(host=HOST, path="/big.bin").mock(side_effect=initiate_or_complete)
    respx.put(host=HOST, path="/big.bin").mock(side_effect=upload_part)

    bucket = _bucket()
    upload = await bucket.initiate_multipart_upload("/big.bin")
    part_two = await bucket.put_multipart_chunk(b"b" * 10, "/big.bin", 2, upload.upload_id)
    part_one = await bucket.put_multipart_chunk(b"a" * 10, "/big.bin", 1, upload.upload_id)
    result = await bucket.complete_multipart_upload("/big.bin", upload.upload_id, [part_two, part_one])

    assert post_route.call_count == 2
    assert upload.upload_id == "upload-1"
    assert part_one == cmd.Part(part_number=1, etag='"etag-1"')
    assert result.e_tag == '"final-2"'
    root = xml_helpers.parse_xml(completion_bodies[0])
    assert [p.findtext("PartNumber") for p in root.findall("Part")] == ["1", "2"]


@pytest.mark.asyncio
@respx.mock
async def test_abort_upload():
    route = respx.delete(host=HOST, path="/big.bin").mock(return_value=httpx.Response(204))

    await _bucket().abort_upload("/big.bin", "upload-1")

    assert _query(route.calls.last.request) == {"uploadId": "upload-1"}


@pytest.mark.asyncio
@respx.mock
async def test_list_multipart_uploads_page():
    body = (
        b"<ListMultipartUploadsResult><Bucket>my-bucket</Bucket>"
        b"<IsTruncated>false</IsTruncated></ListMultipartUploadsResult>"
    )
    route = respx.get(host=HOST, path="/").mock(return_value=httpx.Response(200, content=body))

    result, status = await _bucket().list_multiparts_uploads_page(prefix="logs/")

    assert status == 200
    assert result.uploads == []
    assert _query(route.calls.last.request) == {"uploads": "", "prefix": "logs/"}


@pytest.mark.asyncio
@respx.mock
async def test_create_bucket_sends_location_constraint():
    route = respx.put(host=HOST, path="/").mock(return_value=httpx.Response(200))

    await _bucket().create_bucket()

    request = route.calls.last.request
    root = xml_helpers.parse_xml(request.content)
    assert root.tag == "CreateBucketConfiguration"
    assert xml_helpers.find_text(root, "LocationConstraint") == "eu-west-1"
    assert verify_header_signature(request.method, request.url, request.headers, SECRET_KEY)


@pytest.mark.asyncio
@respx.mock
async def test_location():
    body = b'<LocationConstraint xmlns="http://s3.amazonaws.com/doc/2006-03-01/">eu-west-1</LocationConstraint>'
    route = respx.get(host=HOST, path="/").mock(return_value=httpx.Response(200, content=body))

    region, status = await _bucket().location()

    assert region == "eu-west-1"
    assert status == 200
    assert route.calls.last.request.url.query == b"location"


@pytest.mark.asyncio
async def test_presign_methods_do_not_touch_network():
    bucket = _bucket()

    get_url = await bucket.presign_get("/k", 3600)
    put_url = await bucket.presign_put("/k", 3600, {"x-amz-meta-owner": "ops"})
    delete_url = await bucket.presign_delete("/k", 3600)
    post = await bucket.presign_post("/k", "cG9saWN5")

    assert verify_presigned_url("GET", get_url, {"Host": HOST}, SECRET_KEY)
    assert verify_presigned_url("PUT", put_url, {"Host": HOST, "x-amz-meta-owner": "ops"}, SECRET_KEY)
    assert verify_presigned_url("DELETE", delete_url, {"Host": HOST}, SECRET_KEY)
    assert post.fields["key"] == "k"
    assert post.fields["x-amz-credential"].startswith(f"{ACCESS_KEY}/")


@pytest.mark.asyncio
async def test_credential_refresh_failure_is_missing_credential():
    bucket = _bucket(credentials=BrokenCredentials())

    with pytest.raises(MissingCredentialError):
        await bucket.presign_get("/k", 60)


@pytest.mark.asyncio
@respx.mock
async def test_environment_credentials_are_reread_per_request(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIDFIRST")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", SECRET_KEY)
    monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)
    monkeypatch.delenv("AWS_SECURITY_TOKEN", raising=False)
    route = respx.get(host=HOST, path="/k").mock(return_value=httpx.Response(200))
    bucket = _bucket(credentials=EnvironmentCredentials())

    await bucket.get_object("/k")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIDSECOND")
    await bucket.get_object("/k")

    assert "Credential=AKIDFIRST/" in route.calls[0].request.headers["authorization"]
    assert "Credential=AKIDSECOND/" in route.calls[1].request.headers["authorization"]


def test_from_config_uses_configuration():
    config = Config(default_region="eu-west-1", path_style=True, fail_on_err=True, stream_chunk_size=1024)

    bucket = Bucket.from_config("my-bucket", credentials=fake_credentials(), config=config)

    assert bucket.name == "my-bucket"
    assert bucket.config.is_path_style
    assert bucket.config.host() == "s3.eu-west-1.amazonaws.com"
    assert bucket.executor.strict is True
    assert bucket.executor.chunk_size == 1024
