import pytest

from s3_request.bucket_config import AddressingStyle
from s3_request.bucket_config import BucketConfig
from s3_request.credentials import Credentials
from s3_request.credentials import CredentialsProvider
from s3_request.credentials import EnvironmentCredentials
from s3_request.errors import MalformedInputError
from s3_request.region import Region


@pytest.mark.parametrize(
    "value,name,host",
    [
        ("us-east-1", "us-east-1", "s3.amazonaws.com"),
        ("eu-west-1", "eu-west-1", "s3.eu-west-1.amazonaws.com"),
        ("cn-north-1", "cn-north-1", "s3.cn-north-1.amazonaws.com.cn"),
        ("custom-region", "custom-region", "custom-region"),
        ("http://localhost:9000", "localhost:9000", "localhost:9000"),
        ("https://minio.example.com/", "minio.example.com", "minio.example.com"),
    ],
)
def test_region_parse(value, name, host):
    region = Region.parse(value)

    assert region.name == name
    assert region.host == host
    assert str(region) == name


def test_region_scheme():
    assert Region.parse("eu-west-1").scheme == "https"
    assert Region.parse("custom-region").scheme == "https"
    assert Region.parse("http://custom-region").scheme == "http"


def test_region_custom_keeps_signing_name():
    region = Region.custom("garage", "http://localhost:3900/")

    assert region.name == "garage"
    assert region.host == "localhost:3900"
    assert region.scheme == "http"


@pytest.mark.parametrize("value", ["", "   ", "ftp://host"])
def test_region_rejects_bad_values(value):
    with pytest.raises(MalformedInputError):
        Region.parse(value).scheme


def test_bucket_config_addressing():
    bucket = BucketConfig(name="b", region=Region.parse("eu-west-1"), credentials=Credentials())

    assert bucket.addressing is AddressingStyle.VIRTUAL_HOSTED
    assert bucket.host() == "b.s3.eu-west-1.amazonaws.com"
    assert bucket.base_url() == "https://b.s3.eu-west-1.amazonaws.com"

    path_style = bucket.with_path_style()
    assert path_style.host() == "s3.eu-west-1.amazonaws.com"
    assert path_style.base_url() == "https://s3.eu-west-1.amazonaws.com/b"
    assert bucket.is_path_style is False


@pytest.mark.parametrize("name", ["", "a/b"])
def test_bucket_config_rejects_bad_names(name):
    with pytest.raises(MalformedInputError):
        BucketConfig(name=name, region=Region.parse("eu-west-1"), credentials=Credentials())


def test_bucket_config_extras_are_immutable_and_merged():
    bucket = BucketConfig(
        name="b", region=Region.parse("eu-west-1"), credentials=Credentials(), extra_headers={"a": "1"}
    )

    merged = bucket.with_extra_headers({"b": "2"})

    assert dict(merged.extra_headers) == {"a": "1", "b": "2"}
    assert dict(bucket.extra_headers) == {"a": "1"}
    with pytest.raises(TypeError):
        bucket.extra_headers["c"] = "3"


def test_credentials_repr_masks_secrets():
    credentials = Credentials(access_key="AKID", secret_key="very-secret", session_token="tok")

    text = repr(credentials)

    assert "very-secret" not in text
    assert "tok" not in text
    assert "AKID" in text


def test_credentials_satisfy_provider_protocol():
    assert isinstance(Credentials.anonymous(), CredentialsProvider)
    assert isinstance(EnvironmentCredentials(), CredentialsProvider)


@pytest.mark.asyncio
async def test_environment_credentials_refresh(monkeypatch):
    monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)
    monkeypatch.delenv("AWS_SECRET_ACCESS_KEY", raising=False)
    monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "legacy")
    credentials = EnvironmentCredentials()

    assert credentials.access_key() is None
    assert credentials.security_token() == "legacy"

    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKID")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    await credentials.refresh()

    assert credentials.access_key() == "AKID"
    assert credentials.secret_key() == "secret"
