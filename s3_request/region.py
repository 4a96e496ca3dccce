from __future__ import annotations

from dataclasses import dataclass

from s3_request.errors import MalformedInputError


AWS_REGIONS = frozenset(
    {
        "us-east-1",
        "us-east-2",
        "us-west-1",
        "us-west-2",
        "ca-central-1",
        "af-south-1",
        "ap-east-1",
        "ap-south-1",
        "ap-northeast-1",
        "ap-northeast-2",
        "ap-northeast-3",
        "ap-southeast-1",
        "ap-southeast-2",
        "cn-north-1",
        "cn-northwest-1",
        "eu-central-1",
        "eu-north-1",
        "eu-south-1",
        "eu-west-1",
        "eu-west-2",
        "eu-west-3",
        "me-south-1",
        "sa-east-1",
    }
)

DEFAULT_SCHEME = "https"
ALLOWED_SCHEMES = ("http", "https")


def _split_scheme(value: str) -> tuple[str, str]:
    scheme, sep, rest = value.partition("://")
    if not sep:
        return DEFAULT_SCHEME, value
    scheme = scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise MalformedInputError(f"Unsupported scheme in region endpoint: {scheme!r}")
    return scheme, rest


@dataclass(frozen=True)
class Region:
    """Signing region name plus the endpoint requests are sent to.

    ``endpoint`` may carry an explicit ``http://`` or ``https://`` prefix; the
    scheme defaults to https.
    """

    name: str
    endpoint: str

    @classmethod
    def parse(cls, value: str) -> Region:
        """Build a region from a name such as ``eu-west-1`` or a custom endpoint.

        Unknown values are treated as custom endpoints, signed with the
        endpoint host as region name.
        """
        value = value.strip()
        if not value:
            raise MalformedInputError("Region must not be empty")

        if value in AWS_REGIONS:
            if value == "us-east-1":
                return cls(name=value, endpoint="s3.amazonaws.com")
            if value.startswith("cn-"):
                return cls(name=value, endpoint=f"s3.{value}.amazonaws.com.cn")
            return cls(name=value, endpoint=f"s3.{value}.amazonaws.com")

        _, host = _split_scheme(value)
        return cls(name=host.rstrip("/"), endpoint=value.rstrip("/"))

    @classmethod
    def custom(cls, name: str, endpoint: str) -> Region:
        return cls(name=name, endpoint=endpoint.rstrip("/"))

    @property
    def scheme(self) -> str:
        return _split_scheme(self.endpoint)[0]

    @property
    def host(self) -> str:
        return _split_scheme(self.endpoint)[1]

    def __str__(self) -> str:
        return self.name
