from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from s3_request.credentials import CredentialsProvider
from s3_request.errors import MalformedInputError
from s3_request.region import Region


class AddressingStyle(str, Enum):
    """Where the bucket name goes in request URLs."""

    VIRTUAL_HOSTED = "virtual-hosted"
    PATH_STYLE = "path-style"


def _frozen(mapping: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class BucketConfig:
    """Everything needed to address and authenticate requests against one bucket.

    The credentials provider is the only mutable part; it is refreshed in place
    before each request descriptor is built.
    """

    name: str
    region: Region
    credentials: CredentialsProvider
    addressing: AddressingStyle = AddressingStyle.VIRTUAL_HOSTED
    extra_headers: Mapping[str, str] = field(default_factory=dict)
    extra_query: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name or "/" in self.name:
            raise MalformedInputError(f"Invalid bucket name: {self.name!r}")
        object.__setattr__(self, "extra_headers", _frozen(self.extra_headers))
        object.__setattr__(self, "extra_query", _frozen(self.extra_query))

    def with_path_style(self) -> BucketConfig:
        return dataclasses.replace(self, addressing=AddressingStyle.PATH_STYLE)

    def with_extra_headers(self, headers: Mapping[str, str]) -> BucketConfig:
        return dataclasses.replace(self, extra_headers={**self.extra_headers, **headers})

    def with_extra_query(self, query: Mapping[str, str]) -> BucketConfig:
        return dataclasses.replace(self, extra_query={**self.extra_query, **query})

    @property
    def is_path_style(self) -> bool:
        return self.addressing is AddressingStyle.PATH_STYLE

    def host(self) -> str:
        if self.is_path_style:
            return self.region.host
        return f"{self.name}.{self.region.host}"

    def base_url(self) -> str:
        """Scheme and authority, plus ``/{bucket}`` for path-style addressing."""
        if self.is_path_style:
            return f"{self.region.scheme}://{self.region.host}/{self.name}"
        return f"{self.region.scheme}://{self.name}.{self.region.host}"
