"""
Async client for S3-compatible object storage.

Builds SigV4-signed requests (header-signed or presigned), sends them over
httpx and hands responses back buffered, streamed or as headers only.
"""

from .bucket import Bucket
from .bucket_config import AddressingStyle
from .bucket_config import BucketConfig
from .credentials import Credentials
from .credentials import CredentialsProvider
from .credentials import EnvironmentCredentials
from .errors import EncodingError
from .errors import HashError
from .errors import HttpFailureError
from .errors import InvalidResponseError
from .errors import MalformedInputError
from .errors import MissingCredentialError
from .errors import S3Error
from .errors import TransportError
from .executor import RequestExecutor
from .region import Region
from .request import PresignedPost
from .request import S3Request
from .response import BytesSink
from .response import ResponseData
from .transport import HttpxTransport


__all__ = [
    "Bucket",
    "BucketConfig",
    "AddressingStyle",
    "Region",
    "Credentials",
    "CredentialsProvider",
    "EnvironmentCredentials",
    "S3Request",
    "PresignedPost",
    "RequestExecutor",
    "HttpxTransport",
    "ResponseData",
    "BytesSink",
    "S3Error",
    "MalformedInputError",
    "MissingCredentialError",
    "TransportError",
    "HttpFailureError",
    "EncodingError",
    "HashError",
    "InvalidResponseError",
]
