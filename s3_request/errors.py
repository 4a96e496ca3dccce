"""Error types raised by the S3 request pipeline."""


class S3Error(Exception):
    """Base class for every failure surfaced by s3_request."""


class MalformedInputError(S3Error):
    """Raised when a path, URL or command argument cannot form a valid request."""


class MissingCredentialError(S3Error):
    """Raised when an operation needs a credential that the provider does not supply."""


class TransportError(S3Error):
    """Raised when the HTTP transport fails before a response is available."""


class HttpFailureError(S3Error):
    """Raised in strict mode when the service answers with a non-success status."""

    def __init__(self, status_code: int, body: str, code: str | None = None):
        self.status_code = status_code
        self.body = body
        # <Code> of the XML error document, when the body carries one
        self.code = code
        super().__init__(f"HTTP {status_code}: {body}")


class EncodingError(S3Error):
    """Raised when a header value or response body cannot be encoded or decoded."""


class HashError(S3Error):
    """Raised when a digest cannot be computed."""


class InvalidResponseError(S3Error):
    """Raised when a response body cannot be parsed into the expected document."""
