import dataclasses

import dotenv
import httpx

from s3_request.utils import env
from s3_request.utils import to_bool


dotenv.load_dotenv()


@dataclasses.dataclass
class Config:
    """Client configuration settings."""

    # Logging
    log_level: str = env("S3_LOG_LEVEL:INFO")
    loki_url: str = env("LOKI_URL:", convert=str)
    loki_enabled: bool = env("LOKI_ENABLED:false", convert=to_bool)
    environment: str = env("ENVIRONMENT:development")

    # Bucket defaults
    default_region: str = env("S3_REGION:us-east-1")
    path_style: bool = env("S3_PATH_STYLE:false", convert=to_bool)

    # Return an HttpFailureError instead of the raw response for non-2xx statuses
    fail_on_err: bool = env("S3_FAIL_ON_ERR:false", convert=to_bool)

    # Transport
    http_timeout_seconds: float = env("S3_HTTP_TIMEOUT_SECONDS:60.0", convert=float)
    http_connect_timeout_seconds: float = env("S3_HTTP_CONNECT_TIMEOUT_SECONDS:10.0", convert=float)
    stream_chunk_size: int = env("S3_STREAM_CHUNK_SIZE:65536", convert=int)

    @property
    def httpx_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.http_timeout_seconds, connect=self.http_connect_timeout_seconds)


def get_config() -> Config:
    """Get client configuration."""
    cfg = Config()

    if not cfg.default_region or not cfg.default_region.strip():
        raise ValueError("S3_REGION is set but empty")

    if cfg.stream_chunk_size <= 0:
        raise ValueError(f"S3_STREAM_CHUNK_SIZE must be positive, got {cfg.stream_chunk_size}")

    if cfg.http_timeout_seconds <= 0 or cfg.http_connect_timeout_seconds <= 0:
        raise ValueError("HTTP timeouts must be positive")

    return cfg
