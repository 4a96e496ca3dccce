"""Per-call correlation ids carried through logging via a context var."""

import contextlib
import contextvars
import uuid
from typing import Iterator


NO_REQUEST_ID = "no-request-id"

request_id_context: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default=NO_REQUEST_ID)


def generate_request_id() -> str:
    """16 lowercase hex characters, e.g. ``a1b2c3d4e5f67890``."""
    return uuid.uuid4().hex[:16]


@contextlib.contextmanager
def request_scope(request_id: str | None = None) -> Iterator[str]:
    """Bind a request id for the duration of one S3 call, restoring the previous one on exit."""
    request_id = request_id or generate_request_id()
    token = request_id_context.set(request_id)
    try:
        yield request_id
    finally:
        request_id_context.reset(token)
