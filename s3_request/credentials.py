from __future__ import annotations

import logging
import os
from typing import Protocol
from typing import runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class CredentialsProvider(Protocol):
    """Credential source consulted when a request descriptor is built.

    ``refresh`` is awaited once per descriptor, before any signing happens.
    """

    def access_key(self) -> str | None: ...

    def secret_key(self) -> str | None: ...

    def session_token(self) -> str | None: ...

    def security_token(self) -> str | None: ...

    async def refresh(self) -> None: ...


def _mask(value: str | None) -> str:
    return "None" if value is None else "***"


class Credentials:
    """Static credentials. ``refresh`` is a no-op."""

    def __init__(
        self,
        access_key: str | None = None,
        secret_key: str | None = None,
        session_token: str | None = None,
        security_token: str | None = None,
    ) -> None:
        self._access_key = access_key
        self._secret_key = secret_key
        self._session_token = session_token
        self._security_token = security_token

    @classmethod
    def anonymous(cls) -> Credentials:
        return cls()

    def access_key(self) -> str | None:
        return self._access_key

    def secret_key(self) -> str | None:
        return self._secret_key

    def session_token(self) -> str | None:
        return self._session_token

    def security_token(self) -> str | None:
        return self._security_token

    async def refresh(self) -> None:
        return None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(access_key={self._access_key!r}, secret_key={_mask(self._secret_key)}, "
            f"session_token={_mask(self._session_token)}, security_token={_mask(self._security_token)})"
        )


class EnvironmentCredentials(Credentials):
    """Credentials re-read from the standard AWS environment variables on every refresh."""

    ACCESS_KEY_VAR = "AWS_ACCESS_KEY_ID"
    SECRET_KEY_VAR = "AWS_SECRET_ACCESS_KEY"
    SESSION_TOKEN_VAR = "AWS_SESSION_TOKEN"
    SECURITY_TOKEN_VAR = "AWS_SECURITY_TOKEN"

    def __init__(self) -> None:
        super().__init__()
        self._load()

    def _load(self) -> None:
        self._access_key = os.environ.get(self.ACCESS_KEY_VAR) or None
        self._secret_key = os.environ.get(self.SECRET_KEY_VAR) or None
        self._session_token = os.environ.get(self.SESSION_TOKEN_VAR) or None
        self._security_token = os.environ.get(self.SECURITY_TOKEN_VAR) or None

    async def refresh(self) -> None:
        self._load()
        if self._access_key is None:
            logger.debug(f"{self.ACCESS_KEY_VAR} not set; requests will be unauthenticated")
