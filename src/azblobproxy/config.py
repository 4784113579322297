import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigurationError

ENV_PREFIX = "AZBLOBPROXY_"


@dataclass(frozen=True)
class AccessConditions:
    """Conditional-read parameters forwarded verbatim to the store."""

    if_match: str | None = None
    if_none_match: str | None = None
    if_modified_since: datetime | None = None
    if_unmodified_since: datetime | None = None
    lease_id: str | None = None

    def __post_init__(self) -> None:
        if self.if_match and self.if_none_match:
            raise ConfigurationError("if_match and if_none_match are mutually exclusive")


@dataclass(frozen=True)
class RetryOptions:
    """
    Retry settings for the store client.
    The proxy never interprets these, they are handed to the client as-is.
    """

    total: int | None = None
    connect: int | None = None
    read: int | None = None
    status: int | None = None
    max_concurrency: int = 1

    def client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        for name in ("total", "connect", "read", "status"):
            value = getattr(self, name)
            if value is not None:
                kwargs[f"retry_{name}"] = value
        return kwargs


@dataclass(frozen=True)
class ProxyConfig:
    offset: int = 0
    count: int = 0  # 0 reads to the end
    access_conditions: AccessConditions = field(default_factory=AccessConditions)
    validate_content: bool = False
    retry: RetryOptions = field(default_factory=RetryOptions)
    timeout: int | None = None

    index_document_name: str = ""  # served for an empty path
    not_found_document_path: str = ""  # served when a blob is missing (SPA)

    def __post_init__(self) -> None:
        if self.offset < 0 or self.count < 0:
            raise ConfigurationError("offset and count must be non-negative")


@dataclass(frozen=True)
class StoreSettings:
    """Credentials and container used to construct the store client."""

    container_name: str
    account_name: str | None = None
    account_key: str | None = None
    connection_string: str | None = None

    def __post_init__(self) -> None:
        if not self.container_name:
            raise ConfigurationError("container name is required")
        if not self.connection_string and not (self.account_name and self.account_key):
            raise ConfigurationError(
                "either a connection string or account name and key are required"
            )

    @classmethod
    def from_env(cls) -> "StoreSettings":
        load_dotenv()
        return cls(
            container_name=_env("CONTAINER") or "",
            account_name=_env("ACCOUNT_NAME"),
            account_key=_env("ACCOUNT_KEY"),
            connection_string=_env("CONNECTION_STRING"),
        )


def _env(name: str) -> str | None:
    return os.environ.get(ENV_PREFIX + name) or None


def _env_int(name: str, default: int | None) -> int | None:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")


def load_config() -> ProxyConfig:
    """Build a ProxyConfig from AZBLOBPROXY_* environment variables (and .env)."""
    load_dotenv()
    return ProxyConfig(
        offset=_env_int("OFFSET", 0) or 0,
        count=_env_int("COUNT", 0) or 0,
        validate_content=(_env("VALIDATE_CONTENT") or "").lower() in ("1", "true", "yes"),
        retry=RetryOptions(total=_env_int("RETRY_TOTAL", None)),
        timeout=_env_int("TIMEOUT", None),
        index_document_name=_env("INDEX_DOCUMENT") or "",
        not_found_document_path=_env("NOT_FOUND_DOCUMENT") or "",
    )
