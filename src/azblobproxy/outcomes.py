from dataclasses import dataclass, field

from .storage_protocols import AsyncBlobBody


@dataclass
class FetchSuccess:
    """A fetched blob, ready to be streamed."""

    content_type: str | None
    body: AsyncBlobBody


@dataclass(frozen=True)
class ObjectNotFound:
    key: str


@dataclass(frozen=True)
class StoreError:
    """A failure classified by the store, with its HTTP status."""

    status_code: int
    service_code: str | None = None
    message: str = ""


@dataclass(frozen=True)
class UnexpectedError:
    """A failure that carries no store classification (transport, protocol)."""

    error: BaseException = field(compare=False)


FetchOutcome = FetchSuccess | ObjectNotFound | StoreError | UnexpectedError
