from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .config import AccessConditions
    from .outcomes import FetchOutcome


class AsyncBlobBody(Protocol):
    """Readable byte stream of a fetched blob. Must be closed after use."""

    def __aiter__(self) -> AsyncIterator[bytes]:
        """Iterate over the blob contents chunk by chunk."""
        ...

    async def aclose(self) -> None:
        """Release the underlying stream/connection."""
        ...


class AsyncBlobHandle(Protocol):
    """Represents a single blob in storage."""

    async def fetch(
        self,
        offset: int = 0,
        count: int = 0,
        access_conditions: "AccessConditions | None" = None,
        validate_content: bool = False,
        timeout: int | None = None,
    ) -> "FetchOutcome":
        """
        Start reading the blob.
        count=0 reads to the end. Never raises for store failures,
        they are returned as classified outcomes.
        """
        ...


class AsyncContainerHandle(Protocol):
    """Represents a container/bucket in storage."""

    def get_blob(self, blob_name: str) -> AsyncBlobHandle:
        """Return a handle to a blob."""
        ...


class AsyncStorageAdapter(Protocol):
    """Protocol for a storage backend adapter."""

    def get_container(self, container_name: str) -> AsyncContainerHandle:
        """Return a handle to a container."""
        ...

    async def close(self) -> None:
        """Close any resources/connections."""
        ...
