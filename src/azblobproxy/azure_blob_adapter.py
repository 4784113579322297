from collections.abc import AsyncGenerator
from typing import Any

from azure.core import MatchConditions
from azure.core.exceptions import HttpResponseError
from azure.storage.blob.aio import BlobServiceClient, StorageStreamDownloader

from .config import AccessConditions, RetryOptions
from .outcomes import (
    FetchOutcome,
    FetchSuccess,
    ObjectNotFound,
    StoreError,
    UnexpectedError,
)
from .storage_protocols import (
    AsyncBlobBody,
    AsyncBlobHandle,
    AsyncContainerHandle,
    AsyncStorageAdapter,
)

BLOB_NOT_FOUND = "BlobNotFound"


class AzureBlobAdapter(AsyncStorageAdapter):
    """Azure Blob Storage adapter for BlobProxyHandler."""

    def __init__(
        self, blob_service_client: BlobServiceClient, max_concurrency: int = 1
    ):
        """
        Create an adapter from an existing BlobServiceClient.
        This allows custom authentication and configuration.
        """
        self._client = blob_service_client
        self._max_concurrency = max_concurrency

    @classmethod
    def from_connection_string(
        cls, connection_string: str, retry: RetryOptions | None = None
    ) -> "AzureBlobAdapter":
        """
        Convenience builder: create adapter from a connection string.
        """
        retry = retry or RetryOptions()
        client = BlobServiceClient.from_connection_string(
            connection_string, **retry.client_kwargs()
        )
        return cls(client, max_concurrency=retry.max_concurrency)

    @classmethod
    def from_account_key(
        cls,
        account_name: str,
        account_key: str,
        retry: RetryOptions | None = None,
    ) -> "AzureBlobAdapter":
        """
        Convenience builder: shared key credential against the public endpoint.
        """
        retry = retry or RetryOptions()
        client = BlobServiceClient(
            f"https://{account_name}.blob.core.windows.net",
            credential={"account_name": account_name, "account_key": account_key},
            **retry.client_kwargs(),
        )
        return cls(client, max_concurrency=retry.max_concurrency)

    def get_container(self, container_name: str) -> AsyncContainerHandle:
        return _AzureContainerHandle(
            self._client.get_container_client(container_name), self._max_concurrency
        )

    async def close(self) -> None:
        await self._client.close()


class _AzureContainerHandle(AsyncContainerHandle):
    def __init__(self, container_client, max_concurrency: int = 1):
        self._container_client = container_client
        self._max_concurrency = max_concurrency

    def get_blob(self, blob_name: str) -> AsyncBlobHandle:
        return _AzureBlobHandle(
            self._container_client.get_blob_client(blob_name), self._max_concurrency
        )


def _download_kwargs(
    offset: int,
    count: int,
    conditions: AccessConditions,
    validate_content: bool,
    timeout: int | None,
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"validate_content": validate_content}
    if offset or count:
        kwargs["offset"] = offset
        kwargs["length"] = count or None
    if conditions.if_match:
        kwargs["etag"] = conditions.if_match
        kwargs["match_condition"] = MatchConditions.IfNotModified
    elif conditions.if_none_match:
        kwargs["etag"] = conditions.if_none_match
        kwargs["match_condition"] = MatchConditions.IfModified
    if conditions.if_modified_since:
        kwargs["if_modified_since"] = conditions.if_modified_since
    if conditions.if_unmodified_since:
        kwargs["if_unmodified_since"] = conditions.if_unmodified_since
    if conditions.lease_id:
        kwargs["lease"] = conditions.lease_id
    if timeout is not None:
        kwargs["timeout"] = timeout
    return kwargs


class _AzureBlobHandle(AsyncBlobHandle):
    def __init__(self, blob_client, max_concurrency: int = 1):
        self._blob_client = blob_client
        self._max_concurrency = max_concurrency

    async def fetch(
        self,
        offset: int = 0,
        count: int = 0,
        access_conditions: AccessConditions | None = None,
        validate_content: bool = False,
        timeout: int | None = None,
    ) -> FetchOutcome:
        kwargs = _download_kwargs(
            offset,
            count,
            access_conditions or AccessConditions(),
            validate_content,
            timeout,
        )
        try:
            downloader = await self._blob_client.download_blob(
                max_concurrency=self._max_concurrency, **kwargs
            )
        except HttpResponseError as e:
            if e.error_code == BLOB_NOT_FOUND:
                return ObjectNotFound(self._blob_client.blob_name)
            return StoreError(
                status_code=e.status_code or 500,
                service_code=e.error_code,
                message=e.message or str(e),
            )
        except Exception as e:
            return UnexpectedError(e)

        return FetchSuccess(
            content_type=downloader.properties.content_settings.content_type,
            body=_AzureBlobBody(downloader),
        )


class _AzureBlobBody(AsyncBlobBody):
    def __init__(self, downloader: StorageStreamDownloader):
        self._downloader = downloader
        self._chunks: AsyncGenerator[bytes, None] | None = None

    async def _iter_chunks(self) -> AsyncGenerator[bytes, None]:
        async for chunk in self._downloader.chunks():
            yield chunk

    def __aiter__(self) -> AsyncGenerator[bytes, None]:
        self._chunks = self._iter_chunks()
        return self._chunks

    async def aclose(self) -> None:
        if self._chunks is not None:
            await self._chunks.aclose()
