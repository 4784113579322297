import logging
from collections.abc import AsyncGenerator

from starlette.responses import Response, StreamingResponse
from starlette.types import Receive, Scope, Send

from .config import ProxyConfig
from .outcomes import (
    FetchOutcome,
    FetchSuccess,
    ObjectNotFound,
    StoreError,
    UnexpectedError,
)
from .storage_protocols import AsyncBlobBody, AsyncContainerHandle, AsyncStorageAdapter

logger = logging.getLogger(__name__)


class BlobProxyHandler:
    """
    ASGI app serving the blobs of one container as static files.

    The request path (after the mount prefix) is the blob name. An empty
    path serves the index document, and a missing blob serves the
    not-found document when one is configured (single page applications).
    """

    def __init__(
        self,
        adapter: AsyncStorageAdapter,
        container_name: str,
        config: ProxyConfig | None = None,
    ) -> None:
        self.adapter = adapter
        self.container: AsyncContainerHandle = adapter.get_container(container_name)
        self.config = config or ProxyConfig()

    async def __aenter__(self) -> "BlobProxyHandler":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.adapter.close()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        assert scope["type"] == "http"
        response = await self.get_response(_route_path(scope))
        await response(scope, receive, send)

    def resolve_key(self, path: str) -> str:
        blob_name = path.removeprefix("/")
        if blob_name == "" and self.config.index_document_name:
            blob_name = self.config.index_document_name
        return blob_name

    async def get_response(self, path: str) -> Response:
        outcome = await self.fetch(self.resolve_key(path))
        if isinstance(outcome, ObjectNotFound):
            return await self.try_not_found()
        return self.translate(outcome)

    async def try_not_found(self) -> Response:
        if not self.config.not_found_document_path:
            return Response(status_code=404)

        outcome = await self.fetch(self.config.not_found_document_path)
        if isinstance(outcome, ObjectNotFound):
            return Response(status_code=404)
        return self.translate(outcome)

    async def fetch(self, blob_name: str) -> FetchOutcome:
        blob = self.container.get_blob(blob_name)
        return await blob.fetch(
            offset=self.config.offset,
            count=self.config.count,
            access_conditions=self.config.access_conditions,
            validate_content=self.config.validate_content,
            timeout=self.config.timeout,
        )

    def translate(self, outcome: FetchOutcome) -> Response:
        if isinstance(outcome, FetchSuccess):
            return self.copy_response(outcome)
        if isinstance(outcome, StoreError):
            logger.warning(
                "blob download error: status=%s code=%s %s",
                outcome.status_code,
                outcome.service_code,
                outcome.message,
            )
            return Response(status_code=outcome.status_code)
        if isinstance(outcome, UnexpectedError):
            logger.error("unexpected error: %r", outcome.error, exc_info=outcome.error)
            return Response(status_code=500)
        raise TypeError(f"Unhandled fetch outcome {outcome!r}")

    def copy_response(self, outcome: FetchSuccess) -> "BlobStreamingResponse":
        # Passing the header directly keeps starlette from appending a charset
        headers = {}
        if outcome.content_type:
            headers["content-type"] = outcome.content_type
        return BlobStreamingResponse(
            outcome.body,
            headers=headers,
        )


def _route_path(scope: Scope) -> str:
    path: str = scope["path"]
    root_path: str = scope.get("root_path", "")
    if root_path and (path == root_path or path.startswith(root_path + "/")):
        return path[len(root_path) :]
    return path


async def _stream_body(body: AsyncBlobBody) -> AsyncGenerator[bytes, None]:
    try:
        async for chunk in body:
            yield chunk
    except Exception:
        # Headers are already sent, the status cannot change any more.
        logger.exception("copy resp error")


class BlobStreamingResponse(StreamingResponse):
    """Streams a blob body and closes it however the response ends."""

    def __init__(self, body: AsyncBlobBody, **kwargs) -> None:
        self.blob_body = body
        super().__init__(_stream_body(body), **kwargs)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.blob_body.aclose()
