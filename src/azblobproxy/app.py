import logging
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import Mount
from starlette.types import ASGIApp, Receive, Scope, Send

from .azure_blob_adapter import AzureBlobAdapter
from .config import ProxyConfig, StoreSettings, load_config
from .handler import BlobProxyHandler

logger = logging.getLogger(__name__)


def simple_handler(
    account_name: str,
    account_key: str,
    container_name: str,
    config: ProxyConfig | None = None,
) -> BlobProxyHandler:
    """Azure-backed handler with shared key auth. Sufficient for most cases."""
    config = config or ProxyConfig()
    adapter = AzureBlobAdapter.from_account_key(
        account_name, account_key, retry=config.retry
    )
    return BlobProxyHandler(adapter, container_name, config)


def handler_from_settings(
    settings: StoreSettings, config: ProxyConfig | None = None
) -> BlobProxyHandler:
    config = config or ProxyConfig()
    if settings.connection_string:
        adapter = AzureBlobAdapter.from_connection_string(
            settings.connection_string, retry=config.retry
        )
        return BlobProxyHandler(adapter, settings.container_name, config)
    return simple_handler(
        settings.account_name, settings.account_key, settings.container_name, config
    )


def handler_from_env() -> BlobProxyHandler:
    """Build a handler from AZBLOBPROXY_* environment variables."""
    return handler_from_settings(StoreSettings.from_env(), load_config())


class RequestLogMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            logger.info("%s %s", scope["method"], scope["path"])
        await self.app(scope, receive, send)


def create_app(handler: BlobProxyHandler, mount_path: str = "/") -> Starlette:
    """
    Starlette app with the handler mounted at mount_path.
    The store client is closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: Starlette):
        async with handler:
            yield

    return Starlette(
        routes=[Mount(mount_path, app=handler)],
        middleware=[Middleware(RequestLogMiddleware)],
        lifespan=lifespan,
    )
