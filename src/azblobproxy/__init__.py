"""
azblobproxy
===========

Serve the contents of an Azure Blob Storage container over HTTP, as an ASGI app.

Main entry points:
- BlobProxyHandler: the ASGI handler
- ProxyConfig, AccessConditions, RetryOptions: handler configuration
- AzureBlobAdapter, LocalFileAdapter: storage backends
- simple_handler, create_app: embedding helpers

Example:
    from azblobproxy import ProxyConfig, create_app, simple_handler

    handler = simple_handler(
        "account",
        "key",
        "container",
        ProxyConfig(index_document_name="index.html", not_found_document_path="index.html"),
    )
    app = create_app(handler)
"""

from .handler import BlobProxyHandler, BlobStreamingResponse

from .config import (
    AccessConditions,
    ProxyConfig,
    RetryOptions,
    StoreSettings,
    load_config,
)
from .errors import ConfigurationError
from .outcomes import (
    FetchOutcome,
    FetchSuccess,
    ObjectNotFound,
    StoreError,
    UnexpectedError,
)

from .storage_protocols import (
    AsyncStorageAdapter,
    AsyncContainerHandle,
    AsyncBlobHandle,
    AsyncBlobBody,
)
from .local_file_adapter import LocalFileAdapter
from .azure_blob_adapter import AzureBlobAdapter
from .app import create_app, handler_from_env, handler_from_settings, simple_handler

import importlib.metadata

try:
    __version__ = importlib.metadata.version(__name__)
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "BlobProxyHandler",
    "BlobStreamingResponse",
    "AccessConditions",
    "ProxyConfig",
    "RetryOptions",
    "StoreSettings",
    "load_config",
    "ConfigurationError",
    "FetchOutcome",
    "FetchSuccess",
    "ObjectNotFound",
    "StoreError",
    "UnexpectedError",
    "AsyncStorageAdapter",
    "AsyncContainerHandle",
    "AsyncBlobHandle",
    "AsyncBlobBody",
    "LocalFileAdapter",
    "AzureBlobAdapter",
    "create_app",
    "handler_from_env",
    "handler_from_settings",
    "simple_handler",
]
