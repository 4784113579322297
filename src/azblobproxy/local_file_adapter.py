import errno
import hashlib
import mimetypes
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path

from .config import AccessConditions
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

CHUNK_SIZE = 64 * 1024


def _ensure_within(base: Path, target: Path, strict: bool = True) -> Path:
    """
    Resolve target path and ensure it is inside base path.
    strict=True will fail if the target does not exist (good for reads).
    strict=False allows non-existing targets (a missing blob is not an escape).
    """
    base_resolved = base.resolve(strict=True)
    if strict:
        target_resolved = target.resolve(strict=True)
    else:
        target_resolved = target.resolve()
    if not target_resolved.is_relative_to(base_resolved):
        raise ValueError(
            f"Path {target_resolved} escapes base directory {base_resolved}"
        )
    return target_resolved


class LocalFileAdapter(AsyncStorageAdapter):
    """Local filesystem adapter, serves a directory as if it were a container."""

    def __init__(self, base_path: str):
        self._base_path = Path(base_path).resolve()
        self._base_path.mkdir(parents=True, exist_ok=True)

    def get_container(self, container_name: str) -> AsyncContainerHandle:
        container_path = _ensure_within(
            self._base_path, self._base_path / container_name, strict=False
        )
        container_path.mkdir(parents=True, exist_ok=True)
        return _LocalContainerHandle(container_path)

    async def close(self) -> None:
        pass


class _LocalContainerHandle(AsyncContainerHandle):
    def __init__(self, container_path: Path):
        self._container_path = container_path

    def get_blob(self, blob_name: str) -> AsyncBlobHandle:
        return _LocalBlobHandle(blob_name, self._container_path)


# path -> (mtime, size, etag), recomputed when mtime or size change
_etag_cache: dict[Path, tuple[float, int, str]] = {}


def _etag(path: Path) -> str:
    stat = path.stat()
    cached = _etag_cache.get(path)
    if cached is not None and cached[:2] == (stat.st_mtime, stat.st_size):
        return cached[2]
    etag = hashlib.md5(path.read_bytes()).hexdigest()
    _etag_cache[path] = (stat.st_mtime, stat.st_size, etag)
    return etag


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class _LocalBlobHandle(AsyncBlobHandle):
    def __init__(self, blob_name: str, container_path: Path):
        self._blob_name = blob_name
        self._container_path = container_path

    async def fetch(
        self,
        offset: int = 0,
        count: int = 0,
        access_conditions: AccessConditions | None = None,
        validate_content: bool = False,
        timeout: int | None = None,
    ) -> FetchOutcome:
        try:
            path = _ensure_within(
                self._container_path,
                self._container_path / self._blob_name,
                strict=False,
            )
        except ValueError as e:
            return StoreError(400, "InvalidResourceName", str(e))
        except OSError as e:
            return UnexpectedError(e)

        try:
            if not path.is_file():
                return ObjectNotFound(self._blob_name)
            failure = self._check_conditions(path, access_conditions)
            if failure is not None:
                return failure

            size = path.stat().st_size
            if offset and offset >= size:
                return StoreError(
                    416, "InvalidRange", "The range specified is invalid"
                )
            length = min(count, size - offset) if count else size - offset
            content_type, _ = mimetypes.guess_type(path.name)
            return FetchSuccess(
                content_type=content_type or "application/octet-stream",
                body=_LocalBlobBody(path, offset, length),
            )
        except OSError as e:
            if e.errno == errno.ENAMETOOLONG:
                return StoreError(400, "InvalidResourceName", str(e))
            return UnexpectedError(e)

    def _check_conditions(
        self, path: Path, conditions: AccessConditions | None
    ) -> StoreError | None:
        if conditions is None:
            return None
        if conditions.if_match or conditions.if_none_match:
            etag = _etag(path)
            if conditions.if_match and conditions.if_match.strip('"') != etag:
                return StoreError(412, "ConditionNotMet")
            if conditions.if_none_match and conditions.if_none_match.strip('"') == etag:
                return StoreError(304, "ConditionNotMet")

        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        if (
            conditions.if_modified_since
            and modified <= _aware(conditions.if_modified_since)
        ):
            return StoreError(304, "ConditionNotMet")
        if (
            conditions.if_unmodified_since
            and modified > _aware(conditions.if_unmodified_since)
        ):
            return StoreError(412, "ConditionNotMet")
        return None


class _LocalBlobBody(AsyncBlobBody):
    def __init__(self, path: Path, offset: int, length: int):
        self._file = path.open("rb")
        self._file.seek(offset)
        self._remaining = length
        self._chunks: AsyncGenerator[bytes, None] | None = None

    async def _iter_chunks(self) -> AsyncGenerator[bytes, None]:
        while self._remaining > 0:
            chunk = self._file.read(min(CHUNK_SIZE, self._remaining))
            if not chunk:
                break
            self._remaining -= len(chunk)
            yield chunk

    def __aiter__(self) -> AsyncGenerator[bytes, None]:
        self._chunks = self._iter_chunks()
        return self._chunks

    async def aclose(self) -> None:
        if self._chunks is not None:
            await self._chunks.aclose()
        self._file.close()

    @property
    def closed(self) -> bool:
        return self._file.closed
