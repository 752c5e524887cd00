"""Key-value storage backends for screener persistence.

Values are UTF-8 JSON strings. Backends translate their own failures into
StorageError so the persistence layer can recover from any of them.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import redis

from src.screener.exceptions import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Injected durable store capability."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore:
    """Process-local store, for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore:
    """One `<key>.json` file per key inside a directory.

    Writes go through a temp file and an atomic rename, so a crash never
    leaves a half-written value behind.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}", key=key)
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}", key=key) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp_name, path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}", key=key) from e

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}", key=key) from e


class RedisStore:
    """Redis-backed store; keys are namespaced with a prefix."""

    def __init__(self, url: str = "redis://localhost:6379/0", client=None, prefix: str = "equilibrio:"):
        self.url = url
        self.prefix = prefix
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._get_client().get(self.prefix + key)
        except redis.RedisError as e:
            raise StorageError(f"Redis get failed for {key}: {e}", key=key) from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self._get_client().set(self.prefix + key, value)
        except redis.RedisError as e:
            raise StorageError(f"Redis set failed for {key}: {e}", key=key) from e

    def remove(self, key: str) -> None:
        try:
            self._get_client().delete(self.prefix + key)
        except redis.RedisError as e:
            raise StorageError(f"Redis delete failed for {key}: {e}", key=key) from e


def create_store(settings) -> KeyValueStore:
    """Build the backend named by `settings.storage_backend`."""
    backend = settings.storage_backend
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        return RedisStore(settings.redis_url)
    if backend == "file":
        return JsonFileStore(settings.storage_dir)
    raise ValueError(f"Unknown storage backend: {backend!r}")
