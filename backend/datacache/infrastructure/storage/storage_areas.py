"""
Storage areas backing the persistent tier.

Each area is a string key/value store with localStorage semantics. Failures
are raised as ``CacheStorageException`` subclasses and handled by the
persistent tier.
"""

import hashlib
import json
import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Union

import redis
from redis.exceptions import RedisError
import structlog

from ...domain.cache.repository_interfaces import StorageArea
from .exceptions import (
    CacheQuotaExceededException,
    CacheSerializationException,
    CacheStorageUnavailableException,
)

logger = structlog.get_logger(__name__)


class MemoryStorageArea(StorageArea):
    """Dictionary-backed area. Not durable; used in tests and ephemeral setups."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> Iterable[str]:
        return list(self._items)


class FileStorageArea(StorageArea):
    """
    Directory-backed area that survives process restarts.

    Every key lives in its own file named after the SHA-256 of the key; the
    file holds a small JSON envelope with the original key and the value.
    Writes go through a temporary file and ``os.replace`` so readers never
    observe a half-written value. An optional quota bounds the total size
    of the directory, like the browser's localStorage quota.
    """

    SUFFIX = ".json"

    def __init__(self, directory: Union[str, Path], quota_bytes: Optional[int] = None):
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheStorageUnavailableException(
                "Could not read storage file", operation="read", original_error=e
            )
        return self._decode(path, raw)["value"]

    def set_item(self, key: str, value: str) -> None:
        payload = json.dumps({"key": key, "value": value})
        path = self._path_for(key)

        if self.quota_bytes is not None:
            required = self._used_bytes(exclude=path) + len(payload.encode("utf-8"))
            if required > self.quota_bytes:
                raise CacheQuotaExceededException(key, required, self.quota_bytes)

        tmp_path = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise CacheStorageUnavailableException(
                "Could not write storage file", operation="write", original_error=e
            )

    def remove_item(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise CacheStorageUnavailableException(
                "Could not remove storage file", operation="delete", original_error=e
            )

    def keys(self) -> Iterable[str]:
        return [key for key, _ in self._iter_entries()]

    def _iter_entries(self) -> Iterator[tuple]:
        if not self.directory.exists():
            return
        try:
            paths = sorted(self.directory.glob(f"*{self.SUFFIX}"))
        except OSError as e:
            raise CacheStorageUnavailableException(
                "Could not list storage directory", operation="keys", original_error=e
            )
        for path in paths:
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                # Removed by a concurrent writer
                continue
            except OSError as e:
                raise CacheStorageUnavailableException(
                    "Could not read storage file", operation="keys", original_error=e
                )
            try:
                yield self._decode(path, raw)["key"], path
            except CacheSerializationException:
                logger.warning("Skipping unreadable storage file", path=str(path))

    def _used_bytes(self, exclude: Path) -> int:
        total = 0
        if not self.directory.exists():
            return total
        for path in self.directory.glob(f"*{self.SUFFIX}"):
            if path == exclude:
                continue
            try:
                total += path.stat().st_size
            except FileNotFoundError:
                continue
        return total

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}{self.SUFFIX}"

    @staticmethod
    def _decode(path: Path, raw: str) -> dict:
        try:
            envelope = json.loads(raw)
            if not isinstance(envelope, dict) or "key" not in envelope:
                raise ValueError("missing envelope fields")
            envelope.setdefault("value", None)
            return envelope
        except ValueError as e:
            raise CacheSerializationException(
                f"Corrupt storage file {path.name}", original_error=e
            )


class RedisStorageArea(StorageArea):
    """Area stored in Redis through the synchronous client."""

    def __init__(self, client: redis.Redis, scan_match: str = "*"):
        self.client = client
        self.scan_match = scan_match

    @classmethod
    def from_url(
        cls, url: str, socket_timeout: float = 2.0, scan_match: str = "*"
    ) -> "RedisStorageArea":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, scan_match=scan_match)

    def get_item(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(key)
        except RedisError as e:
            raise CacheStorageUnavailableException(
                "Redis read failed", operation="read", original_error=e
            )
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set_item(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except RedisError as e:
            raise CacheStorageUnavailableException(
                "Redis write failed", operation="write", original_error=e
            )

    def remove_item(self, key: str) -> None:
        try:
            self.client.delete(key)
        except RedisError as e:
            raise CacheStorageUnavailableException(
                "Redis delete failed", operation="delete", original_error=e
            )

    def keys(self) -> Iterable[str]:
        try:
            return [
                key.decode("utf-8") if isinstance(key, bytes) else key
                for key in self.client.scan_iter(match=self.scan_match)
            ]
        except RedisError as e:
            raise CacheStorageUnavailableException(
                "Redis scan failed", operation="keys", original_error=e
            )

    def close(self) -> None:
        try:
            self.client.close()
        except RedisError as e:
            raise CacheStorageUnavailableException(
                "Redis close failed", operation="close", original_error=e
            )
        logger.info("Redis storage connection closed")
