"""
pagepilot/storage/abstract_storage.py

Key/value persistence with change notifications.

Contains:
- StorageChange: old/new value pair delivered to listeners
- AbstractKeyValueStorage: get/set/subscribe contract plus per-key write locks
- InMemoryKeyValueStorage: process-local backend (tests, ephemeral sessions)
- JsonFileKeyValueStorage: single JSON document on disk, atomically replaced
  and shared between processes through an fcntl lock file
"""

from __future__ import annotations

import asyncio
import copy
import fcntl
import json
import os
import tempfile
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, AsyncIterator, Callable

from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


FILE_LOCK_TIMEOUT_SECONDS: float = 10.0
_FILE_LOCK_RETRY_DELAY_SECONDS: float = 0.01


@dataclass(frozen=True)
class StorageChange:
    """A single key's change, as delivered to subscribers."""
    old_value: Any
    new_value: Any


StorageChangeListener = Callable[[dict[str, StorageChange]], None]


class AbstractKeyValueStorage(ABC):
    """
    Abstract key/value store of JSON-compatible values.

    Subclasses implement _read() and _write(). The base class handles change
    notification and hands out one write lock per key so that wrappers can
    serialize their read-modify-write cycles. Backends shared with other
    processes also override _acquire_exclusive() and _release_exclusive().
    """

    def __init__(self) -> None:
        self._listeners: list[StorageChangeListener] = []
        self._locks: dict[str, asyncio.Lock] = {}

    ## Abstract methods

    @abstractmethod
    async def _read(self, key: str) -> Any | None:
        """Return the stored value for key, or None if absent."""

    @abstractmethod
    async def _write(self, key: str, value: Any) -> None:
        """Persist value under key. Must raise if the write did not happen."""

    ## Public API

    async def get(self, key: str) -> Any | None:
        """
        Get a copy of the value stored under key.

        Args:
            key: Storage key.

        Returns:
            The stored value, or None if the key was never written.
        """
        return copy.deepcopy(await self._read(key))

    async def set(self, key: str, value: Any) -> None:
        """
        Store value under key and notify subscribers.

        Args:
            key: Storage key.
            value: JSON-compatible value.
        """
        old_value = await self._read(key)
        await self._write(key, copy.deepcopy(value))
        self._notify({key: StorageChange(old_value=old_value, new_value=copy.deepcopy(value))})

    def subscribe(self, listener: StorageChangeListener) -> Callable[[], None]:
        """
        Register a change listener.

        Args:
            listener: Called synchronously after every successful write with
                a mapping of changed keys.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        """
        Hold the write lock of key for one read-modify-write cycle.

        Every wrapper of key in this process shares one asyncio.Lock. Inside
        it the backend takes its cross-process lock, if it has one, and reads
        made while the lock is held see every write that completed before.
        """
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        async with self._locks[key]:
            await self._acquire_exclusive()
            try:
                yield
            finally:
                await self._release_exclusive()

    ## Internal methods

    async def _acquire_exclusive(self) -> None:
        """Take the cross-process lock. Process-local backends have none."""

    async def _release_exclusive(self) -> None:
        """Release the lock taken by _acquire_exclusive()."""

    def _notify(self, changes: dict[str, StorageChange]) -> None:
        """Deliver changes to every listener; one failing listener does not stop the others."""
        for listener in list(self._listeners):
            try:
                listener(changes)
            except Exception as e:
                logger.exception("Storage change listener failed: %s", e)


class InMemoryKeyValueStorage(AbstractKeyValueStorage):
    """Backend that keeps everything in a dict."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def _read(self, key: str) -> Any | None:
        return self._data.get(key)

    async def _write(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileKeyValueStorage(AbstractKeyValueStorage):
    """
    Backend that keeps all keys in one JSON document.

    Writes go to a temporary file in the same directory which then replaces
    the document, so readers never observe a half-written file. Several
    backends (in this or other processes) may share one document: write
    locks also hold an flock on `<document>.lock` and reload the document
    before yielding, and every write merges into the document as it is on
    disk.
    """

    def __init__(self, path: str | Path, lock_timeout: float = FILE_LOCK_TIMEOUT_SECONDS) -> None:
        super().__init__()
        self._path = Path(path)
        self._lock_path = self._path.with_name(f"{self._path.name}.lock")
        self._lock_timeout = lock_timeout
        self._lock_file: IO[str] | None = None
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    async def reload(self) -> None:
        """
        Re-read the document from disk and notify subscribers of keys that
        changed (e.g. when another process wrote the file).
        """
        previous = self._data or {}
        self._data = await asyncio.to_thread(self._load)
        changes = {
            key: StorageChange(old_value=previous.get(key), new_value=self._data.get(key))
            for key in set(previous) | set(self._data)
            if previous.get(key) != self._data.get(key)
        }
        if changes:
            self._notify(changes)

    async def _read(self, key: str) -> Any | None:
        if self._data is None:
            self._data = await asyncio.to_thread(self._load)
        return self._data.get(key)

    async def _write(self, key: str, value: Any) -> None:
        current = await asyncio.to_thread(self._load)
        updated = {**current, key: value}
        await asyncio.to_thread(self._dump, updated)
        self._data = updated

    async def _acquire_exclusive(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        lock_file = self._lock_path.open("a", encoding="utf-8")
        start_time = time.monotonic()
        retry_count = 0
        while True:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except OSError:
                if time.monotonic() - start_time >= self._lock_timeout:
                    lock_file.close()
                    raise TimeoutError(
                        f"Timed out after {self._lock_timeout}s waiting for lock file {self._lock_path}"
                    )
                retry_count += 1
                await asyncio.sleep(min(_FILE_LOCK_RETRY_DELAY_SECONDS * 2 ** min(retry_count, 5), 0.5))
        self._lock_file = lock_file
        try:
            await self.reload()
        except Exception:
            await self._release_exclusive()
            raise

    async def _release_exclusive(self) -> None:
        if self._lock_file is None:
            return
        # The lock file stays in place; unlinking it would let a waiter lock a stale inode.
        try:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_file.close()
            self._lock_file = None

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self._path} does not contain a JSON object")
        return data

    def _dump(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Wrote storage file %s", self._path)
