"""
pagepilot/storage/base_storage.py

Typed wrapper around one key of a key/value backend.

A TypedStorage validates the stored JSON into a pydantic model, performs
every write as a locked read-modify-write and, with live updates on, serves
reads from a cache that is dropped whenever the backend reports a change to
its key.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from pydantic import BaseModel

from pagepilot.storage.abstract_storage import AbstractKeyValueStorage, StorageChange
from pagepilot.utils.exceptions import StorageWriteError
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


ModelT = TypeVar("ModelT", bound=BaseModel)


class TypedStorage(Generic[ModelT]):
    """
    One pydantic record persisted under a single storage key.
    """

    def __init__(
        self,
        backend: AbstractKeyValueStorage,
        key: str,
        model_cls: type[ModelT],
        default_factory: Callable[[], ModelT] | None = None,
        live_update: bool = True,
    ) -> None:
        """
        Initialize the typed storage.

        Args:
            backend: Key/value backend holding the record.
            key: Storage key of the record.
            model_cls: Pydantic model the stored JSON validates into.
            default_factory: Builds the value returned before the first write.
                Defaults to model_cls().
            live_update: Cache reads and refresh them on backend change notifications.
        """
        self._backend = backend
        self._key = key
        self._model_cls = model_cls
        self._default_factory = default_factory or model_cls
        self._live_update = live_update
        self._cache: ModelT | None = None
        self._listeners: list[Callable[[], None]] = []
        self._unsubscribe_backend = backend.subscribe(self._on_backend_change) if live_update else None

    @property
    def key(self) -> str:
        return self._key

    ## Public API

    async def get(self) -> ModelT:
        """Return the current record (default value if never written)."""
        if self._live_update and self._cache is not None:
            return self._cache
        value = await self._load()
        if self._live_update:
            self._cache = value
        return value

    async def set(self, value: ModelT | Callable[[ModelT], ModelT]) -> ModelT:
        """
        Replace the record, or update it from its current value.

        The read, the update function and the write run under the key's lock,
        so concurrent updates never interleave. An update function that returns
        its argument unchanged skips the write.

        Args:
            value: New record, or a function mapping the current record to the new one.

        Returns:
            The record now stored.

        Raises:
            StorageWriteError: If the backend rejected the write. Nothing is changed.
        """
        async with self._backend.lock(self._key):
            current = await self._load()
            new_value = value(current) if callable(value) else value
            if new_value is current:
                return current
            try:
                await self._backend.set(self._key, new_value.model_dump(mode="json", by_alias=True))
            except Exception as e:
                logger.error("Write to storage key '%s' failed: %s", self._key, e)
                raise StorageWriteError(self._key, e) from e
            if self._live_update:
                self._cache = new_value
            return new_value

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback fired whenever this key changes in the backend.

        Listeners are expected to re-query via get().

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Stop receiving backend notifications."""
        if self._unsubscribe_backend is not None:
            self._unsubscribe_backend()
            self._unsubscribe_backend = None
        self._listeners = []

    ## Internal methods

    async def _load(self) -> ModelT:
        raw = await self._backend.get(self._key)
        if raw is None:
            return self._default_factory()
        return self._model_cls.model_validate(raw)

    def _on_backend_change(self, changes: dict[str, StorageChange]) -> None:
        if self._key not in changes:
            return
        self._cache = None
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.exception("Listener for storage key '%s' failed: %s", self._key, e)
