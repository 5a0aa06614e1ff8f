"""
pagepilot/storage/favorites_storage.py

Persistent store of code favorites.

Contains:
- url_matches_pattern: decides whether a favorite applies to a page URL
- CodeFavoritesStorage: async CRUD over the favorites collection record

Every mutation is one locked read-modify-write of the whole collection, so
two concurrent saves can never allocate the same id.
"""

from __future__ import annotations

from urllib.parse import urlsplit

import regex

from pagepilot.data_models.favorites import CodeFavorite, FavoritesCollection
from pagepilot.data_models.messages import now_ms
from pagepilot.storage.abstract_storage import AbstractKeyValueStorage
from pagepilot.storage.base_storage import TypedStorage
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


CODE_FAVORITES_KEY: str = "codeFavorites"

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}
_WILDCARD_TIMEOUT_SECONDS: float = 0.5


## URL matching

def _parse_origin(value: str) -> tuple[str, str, int | None] | None:
    """
    Return (scheme, host, port) for an absolute URL, or None if value is not one.
    """
    try:
        parsed = urlsplit(value)
        port = parsed.port
    except ValueError:
        return None
    if not parsed.scheme or not parsed.hostname:
        return None
    scheme = parsed.scheme.lower()
    return scheme, parsed.hostname.lower(), port if port is not None else _DEFAULT_PORTS.get(scheme)


def _matches_wildcard(url: str, pattern: str) -> bool:
    """Anchored match where each `*` stands for any substring."""
    expression = ".*".join(regex.escape(part) for part in regex.split(r"\*+", pattern))
    try:
        return regex.fullmatch(expression, url, timeout=_WILDCARD_TIMEOUT_SECONDS) is not None
    except (TimeoutError, regex.error) as e:
        logger.warning("Wildcard pattern %r could not be evaluated: %s", pattern, e)
        return False


def url_matches_pattern(url: str, pattern: str) -> bool:
    """
    Check whether a page URL matches a favorite's URL pattern.

    Rules, first match wins:
    1. exact string equality
    2. both are absolute URLs with the same origin (scheme, host, port)
    3. the pattern contains `*` wildcards and matches the whole URL
    4. if either side is not an absolute URL: substring containment in
       either direction

    Never raises.

    Args:
        url: The page URL.
        pattern: The favorite's url_pattern.

    Returns:
        True if the favorite applies to the page.
    """
    if url == pattern:
        return True

    url_origin = _parse_origin(url)
    pattern_origin = _parse_origin(pattern)
    if url_origin is not None and url_origin == pattern_origin:
        return True

    if "*" in pattern and _matches_wildcard(url, pattern):
        return True

    if url_origin is None or pattern_origin is None:
        if not url or not pattern:
            return False
        return pattern in url or url in pattern

    return False


## Storage

class CodeFavoritesStorage:
    """
    Async CRUD over the persisted favorites collection.

    Not-found is never an error: lookups return None and mutations of an
    unknown id are no-ops.
    """

    def __init__(self, backend: AbstractKeyValueStorage, key: str = CODE_FAVORITES_KEY) -> None:
        """
        Initialize the favorites storage.

        Args:
            backend: Key/value backend shared with the rest of the app.
            key: Storage key of the collection record.
        """
        self._storage: TypedStorage[FavoritesCollection] = TypedStorage(
            backend=backend,
            key=key,
            model_cls=FavoritesCollection,
            live_update=True,
        )

    @property
    def storage(self) -> TypedStorage[FavoritesCollection]:
        """The underlying typed storage (for change subscriptions)."""
        return self._storage

    ## Mutations

    async def add_favorite(self, name: str, code: str, url_pattern: str) -> CodeFavorite:
        """
        Save a new favorite.

        Args:
            name: Display name.
            code: JavaScript source.
            url_pattern: URL, origin or wildcard pattern the snippet applies to.

        Returns:
            The created favorite with its allocated id.
        """
        created: CodeFavorite | None = None

        def update(prev: FavoritesCollection) -> FavoritesCollection:
            nonlocal created
            created = CodeFavorite(
                id=prev.next_id,
                name=name,
                code=code,
                url_pattern=url_pattern,
                use_count=0,
                created_at=now_ms(),
            )
            return FavoritesCollection(next_id=prev.next_id + 1, favorites=[created, *prev.favorites])

        await self._storage.set(update)
        logger.info("Saved code favorite %d (%s) for %s", created.id, name, url_pattern)
        return created

    async def update_favorite(
        self,
        favorite_id: int,
        name: str,
        code: str,
        url_pattern: str,
    ) -> CodeFavorite | None:
        """
        Replace a favorite's name, code and URL pattern.

        The id, use count and creation time are preserved.

        Returns:
            The updated favorite, or None if no favorite has that id.
        """
        updated: CodeFavorite | None = None

        def update(prev: FavoritesCollection) -> FavoritesCollection:
            nonlocal updated
            favorites: list[CodeFavorite] = []
            for favorite in prev.favorites:
                if favorite.id == favorite_id:
                    updated = favorite.model_copy(update={"name": name, "code": code, "url_pattern": url_pattern})
                    favorites.append(updated)
                else:
                    favorites.append(favorite)
            if updated is None:
                return prev
            return prev.model_copy(update={"favorites": favorites})

        await self._storage.set(update)
        if updated is None:
            logger.debug("update_favorite: no favorite with id %d", favorite_id)
        return updated

    async def remove_favorite(self, favorite_id: int) -> None:
        """Delete a favorite. Unknown ids are ignored."""

        def update(prev: FavoritesCollection) -> FavoritesCollection:
            favorites = [favorite for favorite in prev.favorites if favorite.id != favorite_id]
            if len(favorites) == len(prev.favorites):
                return prev
            return prev.model_copy(update={"favorites": favorites})

        await self._storage.set(update)

    async def increment_use_count(self, favorite_id: int) -> None:
        """Add one to a favorite's use count. Unknown ids are ignored."""

        def update(prev: FavoritesCollection) -> FavoritesCollection:
            if not any(favorite.id == favorite_id for favorite in prev.favorites):
                return prev
            favorites = [
                favorite.model_copy(update={"use_count": favorite.use_count + 1})
                if favorite.id == favorite_id else favorite
                for favorite in prev.favorites
            ]
            return prev.model_copy(update={"favorites": favorites})

        await self._storage.set(update)

    ## Queries

    async def get_all_favorites(self) -> list[CodeFavorite]:
        """Return every favorite, most recently created first."""
        collection = await self._storage.get()
        return sorted(collection.favorites, key=lambda favorite: favorite.created_at, reverse=True)

    async def get_favorites_by_url(self, url: str) -> list[CodeFavorite]:
        """Return the favorites whose url_pattern matches url, in storage order."""
        collection = await self._storage.get()
        return [favorite for favorite in collection.favorites if url_matches_pattern(url, favorite.url_pattern)]

    async def get_favorite_by_id(self, favorite_id: int) -> CodeFavorite | None:
        """Return the favorite with the given id, or None."""
        collection = await self._storage.get()
        for favorite in collection.favorites:
            if favorite.id == favorite_id:
                return favorite
        return None
