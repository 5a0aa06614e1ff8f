"""
pagepilot/panels/favorites_panel.py

Code favorites panel: lists the favorites for the current page and maps
user intents (save, update, delete, execute) onto the favorites store.
"""

from typing import Callable

from pagepilot.agents.navigator import run_execute_code_action
from pagepilot.agents.transcript import Transcript
from pagepilot.browser.abstract_page import AbstractBrowserPage
from pagepilot.data_models.favorites import CodeFavorite
from pagepilot.data_models.messages import Message
from pagepilot.storage.favorites_storage import CodeFavoritesStorage
from pagepilot.utils.code_provenance import decode_executed_code
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


class CodeFavoritesPanel:
    """
    Presentation-side controller over a CodeFavoritesStorage.

    Not-found ids degrade to no-ops (None / False) instead of raising.
    """

    def __init__(
        self,
        store: CodeFavoritesStorage,
        page: AbstractBrowserPage | None = None,
        transcript: Transcript | None = None,
    ) -> None:
        """
        Initialize the panel.

        Args:
            store: Favorites store.
            page: Page favorites execute in. Required for execute_favorite().
            transcript: Receives execution outcome messages. A private one is used if omitted.
        """
        self._store = store
        self._page = page
        self._transcript = transcript or Transcript()

    async def list_favorites(self, current_url: str | None = None) -> list[CodeFavorite]:
        """Favorites applicable to current_url, or all of them when no URL is known."""
        if not current_url:
            return await self._store.get_all_favorites()
        return await self._store.get_favorites_by_url(current_url)

    async def list_for_current_page(self) -> list[CodeFavorite]:
        """Favorites applicable to the page's current URL."""
        current_url = await self._page.get_current_url() if self._page is not None else None
        return await self.list_favorites(current_url)

    async def save_code(self, name: str, code: str, url_pattern: str) -> CodeFavorite | None:
        """Save code as a new favorite. Blank name or code is ignored."""
        if not name.strip() or not code.strip():
            logger.info("Not saving favorite with blank name or code")
            return None
        return await self._store.add_favorite(name=name.strip(), code=code, url_pattern=url_pattern.strip())

    async def save_from_message(self, message: Message, name: str, url_pattern: str) -> CodeFavorite | None:
        """Save the code a navigator message recorded. None if the message carries no code."""
        code = decode_executed_code(message.content)
        if code is None:
            return None
        return await self.save_code(name=name, code=code, url_pattern=url_pattern)

    async def update_favorite(self, favorite_id: int, name: str, code: str, url_pattern: str) -> CodeFavorite | None:
        return await self._store.update_favorite(favorite_id, name=name, code=code, url_pattern=url_pattern)

    async def delete_favorite(self, favorite_id: int) -> None:
        await self._store.remove_favorite(favorite_id)

    async def execute_favorite(self, favorite_id: int) -> str | None:
        """
        Run a favorite in the page.

        The use count is incremented before the code runs, so it counts
        attempts and not successes.

        Returns:
            The outcome message (with the executed-code block), or None if the
            favorite does not exist.

        Raises:
            RuntimeError: If the panel has no page.
        """
        if self._page is None:
            raise RuntimeError("CodeFavoritesPanel has no page to execute favorites in")
        favorite = await self._store.get_favorite_by_id(favorite_id)
        if favorite is None:
            logger.info("execute_favorite: no favorite with id %d", favorite_id)
            return None
        await self._store.increment_use_count(favorite_id)
        logger.info("Executing favorite %d (%s)", favorite.id, favorite.name)
        result = await run_execute_code_action(self._page, self._transcript, favorite.code)
        return result.content

    def watch(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Call callback whenever the favorites change in storage, including
        changes made by other panels or processes.

        Returns:
            A callable that stops watching.
        """
        return self._store.storage.subscribe(callback)
