"""
pagepilot/storage/settings_storage.py

Persistent general settings.
"""

from __future__ import annotations

from typing import Any

from pagepilot.data_models.settings import GeneralSettings
from pagepilot.storage.abstract_storage import AbstractKeyValueStorage
from pagepilot.storage.base_storage import TypedStorage
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


GENERAL_SETTINGS_KEY: str = "generalSettings"


class GeneralSettingsStorage:
    """
    Read and update the persisted GeneralSettings.

    Records written before a field existed load with that field's default.
    """

    def __init__(self, backend: AbstractKeyValueStorage, key: str = GENERAL_SETTINGS_KEY) -> None:
        self._storage: TypedStorage[GeneralSettings] = TypedStorage(
            backend=backend,
            key=key,
            model_cls=GeneralSettings,
            live_update=True,
        )

    async def get_settings(self) -> GeneralSettings:
        """Return the current settings."""
        return await self._storage.get()

    async def update_settings(self, **changes: Any) -> GeneralSettings:
        """
        Update some settings fields, keeping the others.

        Args:
            **changes: Field values by snake_case name (e.g. fast_js_mode=True).

        Returns:
            The settings now stored.

        Raises:
            ValueError: If a field name is unknown.
            pydantic.ValidationError: If a value is invalid.
        """
        unknown = set(changes) - set(GeneralSettings.model_fields)
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

        def update(prev: GeneralSettings) -> GeneralSettings:
            return GeneralSettings.model_validate({**prev.model_dump(), **changes})

        updated = await self._storage.set(update)
        logger.info("Updated settings: %s", ", ".join(sorted(changes)))
        return updated
