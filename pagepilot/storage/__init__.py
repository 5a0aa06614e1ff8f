"""
pagepilot/storage

Persistence: key/value backends, the typed record wrapper, and the
settings and code-favorites stores built on them.
"""

from pagepilot.storage.abstract_storage import (
    AbstractKeyValueStorage,
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
    StorageChange,
)
from pagepilot.storage.base_storage import TypedStorage
from pagepilot.storage.favorites_storage import CodeFavoritesStorage, url_matches_pattern
from pagepilot.storage.settings_storage import GeneralSettingsStorage

__all__ = [
    "AbstractKeyValueStorage",
    "CodeFavoritesStorage",
    "GeneralSettingsStorage",
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    "StorageChange",
    "TypedStorage",
    "url_matches_pattern",
]
