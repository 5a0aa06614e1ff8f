"""
pagepilot/data_models/favorites.py

Code favorites: named JavaScript snippets saved for reuse on matching pages.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from pagepilot.data_models.messages import now_ms


class CodeFavorite(BaseModel):
    """A saved snippet tagged with the URL pattern it applies to."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int = Field(ge=1, description="Unique, monotonically assigned identifier")
    name: str = Field(description="Display name")
    code: str = Field(description="JavaScript source")
    url_pattern: str = Field(description="URL, origin or wildcard pattern the snippet applies to")
    use_count: int = Field(default=0, ge=0, description="Times the snippet was executed from the panel")
    created_at: int = Field(default_factory=now_ms, description="Creation time in epoch milliseconds")


class FavoritesCollection(BaseModel):
    """
    The single persisted record holding every favorite.

    Favorites are stored most-recent-first by insertion; `next_id` is never
    reused, even after deletions.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    next_id: int = Field(default=1, ge=1)
    favorites: list[CodeFavorite] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_next_id(self) -> "FavoritesCollection":
        highest = max((favorite.id for favorite in self.favorites), default=0)
        if self.next_id <= highest:
            raise ValueError(f"next_id ({self.next_id}) must be greater than every favorite id ({highest})")
        return self
