from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentItem(BaseModel):
    """
    One Orchard Core content item as it appears in a recipe ``content`` step.

    Only the fields shared by every content type are declared.  Theme
    specific parts (``TitlePart``, ``AutoroutePart``, ``BlogPost`` ...) are
    passed as extra keyword arguments and serialized verbatim; nested
    content items live inside those parts.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    content_item_id: str = Field(..., min_length=1, alias="ContentItemId")
    content_item_version_id: Optional[str] = Field(None, alias="ContentItemVersionId")
    content_type: str = Field(..., min_length=1, alias="ContentType")
    display_text: Optional[str] = Field(None, alias="DisplayText")
    latest: bool = Field(True, alias="Latest")
    published: bool = Field(False, alias="Published")
    modified_utc: Optional[datetime] = Field(None, alias="ModifiedUtc")
    published_utc: Optional[datetime] = Field(None, alias="PublishedUtc")
    created_utc: Optional[datetime] = Field(None, alias="CreatedUtc")
    owner: Optional[str] = Field(None, alias="Owner")
    author: Optional[str] = Field(None, alias="Author")

    def to_recipe(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def part(self, name: str) -> Any:
        """Return an extra part by name, or ``None``."""
        return (self.model_extra or {}).get(name)


def iter_content_item_ids(node: Any) -> Iterator[str]:
    """Yield every ``ContentItemId`` in a serialized item, nested ones included."""
    if isinstance(node, dict):
        item_id = node.get("ContentItemId")
        if isinstance(item_id, str):
            yield item_id
        for value in node.values():
            yield from iter_content_item_ids(value)
    elif isinstance(node, list):
        for value in node:
            yield from iter_content_item_ids(value)
