"""Content domain models — pure Pydantic v2 data types.

A ``ContentRecord`` is one rendered markdown document; the
``ContentCollection`` maps normalized routes to records and is the single
document kept in the backing store.  ``UpdateError`` is the structured
result the update coordinator hands back instead of raising.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from routedoc.errors import ErrorCode


class ContentRecord(BaseModel):
    """A stored markdown document.

    ``rendered`` is always produced from ``raw`` by the markdown
    processor; records are replaced wholesale, never edited in place.
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    rendered: str = ""

    @property
    def route(self) -> str | None:
        """The route declared in frontmatter, if any."""
        value = self.attributes.get("route")
        if value is None:
            return None
        return str(value)


class ContentCollection(BaseModel):
    """Every stored record, keyed by normalized route."""

    records: dict[str, ContentRecord] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> ContentCollection:
        """Build a collection from the JSON document kept in the store."""
        return cls.model_validate({"records": document or {}})

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible mapping kept in the store."""
        return self.model_dump(mode="json")["records"]

    def with_record(self, key: str, record: ContentRecord) -> ContentCollection:
        """Return a copy with ``record`` stored at ``key``."""
        return ContentCollection(records={**self.records, key: record})

    def __len__(self) -> int:
        return len(self.records)


class UpdateError(BaseModel):
    """Structured failure returned by ``UpdateCoordinator.update``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    code: ErrorCode
    message: str
