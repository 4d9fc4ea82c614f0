"""Change-feed event payload.

Shape mirrors a row-level change notification:
    {
        "table": "inventory",
        "event_type": "UPDATE",
        "new": {...row image after the change...},
        "old": {"id": "BOX…"},
        "commit_timestamp": "2026-03-01T08:15:00+00:00"
    }
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

FEED_TABLES = (
    "inventory",
    "production_lines",
    "recipes",
    "produced_bunches",
    "production_line_items",
)


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    table: str
    event_type: ChangeKind
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None
    commit_timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def key(self) -> Any:
        """Primary key of the affected row (new image first, then old)."""
        image = self.new if self.new is not None else (self.old or {})
        return image.get("id")
