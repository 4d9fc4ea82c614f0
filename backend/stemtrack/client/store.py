"""LocalStore: the client's copy of the five feed collections.

One mapping per collection, keyed by primary id, in display order. It is
filled once by an ordered initial load, then changed only through
apply_change_event():

    INSERT  → new record first (last for production_line_items); an id
              already present is replaced where it stands
    UPDATE  → record replaced by the payload where it stands, never merged
    DELETE  → record removed

Events from this client's own scans are applied like anyone else's, so
replaying an event is harmless: the same UPDATE twice leaves the store as
one application did.
"""

import logging
from typing import Any

from stemtrack.schemas.changes import FEED_TABLES, ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)

INVENTORY = "inventory"
LINES = "production_lines"
RECIPES = "recipes"
BUNCHES = "produced_bunches"
LINE_ITEMS = "production_line_items"

# (sort field, newest first) for the initial load; None keeps server order
_LOAD_ORDER = {
    INVENTORY: ("created_at", True),
    RECIPES: ("created_at", True),
    BUNCHES: ("produced_at", True),
    LINES: ("id", False),
    LINE_ITEMS: None,
}

_APPEND_ON_INSERT = {LINE_ITEMS}


class LocalStore:
    def __init__(self):
        self._collections: dict[str, dict[Any, dict]] = {t: {} for t in FEED_TABLES}

    # ── Loading ──────────────────────────────────────────────

    def load(self, table: str, records: list[dict]) -> None:
        """Replace a collection with a full read, ordered for display."""
        order = _LOAD_ORDER[table]
        if order is not None:
            field, newest_first = order
            records = sorted(records, key=lambda r: r.get(field) or "", reverse=newest_first)
        self._collections[table] = {r["id"]: r for r in records}

    async def load_all(self, api) -> None:
        """Initial load of every collection through a StemTrackClient."""
        self.load(INVENTORY, await api.list_boxes())
        self.load(LINES, await api.list_lines())
        self.load(RECIPES, await api.list_recipes())
        self.load(BUNCHES, await api.list_bunches())
        self.load(LINE_ITEMS, await api.list_line_items())

    # ── Reconciliation ───────────────────────────────────────

    def apply_change_event(self, event: ChangeEvent | dict | str) -> bool:
        """Apply one change event. Returns False when it changed nothing."""
        if isinstance(event, str):
            event = ChangeEvent.model_validate_json(event)
        elif isinstance(event, dict):
            event = ChangeEvent.model_validate(event)

        collection = self._collections.get(event.table)
        key = event.key
        if collection is None or key is None:
            logger.debug("Ignoring change event for %s (key=%r)", event.table, key)
            return False

        if event.event_type == ChangeKind.INSERT:
            if key in collection:
                collection[key] = event.new
            elif event.table in _APPEND_ON_INSERT:
                collection[key] = event.new
            else:
                self._collections[event.table] = {key: event.new, **collection}
            return True

        if event.event_type == ChangeKind.UPDATE:
            if key not in collection:
                return False
            collection[key] = event.new
            return True

        return collection.pop(key, None) is not None

    # ── Reads ────────────────────────────────────────────────

    def records(self, table: str) -> list[dict]:
        return list(self._collections[table].values())

    def get(self, table: str, key) -> dict | None:
        return self._collections[table].get(key)

    @property
    def boxes(self) -> list[dict]:
        return self.records(INVENTORY)

    @property
    def lines(self) -> list[dict]:
        return self.records(LINES)

    @property
    def recipes(self) -> list[dict]:
        return self.records(RECIPES)

    @property
    def bunches(self) -> list[dict]:
        return self.records(BUNCHES)

    @property
    def line_items(self) -> list[dict]:
        return self.records(LINE_ITEMS)

    # ── Selectors ────────────────────────────────────────────

    def search_boxes(self, query: str) -> list[dict]:
        """Boxes whose id, type or color contains the query (case-insensitive)."""
        q = query.strip().lower()
        if not q:
            return self.boxes
        return [
            b for b in self.boxes
            if q in str(b.get("id", "")).lower()
            or q in str(b.get("flower_type", "")).lower()
            or q in str(b.get("color", "")).lower()
        ]

    def boxes_on_line(self, line_id: int) -> list[dict]:
        """Boxes with an assignment row for the line, in assignment order."""
        box_ids = [a["box_id"] for a in self.line_items if a.get("line_id") == line_id]
        inventory = self._collections[INVENTORY]
        return [inventory[b] for b in dict.fromkeys(box_ids) if b in inventory]

    def dashboard(self) -> dict:
        boxes = self.boxes
        return {
            "active_lines": sum(1 for line in self.lines if line.get("status") == "active"),
            "boxes_in_stock": sum(1 for b in boxes if b.get("location") == "inventory"),
            "boxes_checked_out": sum(1 for b in boxes if b.get("location") == "checked-out"),
            "boxes_on_lines": sum(1 for b in boxes if str(b.get("location", "")).startswith("line-")),
            "bunches_produced": len(self.bunches),
            "recipes": len(self.recipes),
        }
