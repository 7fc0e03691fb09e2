"""
Gift and calendar catalog.

Read-only lookup over the ``gifts`` (``{"items": [...]}``) and ``calendars``
(``{"calendars": [...]}``) snapshots. Calendars resolve with the ``calendar``
category. The only write is the administrative enable/disable toggle.
"""

from pydantic import ValidationError

from wolfgift.core.exceptions import CatalogError
from wolfgift.core.logging import get_logger
from wolfgift.core.types import (
    CALENDAR_CATEGORY,
    CalendarPurchase,
    CatalogEntry,
    PurchaseRequest,
)
from wolfgift.storage import CalendarItem, GiftItem, StateSink

logger = get_logger("wolfgift.commerce.catalog")

GIFTS_SNAPSHOT = "gifts"
CALENDARS_SNAPSHOT = "calendars"


class Catalog:
    def __init__(
        self,
        items: list[GiftItem] | None = None,
        calendars: list[CalendarItem] | None = None,
        sink: StateSink | None = None,
    ) -> None:
        self.sink = sink
        self._items: dict[str, GiftItem] = {i.type: i for i in items or []}
        self._calendars: dict[str, CalendarItem] = {c.id: c for c in calendars or []}

    @classmethod
    def from_sink(cls, sink: StateSink) -> "Catalog":
        catalog = cls(sink=sink)
        catalog.reload()
        return catalog

    def reload(self) -> None:
        """Re-read both snapshots from the sink."""
        if self.sink is None:
            return
        gifts = self.sink.load(GIFTS_SNAPSHOT, {"items": []}) or {}
        calendars = self.sink.load(CALENDARS_SNAPSHOT, {"calendars": []}) or {}
        try:
            items = [GiftItem.model_validate(i) for i in gifts.get("items", [])]
            cals = [CalendarItem.model_validate(c) for c in calendars.get("calendars", [])]
        except (ValidationError, AttributeError) as e:
            raise CatalogError("Catalog data could not be parsed", cause=e) from e

        self._items = {i.type: i for i in items}
        self._calendars = {c.id: c for c in cals}
        logger.info("catalog_loaded", items=len(self._items), calendars=len(self._calendars))

    # =========================================================================
    # Lookup
    # =========================================================================

    def find_item(self, item_type: str) -> CatalogEntry | None:
        item = self._items.get(item_type)
        if item is None:
            return None
        return CatalogEntry(
            key=item.type,
            cost=item.cost,
            category=item.category,
            enabled=item.enabled,
            title=item.type,
            metadata=item.model_extra or {},
        )

    def find_calendar(self, calendar_id: str) -> CatalogEntry | None:
        calendar = self._calendars.get(str(calendar_id))
        if calendar is None:
            return None
        return CatalogEntry(
            key=calendar.id,
            cost=calendar.cost,
            category=CALENDAR_CATEGORY,
            enabled=calendar.enabled,
            title=calendar.title,
            is_calendar=True,
            metadata=calendar.model_extra or {},
        )

    def resolve(self, request: PurchaseRequest) -> CatalogEntry | None:
        if isinstance(request, CalendarPurchase):
            return self.find_calendar(request.calendar_id)
        return self.find_item(request.item_type)

    def enabled_items(self, category: str | None = None) -> list[CatalogEntry]:
        entries = []
        for item in self._items.values():
            if not item.enabled or (category is not None and item.category != category):
                continue
            entry = self.find_item(item.type)
            if entry is not None:
                entries.append(entry)
        return entries

    def enabled_calendars(self) -> list[CatalogEntry]:
        return [
            entry
            for entry in (self.find_calendar(c.id) for c in self._calendars.values() if c.enabled)
            if entry is not None
        ]

    def categories(self) -> list[str]:
        return sorted({i.category for i in self._items.values() if i.category})

    # =========================================================================
    # Admin
    # =========================================================================

    def set_enabled(self, item_type: str, enabled: bool) -> CatalogEntry | None:
        """Enable or disable an item and persist the gifts snapshot."""
        item = self._items.get(item_type)
        if item is None:
            raise CatalogError(
                f"Unknown item '{item_type}'",
                details={"item_type": item_type},
                suggestions=["Reload the catalog or check the item type"],
            )
        item.enabled = enabled
        if self.sink is not None:
            self.sink.save(
                GIFTS_SNAPSHOT,
                {"items": [i.model_dump() for i in self._items.values()]},
            )
        logger.info("catalog_item_toggled", item_type=item_type, enabled=enabled)
        return self.find_item(item_type)


__all__ = ["Catalog", "GIFTS_SNAPSHOT", "CALENDARS_SNAPSHOT"]
