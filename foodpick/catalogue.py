"""Item catalogue: loads and caches the static list of recommendable items."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Iterable
from pathlib import Path

from foodpick.models import Category, Item

logger = logging.getLogger(__name__)


class ItemCatalogue:
    """Read-only, ordered collection of :class:`~foodpick.models.Item`.

    Catalogue order is significant: it breaks ties when ranking items and
    when choosing favourite categories.

    All public methods are thread-safe.

    Args:
        items: Initial items, in catalogue order.

    Raises:
        ValueError: If two items share an ``item_id``.
    """

    def __init__(self, items: Iterable[Item] = ()) -> None:
        self._lock = threading.RLock()
        self._items: list[Item] = []
        self._index: dict[str, Item] = {}
        self._replace(list(items))

    @classmethod
    def from_json_file(cls, path: str | os.PathLike[str]) -> ItemCatalogue:
        """Load a catalogue from a JSON document.

        The document is either a list of item objects or an object with an
        ``"items"`` list.

        Args:
            path: Location of the JSON document.

        Returns:
            A populated :class:`ItemCatalogue`.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the document or any item in it is malformed.
        """
        path = Path(path)
        with path.open("r", encoding="utf-8") as fh:
            document = json.load(fh)
        records = document.get("items", []) if isinstance(document, dict) else document
        try:
            items = [Item.from_dict(record) for record in records]
        except KeyError as exc:
            raise ValueError(f"Catalogue item in {path} is missing field {exc}") from exc
        catalogue = cls(items)
        logger.info("Item catalogue loaded from %s: %d items.", path, len(items))
        return catalogue

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def get_all_items(self) -> list[Item]:
        """Return a snapshot list of all items in catalogue order."""
        with self._lock:
            return list(self._items)

    def get_item(self, item_id: str) -> Item | None:
        """Return a single item by ID, or ``None`` if not found."""
        with self._lock:
            return self._index.get(item_id)

    def get_items_by_category(self, category: Category) -> list[Item]:
        with self._lock:
            return [item for item in self._items if item.category == category]

    def category_totals(self) -> dict[Category, int]:
        """Return the number of items per category, every category present."""
        totals = {category: 0 for category in Category}
        with self._lock:
            for item in self._items:
                totals[item.category] += 1
        return totals

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _replace(self, items: list[Item]) -> None:
        index: dict[str, Item] = {}
        for item in items:
            if item.item_id in index:
                raise ValueError(f"Duplicate item_id {item.item_id!r} in catalogue")
            index[item.item_id] = item
        with self._lock:
            self._items = items
            self._index = index
