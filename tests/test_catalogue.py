"""Tests for foodpick.catalogue.ItemCatalogue."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import make_item
from foodpick.catalogue import ItemCatalogue
from foodpick.models import Category

BUNDLED_CATALOGUE = Path(__file__).resolve().parent.parent / "data" / "catalogue.json"


class TestLookups:
    def test_preserves_order(self, catalogue, sample_items) -> None:
        assert [i.item_id for i in catalogue.get_all_items()] == [
            i.item_id for i in sample_items
        ]

    def test_get_item(self, catalogue) -> None:
        assert catalogue.get_item("4").category == Category.BREAKFAST

    def test_get_unknown_item_returns_none(self, catalogue) -> None:
        assert catalogue.get_item("999") is None

    def test_snapshot_is_a_copy(self, catalogue) -> None:
        items = catalogue.get_all_items()
        items.clear()
        assert len(catalogue) == 15

    def test_items_by_category(self, catalogue) -> None:
        snacks = catalogue.get_items_by_category(Category.SNACK)
        assert [i.item_id for i in snacks] == ["11", "14", "15"]

    def test_category_totals_cover_every_category(self, catalogue) -> None:
        totals = catalogue.category_totals()
        assert set(totals) == set(Category)
        assert totals[Category.LUNCH] == 4
        assert totals[Category.DRINK] == 1
        assert sum(totals.values()) == 15

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(ValueError):
            ItemCatalogue([make_item("1"), make_item("1")])


class TestFromJsonFile:
    def test_loads_items_object(self, tmp_path) -> None:
        path = tmp_path / "cat.json"
        path.write_text(json.dumps({"items": [make_item("a").to_dict()]}), encoding="utf-8")
        cat = ItemCatalogue.from_json_file(path)
        assert cat.get_item("a") == make_item("a")

    def test_loads_bare_list(self, tmp_path) -> None:
        path = tmp_path / "cat.json"
        path.write_text(
            json.dumps([make_item("a").to_dict(), make_item("b").to_dict()]),
            encoding="utf-8",
        )
        assert len(ItemCatalogue.from_json_file(path)) == 2

    def test_missing_field_raises_value_error(self, tmp_path) -> None:
        path = tmp_path / "cat.json"
        path.write_text(json.dumps([{"item_id": "a"}]), encoding="utf-8")
        with pytest.raises(ValueError):
            ItemCatalogue.from_json_file(path)

    def test_bundled_catalogue_loads(self) -> None:
        cat = ItemCatalogue.from_json_file(BUNDLED_CATALOGUE)
        assert len(cat) == 15
        assert all(cat.category_totals().values())
