"""Tests for collection helpers: dedupe, tombstone filtering, references."""

from conftest import make_item

from notesweep.items import (
    comma_split,
    deduplicate,
    filter_tombstoned,
    live_items,
    out_list,
    project_references,
    references_to_dicts,
    string_in_list,
)
from notesweep.types import Item, ItemReference, ItemState


class TestDeduplicate:
    def test_keeps_first_occurrence_in_order(self):
        a1 = make_item("a", "first a")
        b = make_item("b", "b")
        a2 = make_item("a", "second a")
        c = make_item("c", "c")

        result = deduplicate([a1, b, a2, c, b])

        assert [i.id for i in result] == ["a", "b", "c"]
        assert result[0].title == "first a"

    def test_idempotent(self):
        items = [make_item(i) for i in ["x", "y", "x", "z", "y", "y"]]
        once = deduplicate(items)
        assert deduplicate(once) == once

    def test_empty(self):
        assert deduplicate([]) == []

    def test_does_not_modify_input(self):
        items = [make_item("a"), make_item("a")]
        deduplicate(items)
        assert len(items) == 2


class TestFilterTombstoned:
    def test_drops_deleted_and_preserves_order(self):
        items = [
            make_item("1"),
            make_item("2", deleted=True),
            make_item("3"),
            make_item("4", deleted=True),
            make_item("5"),
        ]
        result = filter_tombstoned(items)
        assert [i.id for i in result] == ["1", "3", "5"]

    def test_never_increases_live_count(self):
        items = [make_item(str(n), deleted=n % 3 == 0) for n in range(20)]
        live_before = sum(1 for i in items if not i.deleted)
        assert len(filter_tombstoned(items)) == live_before

    def test_input_untouched(self):
        items = [make_item("1", deleted=True), make_item("2")]
        filter_tombstoned(items)
        assert [i.id for i in items] == ["1", "2"]

    def test_live_items_filters_then_dedupes(self):
        # a tombstoned copy followed by a live copy of the same id
        items = [make_item("a", deleted=True), make_item("a"), make_item("b"), make_item("b")]
        assert [i.id for i in live_items(items)] == ["a", "b"]


class TestTombstoneTransition:
    def test_tombstone_returns_new_item(self):
        item = make_item("a", "title")
        dead = item.tombstone()
        assert item.state is ItemState.LIVE
        assert dead.state is ItemState.TOMBSTONED
        assert dead.deleted
        assert dead.id == "a"
        assert dead.fields == item.fields

    def test_tombstone_is_idempotent(self):
        dead = make_item("a").tombstone()
        assert dead.tombstone() is dead

    def test_dict_roundtrip_keeps_state(self):
        item = make_item("a", "hello", "body", deleted=True)
        assert Item.from_dict(item.to_dict()) == item


class TestReferences:
    def test_project_references(self):
        items = [make_item("a"), make_item("b", content_type="Tag")]
        assert project_references(items) == [
            ItemReference("a", "Note"),
            ItemReference("b", "Tag"),
        ]

    def test_does_not_need_content(self):
        # Items with empty field mappings project fine
        items = [Item(id="a", content_type="Note", fields={})]
        assert project_references(items) == [ItemReference("a", "Note")]

    def test_references_to_dicts(self):
        refs = [ItemReference("a", "Note")]
        assert references_to_dicts(refs) == [{"uuid": "a", "content_type": "Note"}]


class TestStringHelpers:
    def test_string_in_list_respects_case(self):
        assert string_in_list("Note", ["note", "Note"])
        assert not string_in_list("NOTE", ["note", "Note"])

    def test_string_in_list_fold_case(self):
        assert string_in_list("NOTE", ["note"], fold_case=True)

    def test_comma_split_strips(self):
        assert comma_split(" a, b ,c ") == ["a", "b", "c"]

    def test_comma_split_empty(self):
        assert comma_split("") == []
        assert comma_split("   ") == []

    def test_out_list(self):
        assert out_list([]) == "-"
        assert out_list(["a", "b"], ",") == "a,b"
