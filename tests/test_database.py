"""Tests for the path-addressed document store (in-memory backend)."""

from datetime import datetime, timedelta, timezone

import pytest

from config import Settings
from database import DocumentStore, MemoryDB, open_store, split_path
from errors import NotFoundError


class TestPaths:
    def test_split_document_path(self) -> None:
        """Test that a document path splits into collection and id."""
        assert split_path("users/u1/prospects/p1") == ("users/u1/prospects", "p1")

    def test_collection_path_is_rejected(self) -> None:
        """Test that odd-length paths are not documents."""
        with pytest.raises(ValueError, match="Not a document path"):
            split_path("users/u1/prospects")

    def test_list_rejects_document_path(self, store: DocumentStore) -> None:
        """Test that listing needs a collection path."""
        with pytest.raises(ValueError, match="Not a collection path"):
            store.list("users/u1")


class TestReadWrite:
    def test_missing_document_is_none(self, store: DocumentStore) -> None:
        """Test that absent documents read as None."""
        assert store.get("users/nobody") is None
        assert not store.exists("users/nobody")

    def test_set_overwrites(self, store: DocumentStore) -> None:
        """Test that a plain set replaces every field."""
        store.set("users/u1", {"name": "A", "role": "admin"})
        store.set("users/u1", {"name": "B"})
        assert store.get("users/u1") == {"name": "B"}

    def test_merge_keeps_other_fields(self, store: DocumentStore) -> None:
        """Test that a merge set only touches the given fields."""
        store.set("users/u1", {"name": "A", "role": "admin"})
        store.set("users/u1", {"name": "B"}, merge=True)
        assert store.get("users/u1") == {"name": "B", "role": "admin"}

    def test_merge_creates_missing_document(self, store: DocumentStore) -> None:
        """Test that merging into a missing path creates it."""
        store.set("users/u1", {"lastLogin": 1}, merge=True)
        assert store.get("users/u1") == {"lastLogin": 1}

    def test_update_requires_existing_document(self, store: DocumentStore) -> None:
        """Test that update never creates documents."""
        with pytest.raises(NotFoundError):
            store.update("users/u1", {"name": "A"})
        assert store.get("users/u1") is None

    def test_returned_documents_are_copies(self, store: DocumentStore) -> None:
        """Test that mutating a read result leaves the store untouched."""
        store.set("users/u1", {"tags": ["a"]})
        doc = store.get("users/u1")
        doc["tags"].append("b")
        assert store.get("users/u1") == {"tags": ["a"]}


class TestList:
    def test_list_is_scoped_to_one_collection(self, store: DocumentStore) -> None:
        """Test that subcollections and siblings are not listed."""
        store.set("users/u1", {"name": "A"})
        store.set("users/u1/prospects/p1", {"name": "P"})
        store.set("announcements/a1", {"title": "T"})
        assert [d["id"] for d in store.list("users")] == ["u1"]
        assert store.list("users/u1/prospects") == [{"id": "p1", "name": "P"}]

    def test_add_generates_ids(self, store: DocumentStore) -> None:
        """Test that add stores under fresh ids."""
        first = store.add("announcements", {"title": "one"})
        second = store.add("announcements", {"title": "two"})
        assert first != second
        assert store.count("announcements") == 2

    def test_where_order_and_limit(self, store: DocumentStore) -> None:
        """Test filtering, descending order and limit together."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i, status in enumerate(["pending", "lost", "pending", "pending"]):
            store.set(f"users/u1/prospects/p{i}", {"status": status, "dateAdded": base + timedelta(days=i)})

        result = store.list(
            "users/u1/prospects", where={"status": "pending"}, order_by="dateAdded", descending=True, limit=2
        )
        assert [d["id"] for d in result] == ["p3", "p2"]

    def test_gte_filter(self, store: DocumentStore) -> None:
        """Test range filtering on a field."""
        store.set("c/a", {"n": 1})
        store.set("c/b", {"n": 5})
        assert [d["id"] for d in store.list("c", where={"n": {"$gte": 3}})] == ["b"]

    def test_documents_missing_sort_field_come_last(self, store: DocumentStore) -> None:
        """Test ordering when some documents lack the field."""
        store.set("c/a", {})
        store.set("c/b", {"name": "Zed"})
        store.set("c/c", {"name": "Amy"})
        assert [d["id"] for d in store.list("c", order_by="name")] == ["c", "b", "a"]


def test_open_store_without_database_url_uses_memory() -> None:
    """Test fallback to the in-memory backend."""
    store = open_store(Settings())
    assert store.backend == "memory"
    assert isinstance(store.db, MemoryDB)
