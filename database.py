"""
Path-addressed Document Store with In-Memory Fallback

Documents are addressed by slash-separated paths with an even number of
segments, e.g. ``users/{uid}/prospects/{id}``; the odd-length prefix is the
collection path. Every document is kept in a single ``documents`` collection
as ``{"_id": path, "parent": collection_path, "data": {...}}``.

Uses MongoDB when DATABASE_URL and DATABASE_NAME are provided and reachable.
If not available, falls back to an in-memory store that mimics the subset of
PyMongo APIs used here (find, find_one, replace_one, update_one,
count_documents, list_collection_names).
"""
from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from config import Settings
from errors import NotFoundError

logger = logging.getLogger(__name__)

DOCUMENTS = "documents"


# ---------------------------
# In-Memory Fallback classes
# ---------------------------
class _UpdateResult:
    def __init__(self, matched_count: int, upserted_id: Optional[str] = None):
        self.matched_count = matched_count
        self.modified_count = matched_count
        self.upserted_id = upserted_id


class MemoryCollection:
    def __init__(self, name: str, store: Dict[str, Dict[str, Any]]):
        self.name = name
        self.store = store  # _id -> doc

    def find(self, filter_dict: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        filter_dict = filter_dict or {}
        for doc in list(self.store.values()):
            if _match_filter(doc, filter_dict):
                yield copy.deepcopy(doc)

    def find_one(self, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        for doc in self.find(filter_dict):
            return doc
        return None

    def replace_one(self, filter_dict: Dict[str, Any], replacement: Dict[str, Any], upsert: bool = False) -> _UpdateResult:
        doc = self.find_one(filter_dict)
        if doc is None and not upsert:
            return _UpdateResult(0)
        _id = doc["_id"] if doc else filter_dict["_id"]
        to_store = copy.deepcopy(replacement)
        to_store["_id"] = _id
        self.store[_id] = to_store
        return _UpdateResult(1 if doc else 0, None if doc else _id)

    def update_one(self, filter_dict: Dict[str, Any], update_doc: Dict[str, Any], upsert: bool = False) -> _UpdateResult:
        # Very small subset: supports $set with dotted keys
        doc = self.find_one(filter_dict)
        if doc is None:
            if not upsert:
                return _UpdateResult(0)
            doc = {"_id": filter_dict["_id"]}
            upserted_id = doc["_id"]
        else:
            upserted_id = None
        current = self.store.get(doc["_id"], doc)
        for k, v in update_doc.get("$set", {}).items():
            _set_field(current, k, copy.deepcopy(v))
        self.store[doc["_id"]] = current
        return _UpdateResult(0 if upserted_id else 1, upserted_id)

    def count_documents(self, filter_dict: Optional[Dict[str, Any]] = None) -> int:
        return len(list(self.find(filter_dict)))


class MemoryDB:
    def __init__(self, name: str = "memory"):
        self.name = name
        self._collections: Dict[str, MemoryCollection] = {}
        self._raw: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def __getitem__(self, collection_name: str) -> MemoryCollection:
        if collection_name not in self._collections:
            self._raw.setdefault(collection_name, {})
            self._collections[collection_name] = MemoryCollection(collection_name, self._raw[collection_name])
        return self._collections[collection_name]

    def list_collection_names(self) -> List[str]:
        return list(self._collections.keys())


def _get_field(doc: Dict[str, Any], dotted: str) -> Any:
    current: Any = doc
    for part in dotted.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _set_field(doc: Dict[str, Any], dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    current = doc
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _match_filter(doc: Dict[str, Any], filt: Dict[str, Any]) -> bool:
    for k, v in filt.items():
        value = _get_field(doc, k)
        if isinstance(v, dict) and "$in" in v:
            if value not in v["$in"]:
                return False
        elif isinstance(v, dict) and "$gte" in v:
            if value is None or value < v["$gte"]:
                return False
        else:
            if value != v:
                return False
    return True


# ---------------------------
# Path helpers
# ---------------------------
def split_path(path: str) -> Tuple[str, str]:
    """Return ``(collection_path, document_id)`` for a document path."""
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments or len(segments) % 2:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(segments[:-1]), segments[-1]


def _check_collection_path(collection_path: str) -> str:
    segments = [s for s in collection_path.strip("/").split("/") if s]
    if not segments or len(segments) % 2 == 0:
        raise ValueError(f"Not a collection path: {collection_path!r}")
    return "/".join(segments)


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


# ---------------------------
# Document store (works for both backends)
# ---------------------------
class DocumentStore:
    """Read/write documents by path on top of a pymongo-like database handle.

    Writes are plain single-document operations: there are no transactions,
    so read-then-write sequences built on top of this class are last-write-wins.
    """

    def __init__(self, db: Any, backend: str = "memory"):
        self.db = db
        self.backend = backend
        self.documents = db[DOCUMENTS]

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        split_path(path)
        row = self.documents.find_one({"_id": path})
        if row is None:
            return None
        return dict(row.get("data") or {})

    def exists(self, path: str) -> bool:
        return self.get(path) is not None

    def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Create or overwrite a document; with ``merge`` only the given fields change."""
        parent, _ = split_path(path)
        if merge:
            update = {f"data.{k}": v for k, v in data.items()}
            update["parent"] = parent
            self.documents.update_one({"_id": path}, {"$set": update}, upsert=True)
        else:
            self.documents.replace_one(
                {"_id": path}, {"parent": parent, "data": dict(data)}, upsert=True
            )

    def update(self, path: str, data: Dict[str, Any]) -> None:
        """Change fields of an existing document. Raises NotFoundError if absent."""
        split_path(path)
        update = {f"data.{k}": v for k, v in data.items()}
        result = self.documents.update_one({"_id": path}, {"$set": update})
        if not result.matched_count:
            raise NotFoundError(f"No document at {path}")

    def add(self, collection_path: str, data: Dict[str, Any]) -> str:
        """Store ``data`` under a generated id and return that id."""
        doc_id = new_document_id()
        self.set(f"{_check_collection_path(collection_path)}/{doc_id}", data)
        return doc_id

    def list(
        self,
        collection_path: str,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return the documents of one collection, each with its ``id``.

        ``order_by`` may name any data field or ``"id"``; documents missing
        the field sort after the others.
        """
        query: Dict[str, Any] = {"parent": _check_collection_path(collection_path)}
        for k, v in (where or {}).items():
            query[f"data.{k}"] = v
        docs = []
        for row in self.documents.find(query):
            _, doc_id = split_path(row["_id"])
            docs.append({"id": doc_id, **(row.get("data") or {})})
        if order_by:
            present = [d for d in docs if d.get(order_by) is not None]
            missing = [d for d in docs if d.get(order_by) is None]
            present.sort(key=lambda d: _sort_value(d[order_by]), reverse=descending)
            docs = present + missing
        if limit:
            docs = docs[:limit]
        return docs

    def count(self, collection_path: str) -> int:
        return self.documents.count_documents({"parent": _check_collection_path(collection_path)})


def _sort_value(value: Any) -> Any:
    # Naive and aware datetimes can both come back from Mongo
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.replace(tzinfo=None) - value.utcoffset()
    return value


def open_store(settings: Settings) -> DocumentStore:
    """Connect to MongoDB when configured, otherwise use the in-memory store."""
    if settings.use_mongo:
        try:
            client = MongoClient(settings.database_url, serverSelectionTimeoutMS=2000, tz_aware=True)
            # Trigger a server selection to fail fast if not reachable
            client.server_info()
            return DocumentStore(client[settings.database_name], backend="mongo")
        except PyMongoError as e:
            logger.warning("MongoDB not reachable, using in-memory store: %s", e)
    return DocumentStore(MemoryDB(), backend="memory")
