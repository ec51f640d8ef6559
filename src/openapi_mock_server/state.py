"""In-memory resource collections for stateful mode."""

from __future__ import annotations

import re
import threading
import uuid
from collections.abc import Callable, Iterable
from copy import deepcopy
from datetime import datetime, timezone
from typing import Optional

from .json_types import JSONObject, MutableJSONObject

_PARAM_SEGMENT_RE = re.compile(r"/\{[^}]+\}")


def collection_key(path: str) -> str:
    """Map a path template to the collection it addresses.

    Parameter segments are dropped, so ``/users`` and ``/users/{id}`` share
    the ``/users`` collection.
    """
    key = _PARAM_SEGMENT_RE.sub("", path).rstrip("/")
    return key or "/"


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class StateStore:
    """Ordered item collections keyed by collection path.

    Every public method accepts a path template or an already-normalized
    collection key. Items handed in are copied and items handed out are
    copies, so the store alone owns what it holds.
    """

    def __init__(self, *, id_factory: Optional[Callable[[], str]] = None) -> None:
        self._collections: dict[str, list[MutableJSONObject]] = {}
        self._lock = threading.Lock()
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def get_all(self, path: str) -> list[MutableJSONObject]:
        """Return every item in a collection, in insertion order."""
        with self._lock:
            return deepcopy(self._collections.get(collection_key(path), []))

    def get_by_id(self, path: str, item_id: str) -> Optional[MutableJSONObject]:
        """Return one item, or ``None`` when the collection has no such id."""
        key = collection_key(path)
        with self._lock:
            index = self._find(key, item_id)
            if index is None:
                return None
            return deepcopy(self._collections[key][index])

    def create(self, path: str, data: JSONObject) -> MutableJSONObject:
        """Store a new item under a fresh id and creation timestamp."""
        item: MutableJSONObject = {key: deepcopy(value) for key, value in data.items() if key != "id"}
        item = {"id": self._id_factory(), **item, "createdAt": utc_timestamp()}
        with self._lock:
            self._collections.setdefault(collection_key(path), []).append(item)
            return deepcopy(item)

    def update(self, path: str, item_id: str, data: JSONObject) -> Optional[MutableJSONObject]:
        """Merge fields into an item and stamp ``updatedAt``.

        Stored fields absent from ``data`` are kept and ``id`` is never
        overwritten.

        Returns:
            Optional[MutableJSONObject]: The updated item, or ``None`` if absent.
        """
        key = collection_key(path)
        with self._lock:
            index = self._find(key, item_id)
            if index is None:
                return None
            current = self._collections[key][index]
            updated = {**current, **deepcopy(dict(data))}
            updated["id"] = current["id"]
            updated["updatedAt"] = utc_timestamp()
            self._collections[key][index] = updated
            return deepcopy(updated)

    def delete(self, path: str, item_id: str) -> bool:
        """Remove an item; return whether it existed."""
        key = collection_key(path)
        with self._lock:
            index = self._find(key, item_id)
            if index is None:
                return False
            del self._collections[key][index]
            return True

    def seed(self, path: str, items: Iterable[JSONObject]) -> None:
        """Replace a collection's content with the given items."""
        with self._lock:
            self._collections[collection_key(path)] = [deepcopy(dict(item)) for item in items]

    def seed_if_absent(
        self,
        path: str,
        factory: Callable[[], Iterable[JSONObject]],
    ) -> list[MutableJSONObject]:
        """Seed a collection from ``factory`` unless the store already knows it.

        Returns:
            list[MutableJSONObject]: The collection content after seeding.
        """
        key = collection_key(path)
        with self._lock:
            if key not in self._collections:
                self._collections[key] = [deepcopy(dict(item)) for item in factory()]
            return deepcopy(self._collections[key])

    def clear(self) -> None:
        """Forget every collection."""
        with self._lock:
            self._collections.clear()

    def stats(self) -> dict[str, int]:
        """Item count per known collection."""
        with self._lock:
            return {key: len(items) for key, items in self._collections.items()}

    def _find(self, key: str, item_id: str) -> Optional[int]:
        for index, item in enumerate(self._collections.get(key, [])):
            if str(item.get("id")) == str(item_id):
                return index
        return None
