from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional

from .config import DEFAULT_SCHEMA_CACHE_SIZE


class SchemaCache:
    """Bounded LRU map of graph id to serialized schema JSON, shared across requests."""

    def __init__(self, capacity: int = DEFAULT_SCHEMA_CACHE_SIZE) -> None:
        self.capacity = max(1, int(capacity))
        self._entries: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, graph_id: str) -> Optional[str]:
        with self._lock:
            value = self._entries.get(graph_id)
            if value is not None:
                self._entries.move_to_end(graph_id)
            return value

    def put(self, graph_id: str, schema_json: str) -> None:
        with self._lock:
            self._entries[graph_id] = schema_json
            self._entries.move_to_end(graph_id)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def invalidate(self, graph_id: str) -> bool:
        with self._lock:
            return self._entries.pop(graph_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, graph_id: object) -> bool:
        with self._lock:
            return graph_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["SchemaCache"]
