from __future__ import annotations

from typing import Any, List, Optional

from .config import DEFAULT_FALKORDB_CONNECTION
from .errors import ConnectionFailure, ExecutionFailure, IntrospectionFailure
from .formatter import format_as_json, format_records
from .records import to_records


def _load_falkordb_sdk():
    """Import the FalkorDB client lazily so config/CLI help work without a server."""
    try:
        from falkordb import FalkorDB  # type: ignore
        from redis import exceptions as redis_exceptions  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise ConnectionFailure("FalkorDB client missing. Install with: pip install falkordb") from exc
    return FalkorDB, redis_exceptions


FalkorDB = None
RedisExceptions = None


def _ensure_falkordb_loaded():
    global FalkorDB, RedisExceptions
    if FalkorDB is None or RedisExceptions is None:
        FalkorDB, RedisExceptions = _load_falkordb_sdk()


def _is_transport_error(exc: Exception) -> bool:
    if RedisExceptions is None:
        return isinstance(exc, (ConnectionError, TimeoutError))
    return isinstance(exc, (RedisExceptions.ConnectionError, RedisExceptions.TimeoutError, ConnectionError))


class FalkorRunner:
    """
    Thin wrapper over a FalkorDB graph handle.
    - Connects on first use and can be used as a context manager.
    - Converts client values into plain record values.
    - Maps client errors onto the pipeline error taxonomy.
    """

    def __init__(self, graph_id: Optional[str] = None, *, connection_target: str = DEFAULT_FALKORDB_CONNECTION) -> None:
        self.graph_id = graph_id
        self.connection_target = connection_target
        self._db = None
        self._graph = None

    def __enter__(self) -> "FalkorRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_db(self):
        if self._db is not None:
            return self._db
        _ensure_falkordb_loaded()
        try:
            self._db = FalkorDB.from_url(self.connection_target)
        except Exception as exc:
            raise ConnectionFailure(f"Failed to connect to FalkorDB: {exc}") from exc
        return self._db

    def _ensure_graph(self):
        if self._graph is not None:
            return self._graph
        if not self.graph_id:
            raise ConnectionFailure("No graph selected")
        self._graph = self._ensure_db().select_graph(self.graph_id)
        return self._graph

    def close(self) -> None:
        db = self._db
        self._db = None
        self._graph = None
        if db is None:
            return
        connection = getattr(db, "connection", None)
        if connection is not None and hasattr(connection, "close"):
            try:
                connection.close()
            except Exception:
                # Closing a dead connection must not mask the error being raised.
                pass

    def _raw_query(self, text: str, *, read_only: bool, timeout: Optional[int]):
        graph = self._ensure_graph()
        if read_only:
            return graph.ro_query(text, timeout=timeout)
        return graph.query(text, timeout=timeout)

    def run_query(self, text: str, *, read_only: bool = True, timeout: Optional[int] = None) -> List[List[Any]]:
        try:
            result = self._raw_query(text, read_only=read_only, timeout=timeout)
        except ConnectionFailure:
            raise
        except Exception as exc:
            if _is_transport_error(exc):
                raise ConnectionFailure(f"Database connection failed: {exc}") from exc
            raise ExecutionFailure(f"Query execution failed: {exc}", text) from exc
        return to_records(getattr(result, "result_set", None))

    def _introspect(self, procedure: str) -> List[str]:
        try:
            result = self._raw_query(procedure, read_only=True, timeout=None)
        except ConnectionFailure:
            raise
        except Exception as exc:
            if _is_transport_error(exc):
                raise ConnectionFailure(f"Database connection failed: {exc}") from exc
            raise IntrospectionFailure(f"{procedure} failed: {exc}") from exc
        names: List[str] = []
        for row in getattr(result, "result_set", None) or []:
            if row and row[0] is not None:
                value = row[0]
                names.append(value.decode("utf-8") if isinstance(value, bytes) else str(value))
        return names

    def introspect_labels(self) -> List[str]:
        return self._introspect("CALL db.labels()")

    def introspect_relationship_types(self) -> List[str]:
        return self._introspect("CALL db.relationshipTypes()")

    def list_graphs(self) -> List[str]:
        try:
            graphs = self._ensure_db().list_graphs()
        except ConnectionFailure:
            raise
        except Exception as exc:
            raise ConnectionFailure(f"Failed to list graphs: {exc}") from exc
        return [g.decode("utf-8") if isinstance(g, bytes) else str(g) for g in graphs or []]


def execute_query(connection, query: str, *, read_only: bool = True, timeout: Optional[int] = None) -> str:
    """Run `query` and return the compact text rendering of its records."""
    records = connection.run_query(query, read_only=read_only, timeout=timeout)
    return format_records(records)


def graph_query(connection, query: str, *, read_only: bool = False, timeout: Optional[int] = None) -> str:
    """Run `query` and return its records as a JSON array of arrays."""
    records = connection.run_query(query, read_only=read_only, timeout=timeout)
    return format_as_json(records)


__all__ = ["FalkorRunner", "execute_query", "graph_query"]
