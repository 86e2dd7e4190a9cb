from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class GraphNode:
    id: int
    labels: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GraphEdge:
    id: int
    relationship_type: str
    source_id: int
    target_id: int
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GraphPath:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)


def _node_id(obj: Any) -> int:
    value = getattr(obj, "id", None)
    return int(value) if value is not None else -1


def to_graph_value(value: Any) -> Any:
    """
    Convert a value returned by the falkordb client into a plain record value.

    The client hands back Node, Edge and Path objects; these are recognised by
    shape so the rest of the pipeline never depends on client classes.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (GraphNode, GraphEdge, GraphPath)):
        return value
    if isinstance(value, dict):
        return {str(k): to_graph_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_graph_value(v) for v in value]

    nodes_attr = getattr(value, "nodes", None)
    edges_attr = getattr(value, "edges", None)
    if callable(nodes_attr) and callable(edges_attr):
        return GraphPath(
            nodes=[to_graph_value(n) for n in nodes_attr()],
            edges=[to_graph_value(e) for e in edges_attr()],
        )

    if hasattr(value, "relation") and hasattr(value, "src_node"):
        src = value.src_node
        dst = value.dest_node
        return GraphEdge(
            id=_node_id(value),
            relationship_type=str(value.relation or ""),
            source_id=int(src) if isinstance(src, int) else _node_id(src),
            target_id=int(dst) if isinstance(dst, int) else _node_id(dst),
            properties={str(k): to_graph_value(v) for k, v in (value.properties or {}).items()},
        )

    if hasattr(value, "labels") and hasattr(value, "properties"):
        labels = value.labels or []
        if isinstance(labels, str):
            labels = [labels]
        return GraphNode(
            id=_node_id(value),
            labels=[str(label) for label in labels],
            properties={str(k): to_graph_value(v) for k, v in (value.properties or {}).items()},
        )

    return str(value)


def to_records(result_set: Any) -> List[List[Any]]:
    return [[to_graph_value(v) for v in row] for row in result_set or []]


__all__ = ["GraphNode", "GraphEdge", "GraphPath", "to_graph_value", "to_records"]
