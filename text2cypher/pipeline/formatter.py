from __future__ import annotations

import json
import math
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from .records import GraphEdge, GraphNode, GraphPath

NO_RESULTS = "No results returned."


def format_float(value: float) -> str:
    """Shortest round-trip text for a float, without exponent or trailing `.0`."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def _format_props(properties: Dict[str, Any]) -> str:
    if not properties:
        return ""
    inner = ", ".join(f"{k}: {format_value(v)}" for k, v in properties.items())
    return f" {{{inner}}}"


def format_node(node: GraphNode) -> str:
    labels = ":" + ":".join(node.labels) if node.labels else ""
    return f"({labels}{_format_props(node.properties)})"


def format_edge(edge: GraphEdge) -> str:
    return f"-[:{edge.relationship_type}{_format_props(edge.properties)}]-"


def format_path(path: GraphPath) -> str:
    parts: List[str] = []
    for idx, node in enumerate(path.nodes):
        if idx > 0 and idx - 1 < len(path.edges):
            parts.append(format_edge(path.edges[idx - 1]))
        parts.append(format_node(node))
    return "".join(parts)


def format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, GraphNode):
        return format_node(value)
    if isinstance(value, GraphEdge):
        return format_edge(value)
    if isinstance(value, GraphPath):
        return format_path(value)
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {format_value(v)}" for k, v in value.items()) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    return str(value)


def _format_record(record: Sequence[Any]) -> str:
    if len(record) == 1:
        return format_value(record[0])
    return "[" + ", ".join(format_value(v) for v in record) + "]"


def format_records(records: Sequence[Sequence[Any]]) -> str:
    """Compact text rendering of query results for prompting a model."""
    if not records:
        return NO_RESULTS
    if len(records) == 1:
        return _format_record(records[0])
    lines = [f"{idx}. {_format_record(record)}" for idx, record in enumerate(records, start=1)]
    return "\n".join(lines).rstrip()


def _json_value(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, GraphNode):
        return {
            "type": "node",
            "id": value.id,
            "labels": list(value.labels),
            "properties": {k: _json_value(v) for k, v in value.properties.items()},
        }
    if isinstance(value, GraphEdge):
        return {
            "type": "edge",
            "id": value.id,
            "relationship_type": value.relationship_type,
            "src_node": value.source_id,
            "dst_node": value.target_id,
            "properties": {k: _json_value(v) for k, v in value.properties.items()},
        }
    if isinstance(value, GraphPath):
        return {
            "type": "path",
            "nodes": [_json_value(n) for n in value.nodes],
            "relationships": [_json_value(e) for e in value.edges],
        }
    if isinstance(value, dict):
        return {str(k): _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return value


def format_as_json(records: Sequence[Sequence[Any]]) -> str:
    return json.dumps([[_json_value(v) for v in record] for record in records], ensure_ascii=False)


__all__ = [
    "NO_RESULTS",
    "format_records",
    "format_value",
    "format_float",
    "format_node",
    "format_edge",
    "format_path",
    "format_as_json",
]
