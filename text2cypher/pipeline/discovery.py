from __future__ import annotations

from typing import Any, List, Optional, Tuple

from .config import DEFAULT_SCHEMA_SAMPLE_SIZE
from .errors import ConnectionFailure, ExecutionFailure, IntrospectionFailure
from .run_logger import RunLogger
from .schema import Attribute, AttributeType, Entity, Relation, Schema


def quote_label(label: str) -> str:
    return "`" + label.replace("`", "``") + "`"


def _sample_query(pattern: str, sample_size: int) -> str:
    return (
        f"MATCH {pattern} "
        "CALL { WITH a RETURN [k IN keys(a) | [k, typeof(a[k])]] AS types } "
        f"WITH types LIMIT {sample_size} "
        "UNWIND types AS kt "
        "RETURN kt, count(1) ORDER BY kt[0]"
    )


def entity_sample_query(label: str, sample_size: int) -> str:
    return _sample_query(f"(a:{quote_label(label)})", sample_size)


def relation_sample_query(label: str, sample_size: int) -> str:
    return _sample_query(f"()-[a:{quote_label(label)}]->()", sample_size)


def pair_probe_query(source: str, label: str, target: str) -> str:
    return (
        f"MATCH (s:{quote_label(source)})-[a:{quote_label(label)}]->(t:{quote_label(target)}) "
        "RETURN a LIMIT 1"
    )


class SchemaDiscovery:
    """
    Builds a Schema by sampling a live graph.

    Attribute types come from `typeof()` over at most `sample_size` elements per
    label; a relation is recorded for every (source, type, target) combination
    that has at least one instance.
    """

    def __init__(
        self,
        connection,
        *,
        sample_size: int = DEFAULT_SCHEMA_SAMPLE_SIZE,
        run_logger: Optional[RunLogger] = None,
    ) -> None:
        self.connection = connection
        self.sample_size = max(1, int(sample_size))
        self.run_logger = run_logger
        self.unknown_types: List[Tuple[str, str, str]] = []

    def _query(self, text: str) -> List[List[Any]]:
        try:
            return self.connection.run_query(text, read_only=True)
        except ConnectionFailure:
            raise
        except ExecutionFailure as exc:
            raise IntrospectionFailure(f"Schema discovery query failed: {exc}") from exc

    def _collect_attributes(self, label: str, query: str) -> Tuple[Attribute, ...]:
        attributes: List[Attribute] = []
        for row in self._query(query):
            if len(row) < 2 or not isinstance(row[0], list) or len(row[0]) < 2:
                continue
            name, type_name = str(row[0][0]), str(row[0][1])
            attr_type = AttributeType.lookup(type_name)
            if attr_type is None:
                self._note_unknown_type(label, name, type_name)
                attr_type = AttributeType.STRING
            count = row[1] if isinstance(row[1], int) else 0
            attributes.append(Attribute(name=name, type=attr_type, count=count))
        return tuple(attributes)

    def _note_unknown_type(self, label: str, name: str, type_name: str) -> None:
        self.unknown_types.append((label, name, type_name))
        if self.run_logger:
            self.run_logger.log_debug(
                {
                    "phase": "discovery",
                    "note": "unknown attribute type, defaulting to String",
                    "label": label,
                    "attribute": name,
                    "type": type_name,
                }
            )

    def discover(self) -> Schema:
        entity_labels = self.connection.introspect_labels()
        relation_labels = self.connection.introspect_relationship_types()

        entities = tuple(
            Entity(label=label, attributes=self._collect_attributes(label, entity_sample_query(label, self.sample_size)))
            for label in entity_labels
        )

        relations: List[Relation] = []
        for rel_label in relation_labels:
            attributes = self._collect_attributes(rel_label, relation_sample_query(rel_label, self.sample_size))
            for source in entity_labels:
                for target in entity_labels:
                    if self._query(pair_probe_query(source, rel_label, target)):
                        relations.append(Relation(label=rel_label, source=source, target=target, attributes=attributes))

        return Schema(entities=entities, relations=tuple(relations))


def discover_schema(connection, sample_size: int = DEFAULT_SCHEMA_SAMPLE_SIZE, run_logger: Optional[RunLogger] = None) -> Schema:
    return SchemaDiscovery(connection, sample_size=sample_size, run_logger=run_logger).discover()


__all__ = [
    "SchemaDiscovery",
    "discover_schema",
    "quote_label",
    "entity_sample_query",
    "relation_sample_query",
    "pair_probe_query",
]
