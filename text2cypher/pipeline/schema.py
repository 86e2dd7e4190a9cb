from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class AttributeType(str, Enum):
    STRING = "String"
    INTEGER = "Integer"
    FLOAT = "Float"
    BOOLEAN = "Boolean"
    DATETIME = "DateTime"
    LIST = "List"
    MAP = "Map"
    VECTOR = "Vector"
    POINT = "Point"

    @classmethod
    def lookup(cls, raw: str) -> Optional["AttributeType"]:
        """Map a `typeof()` result to an attribute type, or None when unknown."""
        return _TYPEOF_NAMES.get((raw or "").strip().lower())

    @classmethod
    def parse(cls, raw: str) -> "AttributeType":
        return cls.lookup(raw) or cls.STRING


_TYPEOF_NAMES = {
    "string": AttributeType.STRING,
    "integer": AttributeType.INTEGER,
    "float": AttributeType.FLOAT,
    "boolean": AttributeType.BOOLEAN,
    "datetime": AttributeType.DATETIME,
    "list": AttributeType.LIST,
    "array": AttributeType.LIST,
    "map": AttributeType.MAP,
    "vector": AttributeType.VECTOR,
    "vectorf32": AttributeType.VECTOR,
    "point": AttributeType.POINT,
}


@dataclass(frozen=True)
class Attribute:
    name: str
    type: AttributeType
    count: int = 0
    unique: bool = False
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name, "type": self.type.value}
        if self.unique:
            payload["unique"] = True
        if self.required:
            payload["required"] = True
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attribute":
        return cls(
            name=str(data["name"]),
            type=AttributeType.parse(str(data.get("type", "String"))),
            unique=bool(data.get("unique", False)),
            required=bool(data.get("required", False)),
        )


def _attrs_from(items: Optional[List[Dict[str, Any]]]) -> Tuple[Attribute, ...]:
    return tuple(Attribute.from_dict(item) for item in items or [])


@dataclass(frozen=True)
class Entity:
    label: str
    attributes: Tuple[Attribute, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"label": self.label}
        if self.attributes:
            payload["attributes"] = [a.to_dict() for a in self.attributes]
        return payload


@dataclass(frozen=True)
class Relation:
    label: str
    source: str
    target: str
    attributes: Tuple[Attribute, ...] = field(default_factory=tuple)

    def descriptor(self) -> str:
        return f"({self.source})-[:{self.label}]->({self.target})"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"label": self.label, "source": self.source, "target": self.target}
        if self.attributes:
            payload["attributes"] = [a.to_dict() for a in self.attributes]
        return payload


@dataclass(frozen=True)
class Schema:
    entities: Tuple[Entity, ...] = field(default_factory=tuple)
    relations: Tuple[Relation, ...] = field(default_factory=tuple)

    def entity(self, label: str) -> Optional[Entity]:
        return next((e for e in self.entities if e.label == label), None)

    def has_relation(self, source: str, label: str, target: str) -> bool:
        return any(r.source == source and r.label == label and r.target == target for r in self.relations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schema":
        entities = tuple(
            Entity(label=str(item["label"]), attributes=_attrs_from(item.get("attributes")))
            for item in data.get("entities", [])
        )
        relations = tuple(
            Relation(
                label=str(item["label"]),
                source=str(item["source"]),
                target=str(item["target"]),
                attributes=_attrs_from(item.get("attributes")),
            )
            for item in data.get("relations", [])
        )
        return cls(entities=entities, relations=relations)

    @classmethod
    def from_json(cls, text: str) -> "Schema":
        return cls.from_dict(json.loads(text))

    def describe(self) -> str:
        """Compact text listing used by the CLI."""
        lines: List[str] = []
        for entity in self.entities:
            props = ", ".join(f"{a.name}: {a.type.value}" for a in entity.attributes)
            lines.append(f"{entity.label}: {props}" if props else entity.label)
        for rel in self.relations:
            props = ", ".join(f"{a.name}: {a.type.value}" for a in rel.attributes)
            lines.append(f"{rel.descriptor()} {{{props}}}" if props else rel.descriptor())
        return "\n".join(lines)


__all__ = ["AttributeType", "Attribute", "Entity", "Relation", "Schema"]
