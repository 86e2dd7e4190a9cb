from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Dict


class EventKind(str, Enum):
    STATUS = "Status"
    SCHEMA = "Schema"
    CYPHER_QUERY = "CypherQuery"
    CYPHER_RESULT = "CypherResult"
    MODEL_OUTPUT_CHUNK = "ModelOutputChunk"
    RESULT = "Result"
    ERROR = "Error"


TERMINAL_KINDS = frozenset({EventKind.RESULT, EventKind.ERROR})


@dataclass(frozen=True)
class ProgressEvent:
    kind: EventKind
    text: str

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    def to_dict(self) -> Dict[str, str]:
        return {self.kind.value: self.text}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def to_sse(self) -> str:
        return f"data: {self.to_json()}\n\n"

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "ProgressEvent":
        if len(data) != 1:
            raise ValueError("Progress event must have exactly one tag")
        (tag, text), = data.items()
        return cls(EventKind(tag), str(text))

    @classmethod
    def status(cls, text: str) -> "ProgressEvent":
        return cls(EventKind.STATUS, text)

    @classmethod
    def schema(cls, text: str) -> "ProgressEvent":
        return cls(EventKind.SCHEMA, text)

    @classmethod
    def cypher_query(cls, text: str) -> "ProgressEvent":
        return cls(EventKind.CYPHER_QUERY, text)

    @classmethod
    def cypher_result(cls, text: str) -> "ProgressEvent":
        return cls(EventKind.CYPHER_RESULT, text)

    @classmethod
    def chunk(cls, text: str) -> "ProgressEvent":
        return cls(EventKind.MODEL_OUTPUT_CHUNK, text)

    @classmethod
    def result(cls, text: str) -> "ProgressEvent":
        return cls(EventKind.RESULT, text)

    @classmethod
    def error(cls, text: str) -> "ProgressEvent":
        return cls(EventKind.ERROR, text)


__all__ = ["EventKind", "ProgressEvent", "TERMINAL_KINDS"]
