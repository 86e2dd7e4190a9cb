from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List


_CYPHER_KEYWORDS = re.compile(r"(?i)(MATCH|CREATE|MERGE|DELETE|SET|REMOVE|RETURN|WITH|UNWIND|CALL)")
_DANGEROUS = re.compile(r"(?i)(DROP\s|DELETE\s)")
_MATCH_CLAUSE = re.compile(r"(?i)MATCH\s+")
_RETURN_CLAUSE = re.compile(r"(?i)RETURN\s+")
_NON_MATCH_LEADERS = ("CREATE", "MERGE", "CALL", "UNWIND")


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def check_balanced(text: str, open_char: str, close_char: str) -> bool:
    depth = 0
    for ch in text:
        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def check_balanced_parentheses(text: str) -> bool:
    return check_balanced(text, "(", ")")


def check_balanced_brackets(text: str) -> bool:
    return check_balanced(text, "[", "]")


class CypherValidator:
    """Cheap static checks run before a generated query reaches the database."""

    def validate(self, query: str) -> ValidationResult:
        text = query.strip()
        if not text:
            return ValidationResult(is_valid=False, errors=["Query is empty"])

        errors: List[str] = []
        warnings: List[str] = []

        if not _CYPHER_KEYWORDS.search(text):
            errors.append("Query does not contain valid Cypher keywords")

        if _DANGEROUS.search(text):
            errors.append("Query contains potentially dangerous operations (DROP, DELETE ALL)")

        if not _MATCH_CLAUSE.search(text) and not text.upper().startswith(_NON_MATCH_LEADERS):
            warnings.append("Query does not contain a MATCH clause")

        if not _RETURN_CLAUSE.search(text):
            warnings.append("Query does not contain a RETURN clause")

        if not check_balanced_parentheses(text):
            errors.append("Unbalanced parentheses in query")

        if not check_balanced_brackets(text):
            errors.append("Unbalanced brackets in query")

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


__all__ = [
    "ValidationResult",
    "CypherValidator",
    "check_balanced",
    "check_balanced_parentheses",
    "check_balanced_brackets",
]
