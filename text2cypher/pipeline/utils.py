from __future__ import annotations

from typing import Optional


NO_ANSWER = "NO ANSWER"


def clean_block(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped[stripped.find("\n") + 1 :] if "\n" in stripped else stripped.lstrip("`")
    if stripped.endswith("```"):
        stripped = stripped[: stripped.rfind("```")]
    return stripped.strip()


def clean_query(text: str) -> str:
    """Strip markdown fences and flatten a model-produced query onto one line."""
    cleaned = clean_block(text)
    cleaned = cleaned.replace("\r", " ").replace("\n", " ").replace("```", "")
    return cleaned.strip()


def is_no_answer(text: str) -> bool:
    stripped = text.strip()
    return not stripped or stripped.upper() == NO_ANSWER


def truncate(text: str, limit: Optional[int]) -> str:
    if limit is None or limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + "\n... (truncated)"


def mask_secret(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-2:]}"


__all__ = ["NO_ANSWER", "clean_block", "clean_query", "is_no_answer", "truncate", "mask_secret"]
