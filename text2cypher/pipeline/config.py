from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_ENV_PATH = Path(__file__).resolve().parents[1] / "config.env"

if _ENV_PATH.exists():
    load_dotenv(_ENV_PATH)
else:
    load_dotenv()


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


DEFAULT_FALKORDB_CONNECTION = os.getenv("FALKORDB_CONNECTION", "falkor://127.0.0.1:6379")
DEFAULT_MODEL: Optional[str] = os.getenv("DEFAULT_MODEL") or None
DEFAULT_KEY: Optional[str] = os.getenv("DEFAULT_KEY") or None

DEFAULT_SCHEMA_SAMPLE_SIZE = _int_env("TEXT2CYPHER_SAMPLE_SIZE", 100) or 100
DEFAULT_SCHEMA_CACHE_SIZE = _int_env("TEXT2CYPHER_SCHEMA_CACHE_SIZE", 100) or 100
DEFAULT_CHANNEL_CAPACITY = 100
DEFAULT_MAX_RESULT_CHARS = _int_env("TEXT2CYPHER_MAX_RESULT_CHARS", 20000) or 20000
DEFAULT_QUERY_TIMEOUT_MS: Optional[int] = _int_env("TEXT2CYPHER_QUERY_TIMEOUT_MS", None)
DEFAULT_LOG_DIR: Optional[str] = os.getenv("TEXT2CYPHER_LOG_DIR") or None
DEFAULT_LOG_RETAIN = 20


@dataclass(frozen=True)
class PipelineConfig:
    connection_target: str = DEFAULT_FALKORDB_CONNECTION
    default_model: Optional[str] = DEFAULT_MODEL
    default_credential: Optional[str] = DEFAULT_KEY
    schema_sample_size: int = DEFAULT_SCHEMA_SAMPLE_SIZE
    schema_cache_size: int = DEFAULT_SCHEMA_CACHE_SIZE
    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY
    query_timeout_ms: Optional[int] = DEFAULT_QUERY_TIMEOUT_MS
    max_result_chars: int = DEFAULT_MAX_RESULT_CHARS
    read_only: bool = True
    stream_answer: bool = True
    log_dir: Optional[str] = DEFAULT_LOG_DIR
    log_retain: int = DEFAULT_LOG_RETAIN

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Re-read the environment instead of the values captured at import."""
        return cls(
            connection_target=os.getenv("FALKORDB_CONNECTION", "falkor://127.0.0.1:6379"),
            default_model=os.getenv("DEFAULT_MODEL") or None,
            default_credential=os.getenv("DEFAULT_KEY") or None,
            schema_sample_size=_int_env("TEXT2CYPHER_SAMPLE_SIZE", 100) or 100,
            schema_cache_size=_int_env("TEXT2CYPHER_SCHEMA_CACHE_SIZE", 100) or 100,
            query_timeout_ms=_int_env("TEXT2CYPHER_QUERY_TIMEOUT_MS", None),
            max_result_chars=_int_env("TEXT2CYPHER_MAX_RESULT_CHARS", 20000) or 20000,
            log_dir=os.getenv("TEXT2CYPHER_LOG_DIR") or None,
        )


__all__ = [
    "PipelineConfig",
    "DEFAULT_FALKORDB_CONNECTION",
    "DEFAULT_MODEL",
    "DEFAULT_KEY",
    "DEFAULT_SCHEMA_SAMPLE_SIZE",
    "DEFAULT_SCHEMA_CACHE_SIZE",
    "DEFAULT_CHANNEL_CAPACITY",
    "DEFAULT_MAX_RESULT_CHARS",
    "DEFAULT_QUERY_TIMEOUT_MS",
    "DEFAULT_LOG_DIR",
    "DEFAULT_LOG_RETAIN",
]
