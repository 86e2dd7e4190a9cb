from __future__ import annotations

import json
import re
import shutil
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import DEFAULT_LOG_RETAIN

SCHEMA_PREVIEW_LIMIT = 4000


def _utc_timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def format_timeline(question: str, timeline: List[Dict[str, Any]]) -> str:
    """Render the state timeline into a human-readable string for log files."""
    lines: List[str] = []
    lines.append("=" * 80)
    lines.append("TEXT2CYPHER RUN")
    lines.append("=" * 80)
    lines.append(f"Question: {question}")
    lines.append("")

    for entry in timeline:
        stage = entry.get("stage", "?")
        attempt = entry.get("attempt")
        prefix = f"[attempt {attempt}] " if attempt else ""
        lines.append(f"{prefix}{stage}")
        detail = entry.get("detail")
        if detail:
            for raw in str(detail).splitlines():
                lines.append(f"│  {raw}")

    lines.append("=" * 80)
    return "\n".join(lines)


class RunLogger:
    """
    Per-request artifact writer.
    - Disabled entirely when no base directory is configured.
    - Writes metadata, event stream, timeline, debug notes and a summary.
    - Caps retained runs to avoid unbounded growth.
    """

    def __init__(self, base_dir: Optional[str] = None, retain: int = DEFAULT_LOG_RETAIN) -> None:
        self.base_dir = Path(base_dir) if base_dir else None
        self.retain = max(1, retain)
        self.run_dir: Optional[Path] = None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.base_dir is not None

    def start(self, question: str, params: Dict[str, Any]) -> Optional[Path]:
        if self.base_dir is None:
            return None
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            stamp = time.strftime("%Y%m%d-%H%M%S")
            slug = re.sub(r"[^a-zA-Z0-9]+", "-", question.strip())[:36].strip("-") or "run"
            self.run_dir = self.base_dir / f"{stamp}-{slug}-{uuid.uuid4().hex[:6]}"
            self.run_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            self.run_dir = None
            return None
        self._write_json(
            self.run_dir / "metadata.json",
            {"question": question, "params": params, "started_at": _utc_timestamp()},
        )
        return self.run_dir

    def log_schema(self, graph_id: str, schema_json: str, cached: bool) -> None:
        self.log_debug(
            {"phase": "schema", "graph": graph_id, "cached": cached, "schema_preview": schema_json[:SCHEMA_PREVIEW_LIMIT]}
        )

    def log_event(self, event: Dict[str, Any]) -> None:
        self._append_jsonl("events.jsonl", event)

    def log_debug(self, payload: Dict[str, Any]) -> None:
        self._append_jsonl("debug.jsonl", payload)

    def log_timeline(self, question: str, timeline: List[Dict[str, Any]]) -> None:
        if not self.run_dir:
            return
        payload = {"question": question, "timeline": timeline, "logged_at": _utc_timestamp()}
        self._write_json(self.run_dir / "timeline.json", payload)
        try:
            (self.run_dir / "timeline.txt").write_text(format_timeline(question, timeline), encoding="utf-8")
        except OSError:
            pass

    def log_usage(self, usage: Dict[str, Any]) -> None:
        if not self.run_dir:
            return
        self._write_json(self.run_dir / "usage.json", {"usage": usage, "logged_at": _utc_timestamp()})

    def finalize(self, status: str, extra: Optional[Dict[str, Any]] = None) -> None:
        if not self.run_dir:
            return
        summary = {"status": status, "finished_at": _utc_timestamp()}
        if extra:
            summary.update(extra)
        self._write_json(self.run_dir / "summary.json", summary)
        self._prune_old_runs()

    def _append_jsonl(self, name: str, payload: Dict[str, Any]) -> None:
        if not self.run_dir:
            return
        payload = dict(payload)
        payload["logged_at"] = _utc_timestamp()
        try:
            with self._lock, (self.run_dir / name).open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(payload, ensure_ascii=False, default=str))
                fh.write("\n")
        except OSError:
            pass

    def _write_json(self, path: Path, payload: Dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
        except OSError:
            # Logging must never block pipeline execution.
            pass

    def _prune_old_runs(self) -> None:
        if self.base_dir is None:
            return
        try:
            if not self.base_dir.exists():
                return
            candidates = [p for p in self.base_dir.iterdir() if p.is_dir()]
            candidates.sort(key=lambda p: p.stat().st_mtime, reverse=True)
            for stale in candidates[self.retain :]:
                if self.run_dir and stale == self.run_dir:
                    continue
                shutil.rmtree(stale, ignore_errors=True)
        except OSError:
            pass


__all__ = ["RunLogger", "format_timeline"]
