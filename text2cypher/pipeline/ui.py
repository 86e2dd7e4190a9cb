from __future__ import annotations

import sys
from typing import Optional, TextIO

from .events import EventKind, ProgressEvent

_ANSI = {
    "mauve": "\033[38;5;141m",      # Purple - primary accent
    "peach": "\033[38;5;209m",      # Orange - warnings
    "sky": "\033[38;5;117m",        # Light blue - info
    "teal": "\033[38;5;37m",        # Cyan - success secondary
    "green": "\033[38;5;114m",      # Success green
    "red": "\033[38;5;203m",        # Error red
    "white": "\033[38;5;255m",      # Bright white
    "gray": "\033[38;5;245m",       # Muted gray
    "dim": "\033[38;5;240m",        # Very dim
    "reset": "\033[0m",
    "bold": "\033[1m",
    "italic": "\033[3m",
    "dim_fmt": "\033[2m",
}


def style(text: str, color: str, enabled: bool, *, italic: bool = False, bold: bool = False, dim: bool = False) -> str:
    if not enabled:
        return text
    parts = []
    if bold:
        parts.append(_ANSI["bold"])
    if italic:
        parts.append(_ANSI["italic"])
    if dim:
        parts.append(_ANSI["dim_fmt"])
    parts.append(_ANSI.get(color, ""))
    prefix = "".join(parts)
    if not prefix:
        return text
    return f"{prefix}{text}{_ANSI['reset']}"


_EVENT_STYLE = {
    EventKind.STATUS: ("●", "gray"),
    EventKind.SCHEMA: ("◆", "sky"),
    EventKind.CYPHER_QUERY: ("➤", "mauve"),
    EventKind.CYPHER_RESULT: ("▤", "teal"),
    EventKind.RESULT: ("✓", "green"),
    EventKind.ERROR: ("✗", "red"),
}

SCHEMA_PREVIEW_CHARS = 240


class EventPrinter:
    """Writes a progress stream to a terminal, streaming answer chunks inline."""

    def __init__(self, out: Optional[TextIO] = None, color: Optional[bool] = None, show_schema: bool = False) -> None:
        self.out = out or sys.stdout
        self.color = self.out.isatty() if color is None else color
        self.show_schema = show_schema
        self._in_answer = False

    def _line(self, text: str) -> None:
        self.out.write(text + "\n")
        self.out.flush()

    def print(self, event: ProgressEvent) -> None:
        if event.kind == EventKind.MODEL_OUTPUT_CHUNK:
            if not self._in_answer:
                self._in_answer = True
                self.out.write(style("  ", "white", self.color))
            self.out.write(event.text)
            self.out.flush()
            return

        if self._in_answer:
            self._in_answer = False
            self._line("")
            if event.kind == EventKind.RESULT:
                self._line(style("✓ done", "green", self.color, bold=True))
                return

        icon, color = _EVENT_STYLE[event.kind]
        text = event.text
        if event.kind == EventKind.SCHEMA and not self.show_schema:
            text = text if len(text) <= SCHEMA_PREVIEW_CHARS else text[:SCHEMA_PREVIEW_CHARS] + "..."
        label = style(f"{icon} {event.kind.value}", color, self.color, bold=event.is_terminal)
        if "\n" in text:
            self._line(label)
            for raw in text.splitlines():
                self._line("    " + raw)
        else:
            self._line(f"{label} {style(text, 'white' if event.is_terminal else 'gray', self.color)}")


__all__ = ["style", "EventPrinter"]
