from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Optional

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

SYSTEM_PROMPT = "system_prompt"
USER_PROMPT = "user_prompt"
LAST_REQUEST_PROMPT = "last_request_prompt"
SELF_HEALING_PROMPT = "self_healing_prompt"


class TemplateEngine:
    """Loads `{{KEY}}` text templates from disk and fills them in."""

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else TEMPLATE_DIR
        self._cache: Dict[str, str] = {}

    def load(self, name: str) -> str:
        if name not in self._cache:
            path = self.template_dir / f"{name}.txt"
            self._cache[name] = path.read_text(encoding="utf-8")
        return self._cache[name]

    def render(self, name: str, variables: Mapping[str, str]) -> str:
        text = self.load(name)
        for key, value in variables.items():
            text = text.replace("{{" + key + "}}", value)
        return text

    def render_system_prompt(self, ontology: str) -> str:
        return self.render(SYSTEM_PROMPT, {"ONTOLOGY": ontology})

    def render_user_prompt(self, question: str) -> str:
        return self.render(USER_PROMPT, {"QUESTION": question})

    def render_last_request_prompt(self, question: str, cypher_query: str, cypher_result: str) -> str:
        return self.render(
            LAST_REQUEST_PROMPT,
            {"USER_QUESTION": question, "CYPHER_QUERY": cypher_query, "CYPHER_RESULT": cypher_result},
        )

    def render_self_healing_prompt(self, failure_reason: str) -> str:
        return self.render(SELF_HEALING_PROMPT, {"FAILURE_REASON": failure_reason})


__all__ = [
    "TemplateEngine",
    "TEMPLATE_DIR",
    "SYSTEM_PROMPT",
    "USER_PROMPT",
    "LAST_REQUEST_PROMPT",
    "SELF_HEALING_PROMPT",
]
