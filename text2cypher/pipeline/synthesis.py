from __future__ import annotations

from typing import Iterator, List, Optional

from .chat import ChatMessage, ChatPrompt, ChatRole, Conversation
from .errors import EmptyResponse
from .templates import TemplateEngine
from .utils import clean_query, is_no_answer


def _rewrite_last_user_turn(conversation: Conversation, content: str) -> tuple:
    messages: List[ChatMessage] = list(conversation.messages)
    if messages and messages[-1].role == ChatRole.USER:
        messages[-1] = ChatMessage.user(content)
    return tuple(messages)


class QuerySynthesizer:
    """Turns a conversation plus schema into a single cleaned Cypher query."""

    def __init__(self, templates: Optional[TemplateEngine] = None) -> None:
        self.templates = templates or TemplateEngine()

    def build_prompt(self, conversation: Conversation, schema_json: str) -> ChatPrompt:
        system = self.templates.render_system_prompt(schema_json)
        last = conversation.last
        if last is None or last.role != ChatRole.USER:
            return ChatPrompt(system=system, messages=conversation.messages)
        rewritten = self.templates.render_user_prompt(last.content)
        return ChatPrompt(system=system, messages=_rewrite_last_user_turn(conversation, rewritten))

    def synthesize(self, conversation: Conversation, schema_json: str, provider, model: str) -> str:
        raw = provider.complete(model, self.build_prompt(conversation, schema_json))
        if is_no_answer(raw or ""):
            raise EmptyResponse("No valid query was generated")
        query = clean_query(raw)
        if is_no_answer(query):
            raise EmptyResponse("No valid query was generated")
        return query

    def feedback_message(self, reason: str) -> str:
        return self.templates.render_self_healing_prompt(reason)


class AnswerSynthesizer:
    """Phrases the final natural-language answer from the query and its result."""

    def __init__(self, templates: Optional[TemplateEngine] = None) -> None:
        self.templates = templates or TemplateEngine()

    def build_prompt(self, conversation: Conversation, cypher_query: str, cypher_result: str) -> ChatPrompt:
        content = self.templates.render_last_request_prompt(conversation.question, cypher_query, cypher_result)
        return ChatPrompt(system=None, messages=_rewrite_last_user_turn(conversation, content))

    def stream(self, prompt: ChatPrompt, provider, model: str) -> Iterator[str]:
        return provider.complete_streaming(model, prompt)

    def complete(self, prompt: ChatPrompt, provider, model: str) -> str:
        answer = provider.complete(model, prompt) or ""
        if not answer.strip():
            raise EmptyResponse("Model returned an empty answer")
        return answer


__all__ = ["QuerySynthesizer", "AnswerSynthesizer"]
