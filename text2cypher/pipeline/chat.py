from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class ChatMessage:
    role: ChatRole
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(ChatRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(ChatRole.ASSISTANT, content)


@dataclass(frozen=True)
class Conversation:
    """
    Caller-supplied chat history. The final turn is the active question.
    System turns are owned by the pipeline and rejected here.
    """

    messages: tuple = field(default_factory=tuple)

    def __post_init__(self) -> None:
        msgs = tuple(self.messages)
        for msg in msgs:
            if msg.role == ChatRole.SYSTEM:
                raise ValueError("Conversation may not contain system messages")
        object.__setattr__(self, "messages", msgs)

    @classmethod
    def from_question(cls, question: str) -> "Conversation":
        return cls((ChatMessage.user(question),))

    @classmethod
    def from_dicts(cls, items: Iterable[Dict[str, Any]]) -> "Conversation":
        messages = []
        for item in items:
            role = ChatRole(str(item.get("role", "")).lower())
            messages.append(ChatMessage(role, str(item.get("content", ""))))
        return cls(tuple(messages))

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)

    @property
    def last(self) -> Optional[ChatMessage]:
        return self.messages[-1] if self.messages else None

    @property
    def question(self) -> str:
        """Content of the last user turn, or empty when there is none."""
        for msg in reversed(self.messages):
            if msg.role == ChatRole.USER:
                return msg.content
        return ""

    def with_feedback(self, failed_query: str, feedback: str) -> "Conversation":
        extra = (ChatMessage.assistant(failed_query), ChatMessage.user(feedback))
        return Conversation(self.messages + extra)

    def to_dicts(self) -> List[Dict[str, str]]:
        return [msg.to_dict() for msg in self.messages]


@dataclass(frozen=True)
class ChatPrompt:
    """An optional system instruction plus the user/assistant turns sent to a provider."""

    system: Optional[str]
    messages: tuple

    def to_openai_messages(self) -> List[Dict[str, str]]:
        payload = [{"role": "system", "content": self.system}] if self.system else []
        payload.extend(msg.to_dict() for msg in self.messages)
        return payload


__all__ = ["ChatRole", "ChatMessage", "Conversation", "ChatPrompt"]
