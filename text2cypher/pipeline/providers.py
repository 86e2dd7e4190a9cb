from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .chat import ChatPrompt, ChatRole
from .errors import ConnectionFailure, ProviderErrorKind, ProviderFailure

ANTHROPIC_MAX_TOKENS = 4096
FAMILY_SEPARATOR = "::"

_USAGE_LOG = threading.local()


def reset_usage_log() -> None:
    _USAGE_LOG.entries = []


def record_usage(usage: Dict[str, Any]) -> None:
    prompt = int(usage.get("prompt_tokens", 0) or 0)
    completion = int(usage.get("completion_tokens", 0) or 0)
    total = int(usage.get("total_tokens", 0) or (prompt + completion))
    log = getattr(_USAGE_LOG, "entries", None)
    if log is None:
        log = []
        _USAGE_LOG.entries = log
    log.append({"prompt_tokens": prompt, "completion_tokens": completion, "total_tokens": total})


def usage_totals() -> Dict[str, int]:
    log = getattr(_USAGE_LOG, "entries", []) or []
    totals = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    for entry in log:
        for key in totals:
            totals[key] += int(entry.get(key, 0))
    return totals


@dataclass(frozen=True)
class ProviderIdentity:
    family: str
    model: str

    def __str__(self) -> str:
        return f"{self.model} ({self.family})"


class CompletionProvider(ABC):
    """One AI provider family. Implementations wrap a vendor SDK client."""

    name: str = ""

    def __init__(self, credential: Optional[str] = None, client: Any = None) -> None:
        self.credential = credential
        self._client_instance = client

    def _client(self):
        if self._client_instance is None:
            self._client_instance = self._make_client()
        return self._client_instance

    @abstractmethod
    def _make_client(self):
        ...

    @abstractmethod
    def _translate_error(self, exc: Exception) -> Exception:
        ...

    @abstractmethod
    def complete(self, model: str, prompt: ChatPrompt) -> str:
        ...

    @abstractmethod
    def complete_streaming(self, model: str, prompt: ChatPrompt) -> Iterator[str]:
        ...

    @abstractmethod
    def list_models(self) -> List[str]:
        ...

    def resolve_model(self, model: str) -> ProviderIdentity:
        return ProviderIdentity(family=self.name, model=model)

    def _fail(self, exc: Exception) -> Exception:
        if isinstance(exc, (ConnectionFailure, ProviderFailure)):
            return exc
        return self._translate_error(exc)


def _generic_translate(name: str, exc: Exception) -> Exception:
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return ConnectionFailure(f"{name} connection failed: {exc}")
    return ProviderFailure(f"{name} request failed: {exc}")


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


def _load_openai_sdk():
    try:
        import openai  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise ProviderFailure("OpenAI client missing. Install with: pip install openai") from exc
    return openai


class OpenAIProvider(CompletionProvider):
    name = "openai"

    def _make_client(self):
        openai = _load_openai_sdk()
        return openai.OpenAI(api_key=self.credential)

    def _translate_error(self, exc: Exception) -> Exception:
        openai = _load_openai_sdk()
        if isinstance(exc, openai.APIConnectionError):
            return ConnectionFailure(f"OpenAI connection failed: {exc}")
        if isinstance(exc, openai.NotFoundError):
            return ProviderFailure(f"OpenAI model not found: {exc}", ProviderErrorKind.MODEL_NOT_FOUND)
        if isinstance(exc, openai.RateLimitError):
            return ProviderFailure(f"OpenAI rate limit: {exc}", ProviderErrorKind.RATE_LIMITED)
        if isinstance(exc, openai.AuthenticationError):
            return ProviderFailure(f"OpenAI authentication failed: {exc}", ProviderErrorKind.AUTHENTICATION)
        return _generic_translate("OpenAI", exc)

    @staticmethod
    def _record(usage_data) -> None:
        if usage_data:
            record_usage(
                {
                    "prompt_tokens": getattr(usage_data, "prompt_tokens", 0),
                    "completion_tokens": getattr(usage_data, "completion_tokens", 0),
                    "total_tokens": getattr(usage_data, "total_tokens", 0),
                }
            )

    def complete(self, model: str, prompt: ChatPrompt) -> str:
        try:
            resp = self._client().chat.completions.create(model=model, messages=prompt.to_openai_messages())
        except Exception as exc:
            raise self._fail(exc) from exc
        self._record(getattr(resp, "usage", None))
        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""

    def complete_streaming(self, model: str, prompt: ChatPrompt) -> Iterator[str]:
        try:
            stream = self._client().chat.completions.create(
                model=model,
                messages=prompt.to_openai_messages(),
                stream=True,
                stream_options={"include_usage": True},
            )
            for chunk in stream:
                self._record(getattr(chunk, "usage", None))
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except Exception as exc:
            raise self._fail(exc) from exc

    def list_models(self) -> List[str]:
        try:
            return sorted(m.id for m in self._client().models.list())
        except Exception as exc:
            raise self._fail(exc) from exc


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------


def _load_anthropic_sdk():
    try:
        import anthropic  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise ProviderFailure("Anthropic client missing. Install with: pip install anthropic") from exc
    return anthropic


class AnthropicProvider(CompletionProvider):
    name = "anthropic"

    def _make_client(self):
        anthropic = _load_anthropic_sdk()
        return anthropic.Anthropic(api_key=self.credential)

    def _translate_error(self, exc: Exception) -> Exception:
        anthropic = _load_anthropic_sdk()
        if isinstance(exc, anthropic.APIConnectionError):
            return ConnectionFailure(f"Anthropic connection failed: {exc}")
        if isinstance(exc, anthropic.NotFoundError):
            return ProviderFailure(f"Anthropic model not found: {exc}", ProviderErrorKind.MODEL_NOT_FOUND)
        if isinstance(exc, anthropic.RateLimitError):
            return ProviderFailure(f"Anthropic rate limit: {exc}", ProviderErrorKind.RATE_LIMITED)
        if isinstance(exc, anthropic.AuthenticationError):
            return ProviderFailure(f"Anthropic authentication failed: {exc}", ProviderErrorKind.AUTHENTICATION)
        return _generic_translate("Anthropic", exc)

    @staticmethod
    def _request_kwargs(model: str, prompt: ChatPrompt) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "messages": [msg.to_dict() for msg in prompt.messages],
        }
        if prompt.system:
            kwargs["system"] = prompt.system
        return kwargs

    @staticmethod
    def _record(usage_data) -> None:
        if usage_data:
            record_usage(
                {
                    "prompt_tokens": getattr(usage_data, "input_tokens", 0),
                    "completion_tokens": getattr(usage_data, "output_tokens", 0),
                }
            )

    def complete(self, model: str, prompt: ChatPrompt) -> str:
        try:
            resp = self._client().messages.create(**self._request_kwargs(model, prompt))
        except Exception as exc:
            raise self._fail(exc) from exc
        self._record(getattr(resp, "usage", None))
        return "".join(getattr(block, "text", "") for block in resp.content or [])

    def complete_streaming(self, model: str, prompt: ChatPrompt) -> Iterator[str]:
        try:
            with self._client().messages.stream(**self._request_kwargs(model, prompt)) as stream:
                for text in stream.text_stream:
                    if text:
                        yield text
                self._record(getattr(stream.get_final_message(), "usage", None))
        except Exception as exc:
            raise self._fail(exc) from exc

    def list_models(self) -> List[str]:
        try:
            return sorted(m.id for m in self._client().models.list())
        except Exception as exc:
            raise self._fail(exc) from exc


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------


def _load_genai_sdk():
    try:
        from google import genai  # type: ignore
        from google.genai import errors, types  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise ProviderFailure("Gemini client missing. Install with: pip install google-genai") from exc
    return genai, types, errors


class GeminiProvider(CompletionProvider):
    name = "gemini"

    def _make_client(self):
        genai, _, _ = _load_genai_sdk()
        return genai.Client(api_key=self.credential)

    def _translate_error(self, exc: Exception) -> Exception:
        _, _, errors = _load_genai_sdk()
        if isinstance(exc, errors.APIError):
            code = getattr(exc, "code", None)
            kind = {404: ProviderErrorKind.MODEL_NOT_FOUND, 429: ProviderErrorKind.RATE_LIMITED,
                    401: ProviderErrorKind.AUTHENTICATION, 403: ProviderErrorKind.AUTHENTICATION}.get(code)
            return ProviderFailure(f"Gemini request failed: {exc}", kind)
        return _generic_translate("Gemini", exc)

    def _request(self, prompt: ChatPrompt) -> Tuple[list, Any]:
        _, types, _ = _load_genai_sdk()
        contents = [
            types.Content(
                role="model" if msg.role == ChatRole.ASSISTANT else "user",
                parts=[types.Part(text=msg.content)],
            )
            for msg in prompt.messages
        ]
        return contents, types.GenerateContentConfig(system_instruction=prompt.system or None)

    @staticmethod
    def _record(usage_data) -> None:
        if usage_data:
            record_usage(
                {
                    "prompt_tokens": getattr(usage_data, "prompt_token_count", 0),
                    "completion_tokens": getattr(usage_data, "candidates_token_count", 0),
                    "total_tokens": getattr(usage_data, "total_token_count", 0),
                }
            )

    def complete(self, model: str, prompt: ChatPrompt) -> str:
        try:
            contents, config = self._request(prompt)
            resp = self._client().models.generate_content(model=model, contents=contents, config=config)
        except Exception as exc:
            raise self._fail(exc) from exc
        self._record(getattr(resp, "usage_metadata", None))
        return resp.text or ""

    def complete_streaming(self, model: str, prompt: ChatPrompt) -> Iterator[str]:
        try:
            contents, config = self._request(prompt)
            usage = None
            for chunk in self._client().models.generate_content_stream(model=model, contents=contents, config=config):
                usage = getattr(chunk, "usage_metadata", None) or usage
                if chunk.text:
                    yield chunk.text
            self._record(usage)
        except Exception as exc:
            raise self._fail(exc) from exc

    def list_models(self) -> List[str]:
        try:
            return sorted(str(m.name) for m in self._client().models.list())
        except Exception as exc:
            raise self._fail(exc) from exc


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

ProviderFactory = Callable[[Optional[str]], CompletionProvider]

DEFAULT_FACTORIES: Dict[str, ProviderFactory] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}

MODEL_PREFIXES: List[Tuple[str, str]] = [
    ("gpt-", "openai"),
    ("chatgpt-", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("o4", "openai"),
    ("claude", "anthropic"),
    ("gemini", "gemini"),
    ("models/gemini", "gemini"),
]


class ProviderRouter:
    """
    Decides once per model name which provider family serves it.

    `family::model` selects a family explicitly; otherwise the model name prefix
    is matched against MODEL_PREFIXES.
    """

    def __init__(self, factories: Optional[Dict[str, ProviderFactory]] = None) -> None:
        self.factories = dict(factories or DEFAULT_FACTORIES)

    def route(self, model: str) -> ProviderIdentity:
        name = (model or "").strip()
        if not name:
            raise ProviderFailure("Model name is empty", ProviderErrorKind.MODEL_NOT_FOUND)
        if FAMILY_SEPARATOR in name:
            family, _, bare = name.partition(FAMILY_SEPARATOR)
            family = family.strip().lower()
            if family not in self.factories or not bare.strip():
                raise ProviderFailure(f"Unknown provider for model '{name}'", ProviderErrorKind.MODEL_NOT_FOUND)
            return ProviderIdentity(family=family, model=bare.strip())
        lowered = name.lower()
        for prefix, family in MODEL_PREFIXES:
            if lowered.startswith(prefix) and family in self.factories:
                return ProviderIdentity(family=family, model=name)
        raise ProviderFailure(f"No provider serves model '{name}'", ProviderErrorKind.MODEL_NOT_FOUND)

    def provider_for(self, family: str, credential: Optional[str] = None) -> CompletionProvider:
        factory = self.factories.get(family)
        if factory is None:
            raise ProviderFailure(f"Unknown provider '{family}'", ProviderErrorKind.MODEL_NOT_FOUND)
        return factory(credential)

    def resolve(self, model: str, credential: Optional[str] = None) -> Tuple[CompletionProvider, ProviderIdentity]:
        identity = self.route(model)
        provider = self.provider_for(identity.family, credential)
        return provider, provider.resolve_model(identity.model)


__all__ = [
    "ProviderIdentity",
    "CompletionProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "ProviderRouter",
    "DEFAULT_FACTORIES",
    "MODEL_PREFIXES",
    "reset_usage_log",
    "record_usage",
    "usage_totals",
]
