from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from text2cypher.pipeline.chat import ChatPrompt
from text2cypher.pipeline.config import PipelineConfig
from text2cypher.pipeline.providers import CompletionProvider, ProviderRouter


def make_config(**overrides: Any) -> PipelineConfig:
    values: Dict[str, Any] = dict(
        connection_target="falkor://test:6379",
        default_model="gpt-4o-mini",
        default_credential=None,
        query_timeout_ms=None,
        log_dir=None,
    )
    values.update(overrides)
    return PipelineConfig(**values)


class FakeConnection:
    """In-memory stand-in for FalkorRunner."""

    def __init__(
        self,
        labels: Sequence[str] = (),
        rel_types: Sequence[str] = (),
        handler: Optional[Callable[[str], List[List[Any]]]] = None,
        graphs: Sequence[str] = (),
    ) -> None:
        self.labels = list(labels)
        self.rel_types = list(rel_types)
        self.handler = handler
        self.graphs = list(graphs)
        self.queries: List[str] = []
        self.read_only_flags: List[bool] = []
        self.introspections = 0
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True

    def introspect_labels(self) -> List[str]:
        self.introspections += 1
        return list(self.labels)

    def introspect_relationship_types(self) -> List[str]:
        return list(self.rel_types)

    def run_query(self, text: str, *, read_only: bool = True, timeout: Optional[int] = None) -> List[List[Any]]:
        self.queries.append(text)
        self.read_only_flags.append(read_only)
        if self.handler is None:
            return []
        return self.handler(text)

    def list_graphs(self) -> List[str]:
        return list(self.graphs)


class FakeProvider(CompletionProvider):
    name = "openai"

    def __init__(
        self,
        queries: Iterable[Any] = ("MATCH (n) RETURN n",),
        answer_chunks: Iterable[str] = ("The ", "answer"),
        answer_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(credential=None, client=object())
        self.queries = list(queries)
        self.answer_chunks = list(answer_chunks)
        self.answer_error = answer_error
        self.prompts: List[ChatPrompt] = []
        self.answer_prompts: List[ChatPrompt] = []

    def _make_client(self):
        return object()

    def _translate_error(self, exc: Exception) -> Exception:
        return exc

    def complete(self, model: str, prompt: ChatPrompt) -> str:
        self.prompts.append(prompt)
        item = self.queries.pop(0) if self.queries else ""
        if isinstance(item, Exception):
            raise item
        return item

    def complete_streaming(self, model: str, prompt: ChatPrompt):
        self.answer_prompts.append(prompt)
        if self.answer_error is not None:
            raise self.answer_error
        for chunk in self.answer_chunks:
            yield chunk

    def list_models(self) -> List[str]:
        return ["gpt-4o-mini"]


def router_for(provider: CompletionProvider) -> ProviderRouter:
    return ProviderRouter(factories={"openai": lambda _credential: provider})


def factory_for(connection: FakeConnection):
    calls: List[tuple] = []

    def _factory(graph_id: str, target: str):
        calls.append((graph_id, target))
        return connection

    _factory.calls = calls  # type: ignore[attr-defined]
    return _factory
