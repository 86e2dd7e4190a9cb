from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from .channel import ProgressStream, start_producer
from .chat import Conversation
from .config import PipelineConfig
from .discovery import SchemaDiscovery
from .errors import PipelineError
from .events import EventKind, ProgressEvent
from .orchestrator import ConnectionFactory, PipelineOrchestrator, PipelineRequest
from .providers import ProviderRouter
from .runner import FalkorRunner, graph_query
from .schema_cache import SchemaCache
from .templates import TemplateEngine

ConversationLike = Union[Conversation, str, Iterable[Dict[str, Any]]]


def _as_conversation(value: ConversationLike) -> Conversation:
    if isinstance(value, Conversation):
        return value
    if isinstance(value, str):
        return Conversation.from_question(value)
    return Conversation.from_dicts(value)


def default_connection_factory(graph_id: str, connection_target: str) -> FalkorRunner:
    return FalkorRunner(graph_id, connection_target=connection_target)


@dataclass
class PipelineOutcome:
    status: str
    schema: Optional[str] = None
    cypher_query: Optional[str] = None
    cypher_result: Optional[str] = None
    answer: Optional[str] = None
    error: Optional[str] = None
    events: List[ProgressEvent] = field(default_factory=list, repr=False)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def from_events(cls, events: List[ProgressEvent]) -> "PipelineOutcome":
        outcome = cls(status="success", events=list(events))
        for event in events:
            if event.kind == EventKind.SCHEMA:
                outcome.schema = event.text
            elif event.kind == EventKind.CYPHER_QUERY:
                outcome.cypher_query = event.text
            elif event.kind == EventKind.CYPHER_RESULT:
                outcome.cypher_result = event.text
            elif event.kind == EventKind.RESULT:
                outcome.answer = event.text
            elif event.kind == EventKind.ERROR:
                outcome.status = "error"
                outcome.error = event.text
        return outcome

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "schema": self.schema,
            "cypher_query": self.cypher_query,
            "cypher_result": self.cypher_result,
            "answer": self.answer,
            "error": self.error,
        }


class Text2CypherPipeline:
    """
    Public entry point.

    One instance owns the schema cache and provider routing and may serve many
    concurrent requests; each streaming request runs on its own producer thread.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        *,
        schema_cache: Optional[SchemaCache] = None,
        router: Optional[ProviderRouter] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        templates: Optional[TemplateEngine] = None,
    ) -> None:
        self.config = config or PipelineConfig.from_env()
        self.schema_cache = schema_cache or SchemaCache(self.config.schema_cache_size)
        self.router = router or ProviderRouter()
        self.connection_factory = connection_factory or default_connection_factory
        self.orchestrator = PipelineOrchestrator(
            self.config,
            self.schema_cache,
            self.router,
            self.connection_factory,
            templates=templates,
        )

    def _request(
        self,
        graph_id: str,
        conversation: ConversationLike,
        model: Optional[str],
        provider_credential: Optional[str],
        connection_target: Optional[str],
        query_only: bool,
    ) -> PipelineRequest:
        return PipelineRequest(
            graph_id=graph_id,
            conversation=_as_conversation(conversation),
            model=model,
            provider_credential=provider_credential,
            connection_target=connection_target,
            query_only=query_only,
        )

    def run_pipeline(
        self,
        graph_id: str,
        conversation: ConversationLike,
        *,
        model: Optional[str] = None,
        provider_credential: Optional[str] = None,
        connection_target: Optional[str] = None,
        query_only: bool = False,
    ) -> ProgressStream:
        request = self._request(graph_id, conversation, model, provider_credential, connection_target, query_only)
        return start_producer(
            lambda emit: self.orchestrator.process(request, emit),
            capacity=self.config.channel_capacity,
        )

    def run_pipeline_blocking(
        self,
        graph_id: str,
        conversation: ConversationLike,
        *,
        model: Optional[str] = None,
        provider_credential: Optional[str] = None,
        connection_target: Optional[str] = None,
        query_only: bool = False,
    ) -> PipelineOutcome:
        request = self._request(graph_id, conversation, model, provider_credential, connection_target, query_only)
        events: List[ProgressEvent] = []
        self.orchestrator.process(request, events.append)
        return PipelineOutcome.from_events(events)

    def text_to_cypher(self, graph_id: str, conversation: ConversationLike, **kwargs: Any) -> PipelineOutcome:
        outcome = self.run_pipeline_blocking(graph_id, conversation, **kwargs)
        if not outcome.ok:
            raise PipelineError(outcome.error or "Pipeline failed")
        return outcome

    def cypher_only(self, graph_id: str, conversation: ConversationLike, **kwargs: Any) -> PipelineOutcome:
        kwargs["query_only"] = True
        return self.text_to_cypher(graph_id, conversation, **kwargs)

    def configured_model(self) -> Optional[str]:
        return self.config.default_model

    def get_schema(self, graph_id: str, connection_target: Optional[str] = None, *, refresh: bool = False) -> str:
        if refresh:
            self.schema_cache.invalidate(graph_id)
        cached = self.schema_cache.get(graph_id)
        if cached is not None:
            return cached
        target = connection_target or self.config.connection_target
        with self.connection_factory(graph_id, target) as connection:
            schema_json = SchemaDiscovery(connection, sample_size=self.config.schema_sample_size).discover().to_json()
        self.schema_cache.put(graph_id, schema_json)
        return schema_json

    def clear_schema_cache(self, graph_id: str) -> bool:
        return self.schema_cache.invalidate(graph_id)

    def list_graphs(self, connection_target: Optional[str] = None) -> List[str]:
        target = connection_target or self.config.connection_target
        with self.connection_factory("", target) as connection:
            return connection.list_graphs()

    def graph_query(
        self,
        graph_id: str,
        query: str,
        connection_target: Optional[str] = None,
        *,
        read_only: bool = False,
    ) -> str:
        target = connection_target or self.config.connection_target
        with self.connection_factory(graph_id, target) as connection:
            return graph_query(connection, query, read_only=read_only, timeout=self.config.query_timeout_ms)

    def list_models(self, provider_name: str, credential: Optional[str] = None) -> List[str]:
        provider = self.router.provider_for(provider_name.lower(), credential or self.config.default_credential)
        return provider.list_models()


__all__ = ["Text2CypherPipeline", "PipelineOutcome", "default_connection_factory"]
