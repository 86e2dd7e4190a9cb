from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from .channel import ChannelClosed
from .chat import Conversation
from .config import PipelineConfig
from .discovery import SchemaDiscovery
from .errors import (
    EmptyResponse,
    ExecutionFailure,
    PipelineError,
    ProviderFailure,
    QueryRejected,
    ValidationFailure,
)
from .events import ProgressEvent
from .providers import CompletionProvider, ProviderIdentity, ProviderRouter, reset_usage_log, usage_totals
from .run_logger import RunLogger
from .runner import execute_query
from .schema_cache import SchemaCache
from .synthesis import AnswerSynthesizer, QuerySynthesizer
from .templates import TemplateEngine
from .utils import mask_secret, truncate
from .validators import CypherValidator

MAX_QUERY_ATTEMPTS = 2

MISSING_MODEL_MESSAGE = "Model must be provided either in request or as DEFAULT_MODEL"
EXECUTING_STATUS = "Executing Cypher query..."
SELF_HEALING_STATUS = "Query rejected, regenerating Cypher query with feedback..."
ANSWER_STATUS = "Generating answer from chat history and Cypher output using AI model..."
EXECUTION_FEEDBACK = (
    "The query failed when executed against the graph database. "
    "Check labels, relationship types, directions and property names against the ontology."
)

Emit = Callable[[ProgressEvent], None]
ConnectionFactory = Callable[[str, str], Any]


class PipelineStage(Enum):
    INIT = "init"
    SCHEMA_RESOLVING = "schema_resolving"
    SYNTHESIZING = "synthesizing"
    VALIDATING = "validating"
    EXECUTING = "executing"
    SELF_HEALING = "self_healing"
    ANSWER_SYNTHESIZING = "answer_synthesizing"
    DONE = "done"
    ERROR = "error"


@dataclass
class PipelineRequest:
    graph_id: str
    conversation: Conversation
    model: Optional[str] = None
    provider_credential: Optional[str] = None
    connection_target: Optional[str] = None
    query_only: bool = False

    def log_view(self) -> Dict[str, Any]:
        return {
            "graph": self.graph_id,
            "model": self.model,
            "credential": mask_secret(self.provider_credential),
            "connection_target": "custom" if self.connection_target else "default",
            "query_only": self.query_only,
            "turns": len(self.conversation),
        }


def failure_reason(exc: QueryRejected) -> str:
    """Feedback shown to the model for a rejected query; never carries raw database text."""
    if isinstance(exc, ValidationFailure):
        return "\n".join(f"- {err}" for err in exc.validation.errors)
    return EXECUTION_FEEDBACK


@dataclass
class _Run:
    request: PipelineRequest
    emit_raw: Emit
    logger: RunLogger
    stage: PipelineStage = PipelineStage.INIT
    attempt: int = 0
    conversation: Optional[Conversation] = None
    timeline: List[Dict[str, Any]] = field(default_factory=list)
    started: float = field(default_factory=time.time)

    def enter(self, stage: PipelineStage, detail: Optional[str] = None) -> None:
        self.stage = stage
        entry: Dict[str, Any] = {"stage": stage.value, "elapsed_s": round(time.time() - self.started, 3)}
        if self.attempt:
            entry["attempt"] = self.attempt
        if detail:
            entry["detail"] = detail
        self.timeline.append(entry)

    def emit(self, event: ProgressEvent) -> None:
        self.emit_raw(event)
        self.logger.log_event(event.to_dict())

    def finish(self, status: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self.logger.log_timeline(self.request.conversation.question, self.timeline)
        self.logger.log_usage(usage_totals())
        payload = {"attempts": self.attempt, "final_stage": self.stage.value}
        if extra:
            payload.update(extra)
        self.logger.finalize(status, payload)


class PipelineOrchestrator:
    """
    Drives one request through the text-to-Cypher state machine.

    Progress is reported only through `emit`; every failure surfaces as exactly
    one terminal Error event. A ChannelClosed raised by `emit` means the consumer
    went away and is propagated so the producer stops immediately.
    """

    def __init__(
        self,
        config: PipelineConfig,
        schema_cache: SchemaCache,
        router: ProviderRouter,
        connection_factory: ConnectionFactory,
        *,
        validator: Optional[CypherValidator] = None,
        templates: Optional[TemplateEngine] = None,
    ) -> None:
        self.config = config
        self.schema_cache = schema_cache
        self.router = router
        self.connection_factory = connection_factory
        self.validator = validator or CypherValidator()
        templates = templates or TemplateEngine()
        self.query_synthesizer = QuerySynthesizer(templates)
        self.answer_synthesizer = AnswerSynthesizer(templates)

    def process(self, request: PipelineRequest, emit: Emit) -> None:
        run = _Run(request=request, emit_raw=emit, logger=RunLogger(self.config.log_dir, self.config.log_retain))
        run.conversation = request.conversation
        reset_usage_log()
        run.logger.start(request.conversation.question, request.log_view())
        try:
            self._process(run)
        except ChannelClosed:
            run.finish("abandoned")
            raise
        except PipelineError as exc:
            self._fail(run, str(exc), type(exc).__name__)
        except Exception as exc:
            self._fail(run, f"Unexpected error: {exc}", type(exc).__name__)

    def _fail(self, run: _Run, message: str, error_type: str) -> None:
        run.enter(PipelineStage.ERROR, message)
        try:
            run.emit(ProgressEvent.error(message))
        finally:
            run.finish("error", {"error": message, "error_type": error_type})

    # ------------------------------------------------------------------
    # stages
    # ------------------------------------------------------------------

    def _resolve_provider(self, request: PipelineRequest) -> Tuple[CompletionProvider, ProviderIdentity]:
        model = request.model or self.config.default_model
        if not model:
            raise PipelineError(MISSING_MODEL_MESSAGE)
        credential = request.provider_credential or self.config.default_credential
        try:
            return self.router.resolve(model, credential)
        except ProviderFailure as exc:
            raise ProviderFailure(f"Failed to resolve service target: {exc}", exc.kind) from exc

    def _process(self, run: _Run) -> None:
        request = run.request
        provider, identity = self._resolve_provider(request)
        target = request.connection_target or self.config.connection_target

        run.emit(
            ProgressEvent.status(
                f"Processing query for graph: {request.graph_id} using model: {identity.model} ({identity.family})"
            )
        )

        with self.connection_factory(request.graph_id, target) as connection:
            run.enter(PipelineStage.SCHEMA_RESOLVING)
            schema_json = self._resolve_schema(run, connection)
            run.emit(ProgressEvent.schema(schema_json))

            query, result = self._query_with_self_healing(run, connection, provider, identity, schema_json)

        if request.query_only:
            run.enter(PipelineStage.DONE)
            run.finish("success", {"cypher_query": query})
            return

        answer = self._answer(run, provider, identity, query, result or "")
        run.enter(PipelineStage.DONE)
        run.finish("success", {"cypher_query": query, "answer_chars": len(answer)})

    def _resolve_schema(self, run: _Run, connection) -> str:
        graph_id = run.request.graph_id
        cached = self.schema_cache.get(graph_id)
        if cached is not None:
            run.logger.log_schema(graph_id, cached, cached=True)
            return cached
        discovery = SchemaDiscovery(connection, sample_size=self.config.schema_sample_size, run_logger=run.logger)
        schema_json = discovery.discover().to_json()
        self.schema_cache.put(graph_id, schema_json)
        run.logger.log_schema(graph_id, schema_json, cached=False)
        return schema_json

    def _query_with_self_healing(
        self,
        run: _Run,
        connection,
        provider: CompletionProvider,
        identity: ProviderIdentity,
        schema_json: str,
    ) -> Tuple[str, Optional[str]]:
        def _heal(retry_state) -> None:
            exc = retry_state.outcome.exception()
            run.enter(PipelineStage.SELF_HEALING, str(exc))
            run.conversation = run.conversation.with_feedback(
                exc.query, self.query_synthesizer.feedback_message(failure_reason(exc))
            )
            run.emit(ProgressEvent.status(SELF_HEALING_STATUS))

        retrying = Retrying(
            stop=stop_after_attempt(MAX_QUERY_ATTEMPTS),
            retry=retry_if_exception_type(QueryRejected),
            before_sleep=_heal,
            reraise=True,
        )
        return retrying(self._attempt_query, run, connection, provider, identity, schema_json)

    def _attempt_query(
        self,
        run: _Run,
        connection,
        provider: CompletionProvider,
        identity: ProviderIdentity,
        schema_json: str,
    ) -> Tuple[str, Optional[str]]:
        run.attempt += 1
        run.enter(PipelineStage.SYNTHESIZING)
        query = self.query_synthesizer.synthesize(run.conversation, schema_json, provider, identity.model)

        run.enter(PipelineStage.VALIDATING, query)
        validation = self.validator.validate(query)
        if validation.warnings:
            run.logger.log_debug({"phase": "validate", "attempt": run.attempt, "warnings": validation.warnings})
        if not validation.is_valid:
            raise ValidationFailure(query, validation)
        run.emit(ProgressEvent.cypher_query(query))

        if run.request.query_only:
            return query, None

        run.enter(PipelineStage.EXECUTING)
        run.emit(ProgressEvent.status(EXECUTING_STATUS))
        try:
            result = execute_query(
                connection,
                query,
                read_only=self.config.read_only,
                timeout=self.config.query_timeout_ms,
            )
        except ExecutionFailure as exc:
            run.logger.log_debug({"phase": "execute", "attempt": run.attempt, "query": query, "error": str(exc)})
            raise
        run.emit(ProgressEvent.cypher_result(result))
        return query, result

    def _answer(
        self,
        run: _Run,
        provider: CompletionProvider,
        identity: ProviderIdentity,
        query: str,
        result: str,
    ) -> str:
        run.enter(PipelineStage.ANSWER_SYNTHESIZING)
        run.emit(ProgressEvent.status(ANSWER_STATUS))
        prompt = self.answer_synthesizer.build_prompt(
            run.request.conversation, query, truncate(result, self.config.max_result_chars)
        )
        if self.config.stream_answer:
            parts: List[str] = []
            for chunk in self.answer_synthesizer.stream(prompt, provider, identity.model):
                parts.append(chunk)
                run.emit(ProgressEvent.chunk(chunk))
            answer = "".join(parts)
        else:
            answer = self.answer_synthesizer.complete(prompt, provider, identity.model)
        if not answer.strip():
            raise EmptyResponse("Model returned an empty answer")
        run.emit(ProgressEvent.result(answer))
        return answer


__all__ = [
    "PipelineStage",
    "PipelineRequest",
    "PipelineOrchestrator",
    "failure_reason",
    "MAX_QUERY_ATTEMPTS",
    "MISSING_MODEL_MESSAGE",
    "EXECUTING_STATUS",
    "SELF_HEALING_STATUS",
    "ANSWER_STATUS",
    "EXECUTION_FEEDBACK",
]
