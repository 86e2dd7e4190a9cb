from .pipeline import Text2CypherPipeline, PipelineOutcome
from .config import PipelineConfig
from .chat import ChatMessage, ChatPrompt, ChatRole, Conversation
from .schema import Attribute, AttributeType, Entity, Relation, Schema
from .schema_cache import SchemaCache
from .discovery import SchemaDiscovery, discover_schema
from .validators import CypherValidator, ValidationResult, check_balanced
from .records import GraphEdge, GraphNode, GraphPath
from .formatter import format_as_json, format_records
from .runner import FalkorRunner, execute_query, graph_query
from .providers import (
    AnthropicProvider,
    CompletionProvider,
    GeminiProvider,
    OpenAIProvider,
    ProviderIdentity,
    ProviderRouter,
)
from .synthesis import AnswerSynthesizer, QuerySynthesizer
from .templates import TemplateEngine
from .events import EventKind, ProgressEvent
from .channel import ChannelClosed, ProgressChannel, ProgressStream
from .orchestrator import PipelineOrchestrator, PipelineRequest, PipelineStage
from .errors import (
    ConnectionFailure,
    EmptyResponse,
    ExecutionFailure,
    IntrospectionFailure,
    PipelineError,
    ProviderErrorKind,
    ProviderFailure,
    QueryRejected,
    ValidationFailure,
    classify_provider_error,
)
from .run_logger import RunLogger

__all__ = [
    "Text2CypherPipeline",
    "PipelineOutcome",
    "PipelineConfig",
    "ChatMessage",
    "ChatPrompt",
    "ChatRole",
    "Conversation",
    "Attribute",
    "AttributeType",
    "Entity",
    "Relation",
    "Schema",
    "SchemaCache",
    "SchemaDiscovery",
    "discover_schema",
    "CypherValidator",
    "ValidationResult",
    "check_balanced",
    "GraphEdge",
    "GraphNode",
    "GraphPath",
    "format_as_json",
    "format_records",
    "FalkorRunner",
    "execute_query",
    "graph_query",
    "AnthropicProvider",
    "CompletionProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "ProviderIdentity",
    "ProviderRouter",
    "AnswerSynthesizer",
    "QuerySynthesizer",
    "TemplateEngine",
    "EventKind",
    "ProgressEvent",
    "ChannelClosed",
    "ProgressChannel",
    "ProgressStream",
    "PipelineOrchestrator",
    "PipelineRequest",
    "PipelineStage",
    "ConnectionFailure",
    "EmptyResponse",
    "ExecutionFailure",
    "IntrospectionFailure",
    "PipelineError",
    "ProviderErrorKind",
    "ProviderFailure",
    "QueryRejected",
    "ValidationFailure",
    "classify_provider_error",
    "RunLogger",
]
