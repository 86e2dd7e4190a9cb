from text2cypher.pipeline.errors import (
    ExecutionFailure,
    PipelineError,
    ProviderErrorKind,
    ProviderFailure,
    QueryRejected,
    ValidationFailure,
    classify_provider_error,
)
from text2cypher.pipeline.validators import ValidationResult


def test_classifier_heuristic():
    assert classify_provider_error("model gpt-9 not found") is ProviderErrorKind.MODEL_NOT_FOUND
    assert classify_provider_error("Rate limit reached for requests") is ProviderErrorKind.RATE_LIMITED
    assert classify_provider_error("You exceeded your current quota") is ProviderErrorKind.RATE_LIMITED
    assert classify_provider_error("Invalid API key provided") is ProviderErrorKind.AUTHENTICATION
    assert classify_provider_error("Authentication failed") is ProviderErrorKind.AUTHENTICATION
    assert classify_provider_error("socket hang up") is ProviderErrorKind.UNKNOWN
    assert classify_provider_error("") is ProviderErrorKind.UNKNOWN


def test_status_codes():
    assert ProviderErrorKind.MODEL_NOT_FOUND.status_code == 404
    assert ProviderErrorKind.RATE_LIMITED.status_code == 429
    assert ProviderErrorKind.AUTHENTICATION.status_code == 401
    assert ProviderErrorKind.UNKNOWN.status_code == 502


def test_provider_failure_classifies_by_default():
    err = ProviderFailure("429 Too Many Requests")
    assert err.kind is ProviderErrorKind.RATE_LIMITED
    assert err.status_code == 429
    explicit = ProviderFailure("weird", ProviderErrorKind.AUTHENTICATION)
    assert explicit.kind is ProviderErrorKind.AUTHENTICATION


def test_query_rejections_share_base():
    validation = ValidationResult(is_valid=False, errors=["Query is empty"])
    vf = ValidationFailure("", validation)
    ef = ExecutionFailure("Unknown label", "MATCH (n:X) RETURN n")
    assert isinstance(vf, QueryRejected) and isinstance(vf, PipelineError)
    assert isinstance(ef, QueryRejected)
    assert "Query is empty" in str(vf)
    assert ef.query == "MATCH (n:X) RETURN n"
