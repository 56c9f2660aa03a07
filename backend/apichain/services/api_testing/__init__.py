"""Request-chain execution engine."""

from apichain.services.api_testing.engine import ChainExecutor, ChainRunState
from apichain.services.api_testing.http_client import (
    APIHttpClient,
    HTTPResponse,
    RequestError,
    RequestErrorType,
)
from apichain.services.api_testing.variable_resolver import VariableResolver
from apichain.services.api_testing.assertion_engine import AssertionEngine
from apichain.services.api_testing.request_builder import PreparedRequest, RequestMaterializer
from apichain.services.api_testing.json_paths import NOT_FOUND, get_raw_value, get_value, list_paths

__all__ = [
    "ChainExecutor",
    "ChainRunState",
    "APIHttpClient",
    "HTTPResponse",
    "RequestError",
    "RequestErrorType",
    "VariableResolver",
    "AssertionEngine",
    "PreparedRequest",
    "RequestMaterializer",
    "NOT_FOUND",
    "get_raw_value",
    "get_value",
    "list_paths",
]
