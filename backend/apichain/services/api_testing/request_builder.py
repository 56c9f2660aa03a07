"""Turns chain request definitions into concrete, sendable requests."""

import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import httpx

from apichain.config import Settings, get_settings
from apichain.schemas.chain import (
    ApiKeyAuth,
    AuthConfig,
    BasicAuth,
    BearerAuth,
    ChainRequestDefinition,
    NoAuth,
)
from apichain.schemas.data_repository import DataRepositoryVariable
from apichain.services.api_testing.http_client import RequestError, RequestErrorType
from apichain.services.api_testing.variable_resolver import VariableResolver

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

BODYLESS_METHODS = {"GET", "HEAD", "OPTIONS"}


@dataclass
class PreparedRequest:
    """A fully resolved request, ready for the transport."""
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None


def merge_headers(*layers: Mapping[str, str]) -> dict[str, str]:
    """Merge header mappings left to right; later layers win, names compare case-insensitively."""
    merged: dict[str, str] = {}
    for layer in layers:
        for key, value in layer.items():
            for existing in [k for k in merged if k.lower() == key.lower()]:
                del merged[existing]
            merged[key] = value
    return merged


def build_url(base_url: str, params: Mapping[str, str]) -> str:
    """
    Append query parameters to a URL.

    Empty values are still appended (``?key=``); parameters without a
    name are ignored.
    """
    params = {key: value for key, value in params.items() if key}
    if not params:
        return base_url
    try:
        url = httpx.URL(base_url)
        for key, value in params.items():
            url = url.copy_add_param(key, value)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise RequestError(f"Invalid URL: {base_url}", RequestErrorType.URL_ERROR) from e
    return str(url)


def validate_graphql_variables(variables: str) -> tuple[bool, str | None]:
    """Check that a GraphQL variables string is a JSON document."""
    if not variables.strip():
        return True, None
    try:
        json.loads(variables)
    except json.JSONDecodeError:
        return False, "Invalid JSON format for variables"
    return True, None


class RequestMaterializer:
    """
    Resolves every templated field of a chain request definition.

    URL, params, headers, body, GraphQL query/variables and auth fields
    all go through the VariableResolver before auth is applied.
    """

    def __init__(
        self,
        resolver: VariableResolver | None = None,
        graphql_content_type: str = "application/json",
        strict_graphql_variables: bool = False,
    ):
        self.resolver = resolver or VariableResolver()
        self.graphql_content_type = graphql_content_type
        self.strict_graphql_variables = strict_graphql_variables

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        resolver: VariableResolver | None = None,
    ) -> "RequestMaterializer":
        settings = settings or get_settings()
        return cls(
            resolver=resolver,
            graphql_content_type=settings.graphql_content_type,
            strict_graphql_variables=settings.strict_graphql_variables,
        )

    def materialize(
        self,
        definition: ChainRequestDefinition,
        runtime_vars: Mapping[str, Any] | None = None,
        repo_vars: Iterable[DataRepositoryVariable] | None = None,
    ) -> PreparedRequest:
        """
        Build the concrete request for one chain step.

        Raises:
            RequestError: URL_ERROR when params cannot be appended to the
                resolved URL; GRAPHQL_ERROR for bad GraphQL variables in
                strict mode.
        """
        runtime_vars = runtime_vars or {}
        repo_vars = list(repo_vars or [])

        def resolve(text: str | None) -> str:
            return self.resolver.resolve(text, runtime_vars, repo_vars)

        url = resolve(definition.url)
        params = self.resolver.resolve_dict(definition.params, runtime_vars, repo_vars)
        explicit_headers = self.resolver.resolve_dict(definition.headers, runtime_vars, repo_vars)

        header_layers: list[Mapping[str, str]] = [DEFAULT_HEADERS]
        if definition.is_graphql:
            header_layers.append({"Content-Type": self.graphql_content_type})
        header_layers.append(explicit_headers)
        headers = merge_headers(*header_layers)

        body = self._build_body(definition, resolve)

        auth_headers, auth_params = self._auth(definition.auth, resolve)
        headers = merge_headers(headers, auth_headers)
        params.update(auth_params)

        return PreparedRequest(
            method=definition.method,
            url=build_url(url, params),
            headers=headers,
            body=body,
        )

    def _build_body(self, definition: ChainRequestDefinition, resolve) -> str | None:
        if definition.method in BODYLESS_METHODS:
            return None

        if definition.is_graphql:
            return self._graphql_body(definition, resolve)

        body = resolve(definition.body)
        if not body.strip():
            return None

        try:
            return json.dumps(json.loads(body), separators=(",", ":"), ensure_ascii=False)
        except json.JSONDecodeError:
            # Not JSON: send as-is
            return body

    def _graphql_body(self, definition: ChainRequestDefinition, resolve) -> str:
        envelope: dict[str, Any] = {"query": resolve(definition.graphql_query)}

        raw_variables = resolve(definition.graphql_variables)
        valid, error = validate_graphql_variables(raw_variables)
        if not valid:
            if self.strict_graphql_variables:
                raise RequestError(
                    "Invalid GraphQL variables format", RequestErrorType.GRAPHQL_ERROR
                )
            logger.warning(
                f"Dropping GraphQL variables for request '{definition.label}': {error}"
            )
        elif raw_variables.strip():
            envelope["variables"] = json.loads(raw_variables)

        return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)

    @staticmethod
    def _auth(auth: AuthConfig, resolve) -> tuple[dict[str, str], dict[str, str]]:
        """Headers and query params contributed by the auth variant."""
        if isinstance(auth, BasicAuth):
            username = resolve(auth.username)
            if not username:
                return {}, {}
            password = resolve(auth.password)
            credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
            return {"Authorization": f"Basic {credentials}"}, {}

        if isinstance(auth, BearerAuth):
            token = resolve(auth.token)
            if not token:
                return {}, {}
            return {"Authorization": f"Bearer {token}"}, {}

        if isinstance(auth, ApiKeyAuth):
            key = resolve(auth.key)
            value = resolve(auth.value)
            if not key or not value:
                return {}, {}
            if auth.add_to == "query":
                return {}, {key: value}
            return {key: value}, {}

        if isinstance(auth, NoAuth):
            return {}, {}

        raise TypeError(f"Unsupported auth config: {type(auth).__name__}")
