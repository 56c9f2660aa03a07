"""Pydantic schemas for request chains."""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or the UI's camelCase keys, dumps camelCase by alias."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


# Auth variants

class NoAuth(CamelModel):
    type: Literal["none"] = "none"


class BasicAuth(CamelModel):
    type: Literal["basic"] = "basic"
    username: str = ""
    password: str = ""


class BearerAuth(CamelModel):
    type: Literal["bearer"] = "bearer"
    token: str = ""


class ApiKeyAuth(CamelModel):
    type: Literal["apiKey"] = "apiKey"
    key: str = ""
    value: str = ""
    add_to: Literal["header", "query"] = "header"


AuthConfig = Annotated[
    Union[NoAuth, BasicAuth, BearerAuth, ApiKeyAuth],
    Field(discriminator="type"),
]


# Assertions

AssertionOperator = Literal[
    "equals",
    "notEquals",
    "contains",
    "notContains",
    "exists",
    "notExists",
    "greaterThan",
    "lessThan",
    "matches",
]


class BodyAssertion(CamelModel):
    """Predicate on a value inside the response body."""
    path: str
    operator: AssertionOperator = "equals"
    value: Any = None


class ResponseAssertions(CamelModel):
    """Declarative checks run after a step completes."""
    status: int | None = None
    response_time: float | None = Field(None, ge=0, description="Ceiling in seconds")
    headers: dict[str, str] | None = None
    body: list[BodyAssertion] | None = None
    json_schema: dict | None = None


class AssertionDetails(CamelModel):
    status: bool = True
    response_time: bool = True
    headers: dict[str, bool] = Field(default_factory=dict)
    body: dict[str, bool] = Field(default_factory=dict)
    json_schema: bool = True


class AssertionResults(CamelModel):
    passed: bool = True
    details: AssertionDetails = Field(default_factory=AssertionDetails)
    failure_messages: list[str] = Field(default_factory=list)


# Chain definitions and results

class ChainRequestDefinition(CamelModel):
    """Immutable template for one step of a chain."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    method: HttpMethod = "GET"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, str] = Field(default_factory=dict)
    body: str = ""
    is_graphql: bool = Field(False, alias="isGraphQL")
    graphql_query: str = Field("", alias="graphQLQuery")
    graphql_variables: str = Field("", alias="graphQLVariables")
    auth: AuthConfig = Field(default_factory=NoAuth)
    assertions: ResponseAssertions | None = None
    # Extraction variable name -> path into this step's response body
    variables: dict[str, str] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @property
    def label(self) -> str:
        return self.name or self.id


class ErrorDetails(CamelModel):
    code: str | None = None
    message: str | None = None
    type: str | None = None
    details: Any = None


class ChainResponse(CamelModel):
    """Result of executing (or skipping) one chain step."""
    request_id: str
    status: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    data: Any = None
    error: str | None = None
    error_details: ErrorDetails | None = None
    response_time: float | None = None  # Seconds
    assertions: AssertionResults | None = None

    @property
    def failed(self) -> bool:
        """True when this result must block dependent steps."""
        return bool(self.error) or self.status >= 400


# API payloads

class ExecuteChainRequest(CamelModel):
    requests: list[ChainRequestDefinition]


class ChainRunSummary(CamelModel):
    total: int
    succeeded: int
    failed: int
    skipped: int


class ExecuteChainResponse(CamelModel):
    results: list[ChainResponse]
    summary: ChainRunSummary


class PathListRequest(CamelModel):
    data: Any = None


class PathListResponse(CamelModel):
    paths: list[str]
