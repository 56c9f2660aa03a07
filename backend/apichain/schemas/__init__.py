"""Pydantic schemas for chain definitions, results and data variables."""

from apichain.schemas.chain import (
    ApiKeyAuth,
    AssertionResults,
    BasicAuth,
    BearerAuth,
    BodyAssertion,
    ChainRequestDefinition,
    ChainResponse,
    ErrorDetails,
    NoAuth,
    ResponseAssertions,
)
from apichain.schemas.data_repository import DataRepositoryVariable

__all__ = [
    "ApiKeyAuth",
    "AssertionResults",
    "BasicAuth",
    "BearerAuth",
    "BodyAssertion",
    "ChainRequestDefinition",
    "ChainResponse",
    "DataRepositoryVariable",
    "ErrorDetails",
    "NoAuth",
    "ResponseAssertions",
]
