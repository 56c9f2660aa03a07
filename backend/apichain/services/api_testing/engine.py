"""Sequential request-chain execution engine."""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Mapping

from pydantic import TypeAdapter

from apichain.config import Settings, get_settings
from apichain.schemas.chain import (
    ChainRequestDefinition,
    ChainResponse,
    ChainRunSummary,
    ErrorDetails,
)
from apichain.schemas.data_repository import DataRepositoryVariable
from apichain.services.api_testing.assertion_engine import AssertionEngine
from apichain.services.api_testing.data_repository import (
    DataRepository,
    InMemoryDataRepository,
    JsonFileDataRepository,
)
from apichain.services.api_testing.http_client import APIHttpClient, RequestError
from apichain.services.api_testing.json_paths import NOT_FOUND, get_raw_value
from apichain.services.api_testing.request_builder import RequestMaterializer
from apichain.services.api_testing.response_parser import parse_response_body

logger = logging.getLogger(__name__)

SKIPPED_STATUS_TEXT = "Skipped - Failed Dependencies"
DEPENDENCY_FAILED_ERROR = "One or more dependencies failed"

ProgressCallback = Callable[[list[ChainResponse]], Awaitable[None]]

_definitions_adapter = TypeAdapter(list[ChainRequestDefinition])


class ChainRunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


class ChainDefinitionError(ValueError):
    """The definition list handed to the executor is malformed."""


def summarize(results: Iterable[ChainResponse]) -> ChainRunSummary:
    total = succeeded = failed = skipped = 0
    for result in results:
        total += 1
        if result.status_text == SKIPPED_STATUS_TEXT:
            skipped += 1
        elif result.failed:
            failed += 1
        else:
            succeeded += 1
    return ChainRunSummary(total=total, succeeded=succeeded, failed=failed, skipped=skipped)


class ChainExecutor:
    """
    Executes an ordered list of chain requests one after another.

    For every step the executor:
    - skips it when any step it depends on is missing or failed
    - materializes the request against the variables extracted so far
    - sends it and records a ChainResponse, even when the request fails
    - runs the step's assertions (informational only)
    - extracts new runtime variables from the response body

    Per-step failures are reported in the results, never raised. Only a
    malformed definition list raises.
    """

    def __init__(
        self,
        http_client: APIHttpClient | None = None,
        materializer: RequestMaterializer | None = None,
        assertion_engine: AssertionEngine | None = None,
        data_repository: DataRepository | None = None,
        settings: Settings | None = None,
        inter_step_delay_ms: int | None = None,
    ):
        settings = settings or get_settings()
        self.http_client = http_client or APIHttpClient.from_settings(settings)
        self.materializer = materializer or RequestMaterializer.from_settings(settings)
        self.assertion_engine = assertion_engine or AssertionEngine()
        if data_repository is None:
            if settings.data_repository_path:
                data_repository = JsonFileDataRepository(settings.data_repository_path)
            else:
                data_repository = InMemoryDataRepository()
        self.data_repository = data_repository
        if inter_step_delay_ms is None:
            inter_step_delay_ms = settings.inter_step_delay_ms
        self.inter_step_delay_ms = inter_step_delay_ms

        self.state = ChainRunState.IDLE
        self.results: list[ChainResponse] = []
        self._runtime_variables: dict[str, Any] = {}

    @property
    def runtime_variables(self) -> dict[str, Any]:
        """Snapshot of the variables extracted so far in the current run."""
        return dict(self._runtime_variables)

    async def close(self):
        """Close the HTTP client."""
        await self.http_client.close()

    @staticmethod
    def validate_definitions(
        definitions: Iterable[ChainRequestDefinition | Mapping[str, Any]],
    ) -> list[ChainRequestDefinition]:
        """
        Coerce and check a definition list.

        Raises:
            pydantic.ValidationError: a definition is missing required fields
            ChainDefinitionError: the list is not a list, or ids repeat
        """
        if isinstance(definitions, (str, bytes, Mapping)):
            raise ChainDefinitionError("Chain definitions must be a list of requests")
        steps = _definitions_adapter.validate_python(list(definitions))

        seen: set[str] = set()
        for step in steps:
            if step.id in seen:
                raise ChainDefinitionError(f"Duplicate request id in chain: {step.id}")
            seen.add(step.id)
        return steps

    async def execute_chain(
        self,
        definitions: Iterable[ChainRequestDefinition | Mapping[str, Any]],
        on_progress: ProgressCallback | None = None,
    ) -> list[ChainResponse]:
        """
        Run a whole chain.

        Args:
            definitions: Ordered chain request definitions
            on_progress: Awaited with the partial results after every step

        Returns:
            One ChainResponse per definition, in definition order
        """
        async for _ in self.iter_chain(definitions):
            if on_progress:
                await on_progress(list(self.results))
        return list(self.results)

    async def iter_chain(
        self,
        definitions: Iterable[ChainRequestDefinition | Mapping[str, Any]],
    ) -> AsyncIterator[ChainResponse]:
        """Run a chain, yielding each step's response as soon as it is recorded."""
        steps = self.validate_definitions(definitions)
        repo_vars = self._load_repository_variables()

        self._runtime_variables = {}
        self.results = []
        self.state = ChainRunState.RUNNING
        started = time.perf_counter()
        logger.info(f"Executing chain of {len(steps)} request(s)")

        for index, definition in enumerate(steps):
            if index > 0 and self.inter_step_delay_ms > 0:
                await asyncio.sleep(self.inter_step_delay_ms / 1000.0)

            if self.dependencies_met(definition):
                response = await self.execute_step(definition, repo_vars)
                self.results.append(response)
                self._apply_extractions(definition, response)
            else:
                logger.warning(
                    f"Skipping request '{definition.label}': dependencies "
                    f"{definition.depends_on} did not succeed"
                )
                response = self._skipped_response(definition)
                self.results.append(response)

            yield response

        self.state = ChainRunState.COMPLETED
        summary = summarize(self.results)
        logger.info(
            f"Chain completed in {time.perf_counter() - started:.2f}s: "
            f"{summary.succeeded} succeeded, {summary.failed} failed, {summary.skipped} skipped"
        )

    def _load_repository_variables(self) -> list[DataRepositoryVariable]:
        """Snapshot the data repository; an unreadable store runs the chain without it."""
        try:
            return self.data_repository.list_variables()
        except (OSError, ValueError) as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            logger.error(f"Data repository unavailable, running without its variables: {e}")
            return []

    def dependencies_met(self, definition: ChainRequestDefinition) -> bool:
        """True when every step this one depends on has a successful result."""
        if not definition.depends_on:
            return True
        by_id = {result.request_id: result for result in self.results}
        for dependency in definition.depends_on:
            result = by_id.get(dependency)
            if result is None or result.failed:
                return False
        return True

    async def execute_step(
        self,
        definition: ChainRequestDefinition,
        repo_vars: list[DataRepositoryVariable],
    ) -> ChainResponse:
        """Materialize, send and evaluate one step against the current variables."""
        start_time = time.perf_counter()

        try:
            prepared = self.materializer.materialize(
                definition, self._runtime_variables, repo_vars
            )
            logger.debug(f"Sending {prepared.method} {prepared.url} for '{definition.label}'")
            http_response = await self.http_client.send(
                method=prepared.method,
                url=prepared.url,
                headers=prepared.headers,
                body=prepared.body,
            )
        except RequestError as e:
            response = self._error_response(definition, e, time.perf_counter() - start_time)
            logger.warning(
                f"Request '{definition.label}' failed ({e.error_type.value}): {e.message}"
            )
        except Exception as e:
            logger.exception(f"Unexpected error executing request '{definition.label}'")
            response = ChainResponse(
                request_id=definition.id,
                status=0,
                status_text="Error",
                error=str(e) or "An unknown error occurred",
                error_details=ErrorDetails(message=str(e), type=type(e).__name__),
                response_time=time.perf_counter() - start_time,
            )
        else:
            response = ChainResponse(
                request_id=definition.id,
                status=http_response.status_code,
                status_text=http_response.reason_phrase,
                headers=http_response.headers,
                data=parse_response_body(
                    http_response.status_code,
                    http_response.content_type,
                    http_response.body_bytes,
                ),
                response_time=time.perf_counter() - start_time,
            )

        if definition.assertions is not None:
            response.assertions = self.assertion_engine.validate(response, definition.assertions)
            if not response.assertions.passed:
                logger.info(
                    f"Assertions failed for '{definition.label}': "
                    f"{'; '.join(response.assertions.failure_messages)}"
                )

        return response

    def _apply_extractions(self, definition: ChainRequestDefinition, response: ChainResponse):
        if not definition.variables:
            return
        if response.error:
            logger.debug(f"Not extracting variables from failed request '{definition.label}'")
            return

        for name, path in definition.variables.items():
            value = get_raw_value(response.data, path)
            if value is NOT_FOUND or value is None:
                # A later ${name} stays unresolved (or falls back to the data repository)
                self._runtime_variables.pop(name, None)
                logger.debug(f"Variable '{name}' not found at '{path}' in '{definition.label}'")
            else:
                self._runtime_variables[name] = value
                logger.debug(f"Extracted variable '{name}' from '{path}' in '{definition.label}'")

    @staticmethod
    def _skipped_response(definition: ChainRequestDefinition) -> ChainResponse:
        return ChainResponse(
            request_id=definition.id,
            status=0,
            status_text=SKIPPED_STATUS_TEXT,
            error=DEPENDENCY_FAILED_ERROR,
        )

    @staticmethod
    def _error_response(
        definition: ChainRequestDefinition,
        error: RequestError,
        elapsed: float,
    ) -> ChainResponse:
        return ChainResponse(
            request_id=definition.id,
            status=error.status or 0,
            status_text=error.status_text or "Error",
            headers=error.headers,
            error=error.message,
            error_details=ErrorDetails(
                code=str(error.status) if error.status else None,
                message=error.message,
                type=error.error_type.value,
                details=error.details,
            ),
            response_time=elapsed,
        )
