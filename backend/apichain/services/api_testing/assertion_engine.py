"""Assertion engine for chain step responses."""

import re
from typing import Any, Callable

import jsonschema

from apichain.schemas.chain import (
    AssertionResults,
    BodyAssertion,
    ChainResponse,
    ResponseAssertions,
)
from apichain.services.api_testing.json_paths import NOT_FOUND, get_raw_value
from apichain.services.api_testing.variable_resolver import stringify


def _as_number(value: Any) -> float | None:
    if value is NOT_FOUND or value is None or isinstance(value, (dict, list)):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _contains(actual: Any, expected: Any) -> bool:
    if actual is NOT_FOUND:
        return False
    if isinstance(actual, list):
        return expected in actual
    return stringify(expected) in stringify(actual)


def _greater_than(actual: Any, expected: Any) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    return left is not None and right is not None and left > right


def _less_than(actual: Any, expected: Any) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    return left is not None and right is not None and left < right


def _matches(actual: Any, expected: Any) -> bool:
    if actual is NOT_FOUND:
        return False
    try:
        return bool(re.search(str(expected), stringify(actual)))
    except re.error:
        return False


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": lambda actual, expected: actual is not NOT_FOUND and actual == expected,
    "notEquals": lambda actual, expected: actual is NOT_FOUND or actual != expected,
    "contains": _contains,
    "notContains": lambda actual, expected: not _contains(actual, expected),
    "exists": lambda actual, expected: actual is not NOT_FOUND,
    "notExists": lambda actual, expected: actual is NOT_FOUND,
    "greaterThan": _greater_than,
    "lessThan": _less_than,
    "matches": _matches,
}


class AssertionEngine:
    """
    Checks a chain response against its declared assertions.

    Supported checks:
    - status: exact status code
    - response_time: ceiling in seconds
    - headers: exact header values (case-insensitive names)
    - body: path predicates on the typed response body
    - json_schema: JSON Schema validation of the response body

    Failures are reported, never raised.
    """

    def validate(
        self,
        response: ChainResponse,
        assertions: ResponseAssertions,
    ) -> AssertionResults:
        results = AssertionResults()

        self._assert_status(response, assertions, results)
        self._assert_response_time(response, assertions, results)
        self._assert_headers(response, assertions, results)
        self._assert_body(response, assertions, results)
        self._assert_schema(response, assertions, results)

        results.passed = not results.failure_messages
        return results

    def _assert_status(self, response, assertions, results):
        if assertions.status is None:
            return
        results.details.status = response.status == assertions.status
        if not results.details.status:
            results.failure_messages.append(
                f"Expected status {assertions.status}, but got {response.status}"
            )

    def _assert_response_time(self, response, assertions, results):
        if assertions.response_time is None or response.response_time is None:
            return
        actual = response.response_time
        results.details.response_time = actual <= assertions.response_time
        if not results.details.response_time:
            results.failure_messages.append(
                f"Expected response time <= {assertions.response_time}s, but got {actual:.2f}s"
            )

    def _assert_headers(self, response, assertions, results):
        if not assertions.headers:
            return
        lowered = {key.lower(): value for key, value in response.headers.items()}
        for name, expected in assertions.headers.items():
            actual = lowered.get(name.lower())
            passed = actual == expected
            results.details.headers[name] = passed
            if not passed:
                results.failure_messages.append(
                    f'Expected header "{name}" to be "{expected}", but got "{actual or "undefined"}"'
                )

    def _assert_body(self, response, assertions, results):
        if not assertions.body or response.data is None:
            return
        for assertion in assertions.body:
            passed = self.check_body_assertion(response.data, assertion)
            results.details.body[assertion.path] = passed
            if not passed:
                results.failure_messages.append(
                    f'Assertion failed for "{assertion.path}": {assertion.operator} {assertion.value}'
                )

    def _assert_schema(self, response, assertions, results):
        if assertions.json_schema is None:
            return
        try:
            jsonschema.validate(response.data, assertions.json_schema)
        except jsonschema.ValidationError as e:
            results.details.json_schema = False
            results.failure_messages.append(f"Schema validation failed: {e.message}")
        except jsonschema.SchemaError as e:
            results.details.json_schema = False
            results.failure_messages.append(f"Invalid schema: {e.message}")

    @staticmethod
    def check_body_assertion(data: Any, assertion: BodyAssertion) -> bool:
        """Evaluate one body predicate against the typed value at its path."""
        actual = get_raw_value(data, assertion.path)
        return OPERATORS[assertion.operator](actual, assertion.value)
