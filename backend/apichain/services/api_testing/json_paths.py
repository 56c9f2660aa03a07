"""Path lookup and path enumeration over JSON documents."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathParserError

logger = logging.getLogger(__name__)


class _NotFound:
    """Sentinel for a path that does not resolve (distinct from JSON null)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND: Any = _NotFound()


@dataclass(frozen=True)
class FieldAccess:
    name: str


@dataclass(frozen=True)
class IndexAccess:
    index: int


PathStep = FieldAccess | IndexAccess

_TOKEN_SPLIT = re.compile(r'[.\[\]]')


def tokenize_path(path: str) -> list[PathStep]:
    """
    Split a dot/bracket path into access steps.

    ``a.b[0].c`` -> field a, field b, index 0, field c. Empty segments are
    dropped. Bracketed segments made of digits become index steps, quoted
    bracket segments (``a['x']``) become field steps.
    """
    steps: list[PathStep] = []
    in_bracket = False
    pos = 0
    for match in _TOKEN_SPLIT.finditer(path + "."):
        segment = path[pos:match.start()]
        pos = match.end()
        if segment:
            if in_bracket and segment.isdigit():
                steps.append(IndexAccess(int(segment)))
            elif in_bracket and len(segment) >= 2 and segment[0] == segment[-1] and segment[0] in "'\"":
                steps.append(FieldAccess(segment[1:-1]))
            else:
                steps.append(FieldAccess(segment))
        delimiter = match.group(0)
        if delimiter == "[":
            in_bracket = True
        elif delimiter == "]":
            in_bracket = False
    return steps


def _step(current: Any, step: PathStep) -> Any:
    if isinstance(current, dict):
        key = step.name if isinstance(step, FieldAccess) else str(step.index)
        return current.get(key, NOT_FOUND)

    if isinstance(current, list):
        if isinstance(step, IndexAccess):
            index = step.index
        elif step.name.isdigit():
            index = int(step.name)
        else:
            return NOT_FOUND
        if 0 <= index < len(current):
            return current[index]
        return NOT_FOUND

    return NOT_FOUND


def walk(root: Any, steps: list[PathStep]) -> Any:
    """Fold access steps over a JSON value; NOT_FOUND once any step misses."""
    current = root
    for step in steps:
        current = _step(current, step)
        if current is NOT_FOUND:
            return NOT_FOUND
    return current


def _jsonpath_lookup(root: Any, expression: str) -> Any:
    try:
        matches = [match.value for match in jsonpath_parse(expression).find(root)]
    except JsonPathParserError as e:
        logger.debug(f"Invalid JSONPath '{expression}': {e}")
        return NOT_FOUND
    except Exception as e:
        # jsonpath-ng raises a mix of exception types for bad expressions
        logger.debug(f"JSONPath '{expression}' failed: {e}")
        return NOT_FOUND
    return matches[0] if matches else NOT_FOUND


def get_raw_value(root: Any, path: str) -> Any:
    """
    Typed value at ``path`` inside ``root``, or NOT_FOUND.

    Paths starting with ``$`` are JSONPath expressions (first match wins);
    anything else is dot/bracket notation. Never raises.
    """
    if not path:
        return NOT_FOUND
    if path.startswith("$"):
        return _jsonpath_lookup(root, path)
    return walk(root, tokenize_path(path))


def _display_item(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def to_display(value: Any) -> Any:
    """Flatten a looked-up value for previews: arrays and objects become strings."""
    if value is NOT_FOUND or value is None:
        return ""
    if isinstance(value, list):
        return "[" + ", ".join(_display_item(item) for item in value) + "]"
    if isinstance(value, dict):
        return ", ".join(f"{key}: {_display_item(val)}" for key, val in value.items())
    return value


def get_value(root: Any, path: str) -> Any:
    """Display form of the value at ``path``; empty string when missing."""
    return to_display(get_raw_value(root, path))


def list_paths(root: Any, parent_path: str = "") -> Iterator[str]:
    """
    Yield every addressable path in ``root``, depth-first, parents first.

    Arrays contribute their own path plus the paths of their first
    element only (``items[0].id``), which keeps previews of large arrays
    small.
    """
    if isinstance(root, dict):
        for key, value in root.items():
            current_path = f"{parent_path}.{key}" if parent_path else str(key)
            if isinstance(value, list):
                yield current_path
                if value:
                    yield from list_paths(value[0], f"{current_path}[0]")
            elif isinstance(value, dict):
                yield current_path
                yield from list_paths(value, current_path)
            else:
                yield current_path
    elif isinstance(root, list):
        # Nested arrays have a path of their own; the root array does not
        if parent_path:
            yield parent_path
        if root:
            yield from list_paths(root[0], f"{parent_path}[0]")
    elif parent_path:
        yield parent_path
