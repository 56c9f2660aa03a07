"""Helpers the chain editor uses between runs."""

from typing import Iterable, Sequence

from apichain.schemas.chain import ChainRequestDefinition, ChainResponse
from apichain.services.api_testing.json_paths import NOT_FOUND, get_raw_value, list_paths


def prune_dependencies(
    definitions: Sequence[ChainRequestDefinition],
) -> list[ChainRequestDefinition]:
    """Drop ``depends_on`` entries that do not point at an earlier step."""
    pruned: list[ChainRequestDefinition] = []
    earlier: set[str] = set()
    for definition in definitions:
        valid = [dep for dep in definition.depends_on if dep in earlier]
        if valid != definition.depends_on:
            definition = definition.model_copy(update={"depends_on": valid})
        pruned.append(definition)
        earlier.add(definition.id)
    return pruned


def reorder(
    definitions: Sequence[ChainRequestDefinition],
    source_index: int,
    destination_index: int,
) -> list[ChainRequestDefinition]:
    """Move one step to a new position and prune dependencies it invalidated."""
    if not 0 <= source_index < len(definitions):
        raise IndexError(f"source_index {source_index} out of range")
    if not 0 <= destination_index < len(definitions):
        raise IndexError(f"destination_index {destination_index} out of range")

    items = list(definitions)
    moved = items.pop(source_index)
    items.insert(destination_index, moved)
    return prune_dependencies(items)


def available_paths(responses: Iterable[ChainResponse]) -> dict[str, list[str]]:
    """Extraction paths offered for each step, from its latest response."""
    paths: dict[str, list[str]] = {}
    for response in responses:
        if response.data:
            paths[response.request_id] = list(list_paths(response.data))
    return paths


def validate_variable_path(response: ChainResponse | None, path: str) -> bool | None:
    """Whether ``path`` resolves in the response; None when there is no data yet."""
    if response is None or not response.data:
        return None
    return get_raw_value(response.data, path) is not NOT_FOUND
