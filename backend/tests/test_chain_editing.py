import pytest

from apichain.schemas.chain import ChainRequestDefinition, ChainResponse
from apichain.services.api_testing.chain_editing import (
    available_paths,
    prune_dependencies,
    reorder,
    validate_variable_path,
)


def defs(*specs) -> list[ChainRequestDefinition]:
    return [
        ChainRequestDefinition(id=id, url=f"https://api.test/{id}", depends_on=deps)
        for id, deps in specs
    ]


def test_prune_keeps_valid_dependencies():
    chain = defs(("a", []), ("b", ["a"]), ("c", ["a", "b"]))
    assert prune_dependencies(chain) == chain


def test_prune_drops_forward_and_unknown_references():
    chain = defs(("a", ["b"]), ("b", ["ghost", "a"]))
    pruned = prune_dependencies(chain)

    assert [d.depends_on for d in pruned] == [[], ["a"]]
    assert chain[0].depends_on == ["b"]


def test_reorder_moves_and_prunes():
    chain = defs(("a", []), ("b", ["a"]), ("c", ["b"]))
    moved = reorder(chain, 0, 2)

    assert [d.id for d in moved] == ["b", "c", "a"]
    assert [d.depends_on for d in moved] == [[], ["b"], []]


def test_reorder_rejects_bad_indexes():
    chain = defs(("a", []), ("b", []))
    with pytest.raises(IndexError):
        reorder(chain, 2, 0)
    with pytest.raises(IndexError):
        reorder(chain, 0, -1)


def test_available_paths_skips_empty_data():
    responses = [
        ChainResponse(request_id="a", status=200, data={"id": 1, "tags": ["x"]}),
        ChainResponse(request_id="b", status=204, data=None),
        ChainResponse(request_id="c", status=200, data={}),
    ]

    assert available_paths(responses) == {"a": ["id", "tags", "tags[0]"]}


def test_validate_variable_path():
    response = ChainResponse(request_id="a", status=200, data={"auth": {"token": "t"}})

    assert validate_variable_path(response, "auth.token") is True
    assert validate_variable_path(response, "auth.missing") is False
    assert validate_variable_path(None, "auth.token") is None
    assert validate_variable_path(ChainResponse(request_id="b", status=200), "x") is None
