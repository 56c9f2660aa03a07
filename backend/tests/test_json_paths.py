import pytest

from apichain.services.api_testing.json_paths import (
    NOT_FOUND,
    FieldAccess,
    IndexAccess,
    get_raw_value,
    get_value,
    list_paths,
    tokenize_path,
)

DOCUMENT = {
    "user": {
        "id": 7,
        "name": "Ada",
        "active": True,
        "tags": ["admin", "ops"],
        "address": {"city": "London", "zip": None},
    },
    "items": [
        {"sku": "A1", "qty": 2},
        {"sku": "B2", "qty": 5},
    ],
    "empty": [],
    "meta": {},
}


def test_tokenize_dot_and_bracket():
    assert tokenize_path("a.b[0].c") == [
        FieldAccess("a"),
        FieldAccess("b"),
        IndexAccess(0),
        FieldAccess("c"),
    ]


def test_tokenize_discards_empty_segments():
    assert tokenize_path(".a..b[]") == [FieldAccess("a"), FieldAccess("b")]


def test_tokenize_quoted_bracket_key():
    assert tokenize_path("headers['x-id']") == [FieldAccess("headers"), FieldAccess("x-id")]


@pytest.mark.parametrize(
    "path, expected",
    [
        ("user.id", 7),
        ("user.active", True),
        ("user.tags[1]", "ops"),
        ("user.tags.0", "admin"),
        ("items[1].sku", "B2"),
        ("user.address.zip", None),
        ("$.items[0].qty", 2),
    ],
)
def test_raw_value_keeps_types(path, expected):
    assert get_raw_value(DOCUMENT, path) == expected


@pytest.mark.parametrize(
    "path",
    ["user.missing", "items[9].sku", "user.name.first", "user.tags.x", "", "$.nope", "$[[["],
)
def test_missing_paths_are_not_found(path):
    assert get_raw_value(DOCUMENT, path) is NOT_FOUND


def test_non_traversable_root():
    assert get_raw_value("plain text", "a.b") is NOT_FOUND
    assert get_raw_value(None, "a") is NOT_FOUND
    assert get_value(42, "a") == ""


def test_display_value_flattens_containers():
    assert get_value(DOCUMENT, "user.tags") == "[admin, ops]"
    assert get_value(DOCUMENT, "user.address") == "city: London, zip: "
    assert get_value(DOCUMENT, "user.id") == 7
    assert get_value(DOCUMENT, "user.address.zip") == ""
    assert get_value(DOCUMENT, "nowhere") == ""


def test_list_paths_order_and_first_element_only():
    assert list(list_paths(DOCUMENT)) == [
        "user",
        "user.id",
        "user.name",
        "user.active",
        "user.tags",
        "user.tags[0]",
        "user.address",
        "user.address.city",
        "user.address.zip",
        "items",
        "items[0].sku",
        "items[0].qty",
        "empty",
        "meta",
    ]


def test_list_paths_root_array():
    assert list(list_paths([{"id": 1}, {"id": 2}])) == ["[0].id"]


def test_list_paths_nested_arrays_have_their_own_path():
    assert list(list_paths({"m": [[{"x": 1}]]})) == ["m", "m[0]", "m[0][0].x"]
    assert list(list_paths([[1, 2]])) == ["[0]", "[0][0]"]


def test_list_paths_scalars_and_empty():
    assert list(list_paths("text")) == []
    assert list(list_paths({})) == []
    assert list(list_paths(None)) == []


def test_list_paths_is_fresh_each_call():
    first = list_paths(DOCUMENT)
    list(first)
    assert list(first) == []
    assert len(list(list_paths(DOCUMENT))) == 14


def test_every_listed_path_resolves():
    for path in list_paths(DOCUMENT):
        assert get_raw_value(DOCUMENT, path) is not NOT_FOUND
