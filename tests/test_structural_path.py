from __future__ import annotations

import pytest

from core.paths.structural_path import (
    PathStep,
    get_element_by_path,
    get_element_path,
    parse_path_key,
    path_from_json,
    path_key,
    path_to_json,
)
from core.utils.errors import PathError
from core.utils.html_dom import parse_document, query


def _main(markup: str):
    root = query(parse_document(markup), "main")
    assert root is not None
    return root


def test_get_element_path_counts_all_element_children() -> None:
    root = _main("<main><div><p>a</p><h1>t</h1></div></main>")
    heading = query(root, "h1")

    path = get_element_path(heading, root)

    assert path == (PathStep(tag="DIV", index=0), PathStep(tag="H1", index=1))
    assert path_key(path) == "DIV:0/H1:1"


def test_get_element_path_ignores_comments() -> None:
    root = _main("<main><!-- note --><p>a</p></main>")

    assert path_key(get_element_path(query(root, "p"), root)) == "P:0"


def test_get_element_path_of_root_is_empty() -> None:
    root = _main("<main><p>a</p></main>")

    assert get_element_path(root, root) == ()
    assert path_key(()) == ""


def test_get_element_path_rejects_foreign_element() -> None:
    root = _main("<main><p>a</p></main>")
    foreign = query(parse_document("<main><p>b</p></main>"), "p")

    with pytest.raises(PathError):
        get_element_path(foreign, root)


def test_get_element_by_path_resolves_same_element() -> None:
    root = _main("<main><section><p>a</p><ul><li>x</li><li>y</li></ul></section></main>")
    item = root.cssselect("li")[1]

    assert get_element_by_path(root, get_element_path(item, root)) is item


def test_get_element_by_path_fails_closed() -> None:
    root = _main("<main><h1>t</h1><p>a</p></main>")

    assert get_element_by_path(root, (PathStep(tag="P", index=0),)) is None
    assert get_element_by_path(root, (PathStep(tag="P", index=5),)) is None
    assert get_element_by_path(root, (PathStep(tag="P", index=-1),)) is None


def test_parse_path_key_inverts_path_key() -> None:
    path = (PathStep(tag="DIV", index=3), PathStep(tag="MY-WIDGET", index=0))

    assert parse_path_key(path_key(path)) == path
    assert parse_path_key("") == ()


@pytest.mark.parametrize("key", ["DIV", "DIV:x", "div:0", "DIV:-1", "DIV:0/", ":1"])
def test_parse_path_key_rejects_malformed_keys(key: str) -> None:
    with pytest.raises(PathError):
        parse_path_key(key)


def test_path_json_representation() -> None:
    path = (PathStep(tag="UL", index=1), PathStep(tag="LI", index=0))

    payload = path_to_json(path)

    assert payload == [{"tag": "UL", "index": 1}, {"tag": "LI", "index": 0}]
    assert path_from_json(payload) == path
    assert path_from_json([{"tag": "li", "index": 2}]) == (PathStep(tag="LI", index=2),)


@pytest.mark.parametrize(
    "items",
    [
        [{"tag": "", "index": 0}],
        [{"tag": "P", "index": -1}],
        [{"tag": "P", "index": True}],
        [{"tag": "P"}],
        ["P:0"],
    ],
)
def test_path_from_json_rejects_malformed_items(items: list[object]) -> None:
    with pytest.raises(PathError):
        path_from_json(items)  # type: ignore[arg-type]
