from __future__ import annotations

import pytest

from core.render.decorators import (
    async_load_blocks,
    create_decorator,
    decorate_buttons,
    decorate_main,
    identity,
    list_supported_decorators,
    resolve_decorators,
    wrap_images,
    wrap_sections,
)
from core.render.sandbox import Sandbox, SandboxDocument
from core.utils.html_dom import element_children, query, query_all, tag_name


def _load(markup: str) -> tuple[SandboxDocument, object]:
    sandbox = Sandbox()
    sandbox.document.load(markup)
    return sandbox.document, sandbox.document.query("main")


def test_identity_leaves_document_untouched() -> None:
    document, root = _load("<body><main><p>x</p></main></body>")
    before = document.serialize()

    identity(root, document)

    assert document.serialize() == before


def test_decorate_main_adds_class_once() -> None:
    document, root = _load('<body><main class="page"></main></body>')

    decorate_main(root, document)
    decorate_main(root, document)

    assert root.get("class") == "page decorated"


def test_wrap_sections_wraps_each_root_child() -> None:
    document, root = _load("<body><main><h1>T</h1><p>A</p></main></body>")

    wrap_sections(root, document)

    sections = element_children(root)
    assert [section.get("class") for section in sections] == ["section", "section"]
    assert [tag_name(element_children(section)[0]) for section in sections] == ["H1", "P"]


def test_wrap_images_is_idempotent() -> None:
    document, root = _load('<body><main><p><img src="/a.png"></p></main></body>')

    wrap_images(root, document)
    wrap_images(root, document)

    assert len(query_all(root, "picture")) == 1
    assert tag_name(query(root, "img").getparent()) == "PICTURE"


def test_decorate_buttons_only_marks_single_link_paragraphs() -> None:
    document, root = _load(
        '<body><main><p><a href="/go">Go</a></p><p>Read <a href="/more">more</a></p></main></body>'
    )

    decorate_buttons(root, document)

    button_paragraph, text_paragraph = query_all(root, "p")
    assert button_paragraph.get("class") == "button-container"
    assert query(button_paragraph, "a").get("class") == "button"
    assert text_paragraph.get("class") is None


@pytest.mark.anyio
async def test_async_load_blocks_marks_blocks_loaded() -> None:
    document, root = _load('<body><main><div data-block-name="hero"></div><p>x</p></main></body>')

    await async_load_blocks(root, document)

    assert query(root, "div").get("data-block-status") == "loaded"
    assert query(root, "p").get("data-block-status") is None


def test_registry_resolves_names() -> None:
    assert list_supported_decorators() == [
        "async_load_blocks",
        "decorate_buttons",
        "decorate_main",
        "identity",
        "wrap_images",
        "wrap_sections",
    ]
    assert create_decorator("wrap_sections") is wrap_sections
    assert resolve_decorators(["identity", "decorate_main"]) == [identity, decorate_main]


def test_registry_rejects_unknown_name() -> None:
    with pytest.raises(ValueError, match="Unsupported decorator: nope"):
        create_decorator("nope")
