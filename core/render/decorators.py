"""Built-in decorator registry for CLI/API decorator resolution.

These mirror a host's simple decoration pipeline: they restructure the
rendered page the way real block decoration does (wrapping, class changes,
asynchronous block loading) without touching token text.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from lxml.html import HtmlElement

from core.render.models import Decorator
from core.render.sandbox import SandboxDocument
from core.utils.html_dom import add_class, element_children, query_all, tag_name, wrap_element


def identity(root: HtmlElement, document: SandboxDocument) -> None:
    """Leave the page untouched."""


def decorate_main(root: HtmlElement, document: SandboxDocument) -> None:
    add_class(root, "decorated")


def wrap_sections(root: HtmlElement, document: SandboxDocument) -> None:
    """Wrap every direct child of the root in a section container."""

    for child in element_children(root):
        wrap_element(child, document.create_element("div", class_="section"))


def wrap_images(root: HtmlElement, document: SandboxDocument) -> None:
    for image in query_all(root, "img"):
        parent = image.getparent()
        if parent is not None and tag_name(parent) == "PICTURE":
            continue
        wrap_element(image, document.create_element("picture"))


def decorate_buttons(root: HtmlElement, document: SandboxDocument) -> None:
    """Turn paragraphs holding a single link into button containers."""

    for paragraph in query_all(root, "p"):
        children = element_children(paragraph)
        if len(children) != 1 or tag_name(children[0]) != "A":
            continue
        link = children[0]
        if (paragraph.text or "").strip() or (link.tail or "").strip():
            continue
        add_class(paragraph, "button-container")
        add_class(link, "button")


async def async_load_blocks(root: HtmlElement, document: SandboxDocument) -> None:
    for block in query_all(root, "[data-block-name]"):
        await asyncio.sleep(0)
        block.set("data-block-status", "loaded")


_SUPPORTED_DECORATORS: dict[str, Decorator] = {
    "async_load_blocks": async_load_blocks,
    "decorate_buttons": decorate_buttons,
    "decorate_main": decorate_main,
    "identity": identity,
    "wrap_images": wrap_images,
    "wrap_sections": wrap_sections,
}


def create_decorator(name: str) -> Decorator:
    """Resolve a supported decorator by name."""

    try:
        return _SUPPORTED_DECORATORS[name]
    except KeyError as exc:
        raise ValueError(f"Unsupported decorator: {name}") from exc


def resolve_decorators(names: Iterable[str]) -> list[Decorator]:
    return [create_decorator(name) for name in names]


def list_supported_decorators() -> list[str]:
    """Return supported decorator names in stable order."""

    return sorted(_SUPPORTED_DECORATORS)
