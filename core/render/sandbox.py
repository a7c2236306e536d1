"""Isolated, disposable document context for running decorators."""

from __future__ import annotations

import uuid
from typing import Any

from lxml import etree
from lxml.html import HtmlElement

from core.utils.html_dom import (
    body_of,
    copy_element,
    create_element,
    element_children,
    head_of,
    parse_document,
    query,
    query_all,
    serialize_document,
)

STYLESHEET_SELECTOR = 'link[rel~="stylesheet"]'


class SandboxDocument:
    """Document handed to decorators.

    After disposal the tree is released: queries return None or an empty list
    and serialization returns an empty string. Elements a decorator still holds
    stay valid Python objects, so late mutations never reach a live document.
    """

    def __init__(self) -> None:
        self._tree: etree._ElementTree | None = parse_document("")
        self.globals: dict[str, Any] = {}

    @property
    def tree(self) -> etree._ElementTree | None:
        return self._tree

    @property
    def disposed(self) -> bool:
        return self._tree is None

    @property
    def head(self) -> HtmlElement | None:
        return head_of(self._tree) if self._tree is not None else None

    @property
    def body(self) -> HtmlElement | None:
        return body_of(self._tree) if self._tree is not None else None

    def query(self, selector: str) -> HtmlElement | None:
        if self._tree is None:
            return None
        return query(self._tree, selector)

    def query_all(self, selector: str) -> list[HtmlElement]:
        if self._tree is None:
            return []
        return query_all(self._tree, selector)

    def create_element(self, tag: str, **attrs: str) -> HtmlElement:
        return create_element(tag, **attrs)

    def load(self, markup: str) -> None:
        """Replace the document content; elements already in head are kept."""

        if self._tree is None:
            raise RuntimeError("sandbox document is disposed")
        retained = element_children(self.head) if self.head is not None else []
        tree = parse_document(markup)
        new_head = head_of(tree)
        for position, element in enumerate(retained):
            new_head.insert(position, element)
        self._tree = tree

    def serialize(self) -> str:
        if self._tree is None:
            return ""
        return serialize_document(self._tree)

    def release(self) -> None:
        self._tree = None
        self.globals.clear()


class Sandbox:
    """Owner of one SandboxDocument; never shared between render calls."""

    def __init__(self) -> None:
        self.sandbox_id = uuid.uuid4().hex
        self.document = SandboxDocument()

    @property
    def globals(self) -> dict[str, Any]:
        return self.document.globals

    @property
    def disposed(self) -> bool:
        return self.document.disposed

    def dispose(self) -> None:
        """Tear the sandbox down. Safe to call repeatedly and at any point."""

        if not self.document.disposed:
            self.document.release()

    def __enter__(self) -> Sandbox:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


def copy_host_styles(
    host: etree._ElementTree | HtmlElement | None,
    document: SandboxDocument,
) -> int:
    """Copy stylesheet links and inline styles from a host page into the sandbox head.

    Returns the number of copied elements.
    """

    head = document.head
    if host is None or head is None:
        return 0

    copied = 0
    for link in query_all(host, STYLESHEET_SELECTOR):
        href = link.get("href")
        if not href:
            continue
        head.append(create_element("link", rel="stylesheet", href=href))
        copied += 1

    for style in query_all(host, "style"):
        head.append(copy_element(style))
        copied += 1

    return copied
