"""Utilities for lxml HTML tree operations.

All lxml-level operations on markup must be implemented here.
Do not spread tree manipulation logic across other modules.
"""

from __future__ import annotations

import copy
import html
from collections.abc import Iterator
from typing import Literal

import lxml.html
from lxml import etree
from lxml.html import HtmlElement

_EMPTY_DOCUMENT = "<html><head></head><body></body></html>"

NodeEvent = tuple[Literal["element", "text"], HtmlElement, str | None]


def parse_document(markup: str) -> etree._ElementTree:
    """Parse markup into a full HTML document tree.

    Fragments are wrapped in html/body by the parser. Blank markup yields an
    empty document instead of a parser error.
    """

    if not markup or not markup.strip():
        markup = _EMPTY_DOCUMENT
    root = lxml.html.document_fromstring(markup)
    return root.getroottree()


def is_element(node: object) -> bool:
    """Return True for element nodes (comments and PIs carry a non-str tag)."""

    return isinstance(getattr(node, "tag", None), str)


def element_children(element: HtmlElement) -> list[HtmlElement]:
    """Return element children in document order, skipping comments and PIs."""

    return [child for child in element if is_element(child)]


def tag_name(element: HtmlElement) -> str:
    return element.tag.upper()


def query(scope: HtmlElement | etree._ElementTree, selector: str) -> HtmlElement | None:
    """Return the first element matching a CSS selector, or None."""

    matches = query_all(scope, selector)
    return matches[0] if matches else None


def query_all(scope: HtmlElement | etree._ElementTree, selector: str) -> list[HtmlElement]:
    """Return all elements matching a CSS selector in document order."""

    element = scope.getroot() if isinstance(scope, etree._ElementTree) else scope
    if element is None:
        return []
    return [item for item in element.cssselect(selector) if is_element(item)]


def owner_document(element: HtmlElement) -> etree._ElementTree:
    return element.getroottree()


def body_of(tree: etree._ElementTree) -> HtmlElement | None:
    root = tree.getroot()
    if root is None:
        return None
    return root.find("body")


def head_of(tree: etree._ElementTree) -> HtmlElement | None:
    root = tree.getroot()
    if root is None:
        return None
    head = root.find("head")
    if head is None:
        head = lxml.html.Element("head")
        root.insert(0, head)
    return head


def inner_html(element: HtmlElement) -> str:
    """Serialize the children (text, elements, tails) of an element."""

    chunks = [html.escape(element.text, quote=False)] if element.text else []
    for child in element:
        chunks.append(lxml.html.tostring(child, encoding="unicode", with_tail=True))
    return "".join(chunks)


def replace_inner_html_with_text(element: HtmlElement, text: str) -> None:
    """Drop all children of an element and leave a single text node."""

    for child in list(element):
        element.remove(child)
    element.text = text


def replace_inner_html(element: HtmlElement, markup: str) -> None:
    """Replace the children of an element with parsed markup."""

    fragments = lxml.html.fragments_fromstring(markup) if markup.strip() else []
    for child in list(element):
        element.remove(child)
    element.text = None
    for fragment in fragments:
        if isinstance(fragment, str):
            if len(element):
                last = element[-1]
                last.tail = (last.tail or "") + fragment
            else:
                element.text = (element.text or "") + fragment
            continue
        element.append(fragment)


def outer_html(element: HtmlElement) -> str:
    return lxml.html.tostring(element, encoding="unicode", with_tail=False)


def serialize_document(tree: etree._ElementTree) -> str:
    """Serialize the document element (no doctype) to markup."""

    root = tree.getroot()
    if root is None:
        return ""
    return lxml.html.tostring(root, encoding="unicode")


def copy_element(element: HtmlElement) -> HtmlElement:
    """Deep-copy an element without its tail text."""

    clone = copy.deepcopy(element)
    clone.tail = None
    return clone


def create_element(tag: str, **attrs: str) -> HtmlElement:
    element = lxml.html.Element(tag)
    for key, value in attrs.items():
        element.set(key.rstrip("_").replace("_", "-"), value)
    return element


def wrap_element(element: HtmlElement, wrapper: HtmlElement) -> HtmlElement:
    """Insert wrapper in place of element and move element inside it."""

    parent = element.getparent()
    if parent is None:
        raise ValueError("cannot wrap a detached element")
    wrapper.tail = element.tail
    element.tail = None
    parent.replace(element, wrapper)
    wrapper.append(element)
    return wrapper


def add_class(element: HtmlElement, class_name: str) -> None:
    classes = (element.get("class") or "").split()
    if class_name not in classes:
        classes.append(class_name)
    element.set("class", " ".join(classes))


def iter_nodes(root: HtmlElement) -> Iterator[NodeEvent]:
    """Depth-first walk in document order over elements and text nodes.

    Yields ("element", element, None) when entering an element and
    ("text", owner, text) for every non-empty text node, where owner is the
    nearest element ancestor of the text. Comment content is not text, but
    the text following a comment is.
    """

    yield "element", root, None
    if root.text:
        yield "text", root, root.text
    for child in root:
        if is_element(child):
            yield from iter_nodes(child)
        if child.tail:
            yield "text", root, child.tail
