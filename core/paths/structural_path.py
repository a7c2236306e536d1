"""Structural path encoding shared by embedding, mapping and lookup.

A structural path is an ordered tuple of steps from a root element
(exclusive) down to a target element (inclusive). Each step records the
uppercase tag name and the zero-based position of the element among all
element children of its parent, regardless of tag.

Key format (canonical, lossless, order-preserving):
- step: {TAG}:{index}
- path: steps joined by "/"; the empty path is ""
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from lxml.html import HtmlElement

from core.utils.errors import PathError
from core.utils.html_dom import element_children, tag_name

_TAG_RE = re.compile(r"[A-Z][A-Z0-9:._-]*")
_STEP_SEPARATOR = "/"


@dataclass(frozen=True)
class PathStep:
    """One {tag, index} hop from a parent to a child element."""

    tag: str
    index: int


StructuralPath = tuple[PathStep, ...]


def get_element_path(element: HtmlElement, root: HtmlElement) -> StructuralPath:
    """Build the path from root (exclusive) to element (inclusive)."""

    steps: list[PathStep] = []
    current = element

    while current is not root:
        parent = current.getparent()
        if parent is None:
            raise PathError("element is not a descendant of the path root")
        index = _child_index(parent, current)
        steps.append(PathStep(tag=tag_name(current), index=index))
        current = parent

    steps.reverse()
    return tuple(steps)


def get_element_by_path(root: HtmlElement, path: Iterable[PathStep]) -> HtmlElement | None:
    """Walk from root along path, verifying tags. Any mismatch returns None."""

    current = root
    for step in path:
        children = element_children(current)
        if step.index < 0 or step.index >= len(children):
            return None
        candidate = children[step.index]
        if tag_name(candidate) != step.tag:
            return None
        current = candidate
    return current


def path_key(path: Iterable[PathStep]) -> str:
    """Serialize a path to its canonical string key."""

    return _STEP_SEPARATOR.join(f"{step.tag}:{step.index}" for step in path)


def parse_path_key(key: str) -> StructuralPath:
    """Parse a canonical key back into a path."""

    if key == "":
        return ()

    steps: list[PathStep] = []
    for raw_step in key.split(_STEP_SEPARATOR):
        tag, separator, index = raw_step.rpartition(":")
        valid_index = index.isascii() and index.isdigit()
        if not separator or not _TAG_RE.fullmatch(tag) or not valid_index:
            raise PathError(f"Invalid path step: {raw_step!r}")
        steps.append(PathStep(tag=tag, index=int(index)))
    return tuple(steps)


def path_to_json(path: Iterable[PathStep]) -> list[dict[str, Any]]:
    return [{"tag": step.tag, "index": step.index} for step in path]


def path_from_json(items: Iterable[Mapping[str, Any]]) -> StructuralPath:
    """Build a path from its list-of-dicts external representation."""

    steps: list[PathStep] = []
    for position, item in enumerate(items):
        tag = item.get("tag") if isinstance(item, Mapping) else None
        index = item.get("index") if isinstance(item, Mapping) else None
        if not isinstance(tag, str) or not tag:
            raise PathError(f"Path step {position} has no tag")
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise PathError(f"Path step {position} has an invalid index: {index!r}")
        steps.append(PathStep(tag=tag.upper(), index=index))
    return tuple(steps)


def _child_index(parent: HtmlElement, child: HtmlElement) -> int:
    for index, candidate in enumerate(element_children(parent)):
        if candidate is child:
            return index
    raise PathError("element is not a child of its parent")
