"""Path mapper: locate embedded tokens in the rendered page."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from lxml import etree
from lxml.html import HtmlElement

from core.config.models import MapperConfig
from core.markers.tokens import find_tokens
from core.paths.structural_path import PathStep, StructuralPath
from core.utils.html_dom import iter_nodes, query, tag_name
from core.utils.log_events import log_event

logger = logging.getLogger("pagemap.mapping")


def scan_rendered_tokens(root: HtmlElement, config: MapperConfig) -> dict[str, StructuralPath]:
    """Find every token under root in a single depth-first walk.

    Text tokens map to the path of the element owning the text node; when a
    decorator duplicated content the strictly deepest occurrence wins. Image
    src tokens map to the image itself; the first occurrence wins.
    """

    prefix = config.token_prefix
    found: dict[str, StructuralPath] = {}
    paths: dict[HtmlElement, StructuralPath] = {root: ()}
    child_counts: dict[HtmlElement, int] = {}

    for kind, element, text in iter_nodes(root):
        if kind == "text":
            owner_path = paths[element]
            for token in find_tokens(text or "", prefix):
                existing = found.get(token)
                if existing is None or len(owner_path) > len(existing):
                    found[token] = owner_path
            continue

        if element is not root:
            parent = element.getparent()
            index = child_counts.get(parent, 0)
            child_counts[parent] = index + 1
            paths[element] = paths[parent] + (PathStep(tag=tag_name(element), index=index),)

        if tag_name(element) == "IMG":
            for token in find_tokens(element.get("src") or "", prefix):
                if token not in found:
                    found[token] = paths[element]

    return found


def build_page_mapping(
    rendered_doc: etree._ElementTree,
    source_paths: Mapping[str, StructuralPath],
    config: MapperConfig,
    *,
    source_doc: etree._ElementTree | None = None,
) -> dict[str, StructuralPath]:
    """Build the page-path registry for every registered token.

    Tokens with no rendered counterpart are dropped. A missing root (in the
    rendered document, or in source_doc when given) or an empty source
    registry yields an empty mapping with a warning.
    """

    rendered_root = query(rendered_doc, config.root_selector)
    source_missing = source_doc is not None and query(source_doc, config.root_selector) is None
    if rendered_root is None or source_missing:
        log_event(
            logger,
            logging.WARNING,
            "root_missing",
            phase="mapping",
            root_selector=config.root_selector,
        )
        return {}

    if not source_paths:
        log_event(logger, logging.WARNING, "empty_source_registry", phase="mapping")
        return {}

    rendered_tokens = scan_rendered_tokens(rendered_root, config)
    page_paths = {
        token: rendered_tokens[token] for token in source_paths if token in rendered_tokens
    }

    log_event(
        logger,
        logging.DEBUG,
        "mapped",
        registered=len(source_paths),
        discovered=len(rendered_tokens),
        mapped=len(page_paths),
    )
    return page_paths
