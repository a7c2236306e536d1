"""Source marker embedder.

Replaces the content of leaf target elements with opaque tracking tokens and
records, during the same pass, the structural path of every token's owner.

Rules:
- Only leaves are instrumented: a candidate that contains another candidate
  is skipped, so a container and its children are never both covered.
- IMG: the src value becomes a SRC token; alt and other attributes are kept.
- UL/OL: each direct LI child with non-blank inner markup gets one HTML
  token owned by the LI.
- Anything else: the whole inner markup becomes one HTML token; the
  element's own attributes are kept.
- A missing root is not an error: the input comes back unchanged.
"""

from __future__ import annotations

import logging

from lxml.html import HtmlElement

from core.config.models import MapperConfig
from core.markers.models import EmbedResult, TokenKind, TokenRecord
from core.markers.tokens import TokenFactory
from core.paths.structural_path import get_element_path
from core.utils.html_dom import (
    body_of,
    element_children,
    inner_html,
    outer_html,
    parse_document,
    query,
    query_all,
    replace_inner_html_with_text,
    serialize_document,
    tag_name,
)
from core.utils.log_events import log_event

logger = logging.getLogger("pagemap.embedder")

_LIST_TAGS = {"UL", "OL"}
MARKER_IDS_ATTR = "data-marker-ids"
SOURCE_MARKED_ATTR = "data-source-marked"


def embed_source_markers(source_html: str, config: MapperConfig) -> EmbedResult:
    """Embed tracking tokens into source markup.

    Args:
        source_html: Raw source markup.
        config: Mapper configuration (root selector, targets, token format).

    Returns:
        EmbedResult with the marked markup, token table and source-path registry.
    """

    document = parse_document(source_html)
    root = query(document, config.root_selector)
    if root is None:
        log_event(
            logger,
            logging.WARNING,
            "root_missing",
            phase="embedding",
            root_selector=config.root_selector,
        )
        return EmbedResult(marked_html=source_html)

    result = EmbedResult(marked_html="")
    factory = TokenFactory(config.token_prefix, config.token_id_length)

    for element in _select_leaf_targets(root, config.target_selector_group()):
        tokens = _embed_element(element, root, factory, result)
        if tokens:
            element.set(MARKER_IDS_ATTR, ",".join(tokens))
            element.set(SOURCE_MARKED_ATTR, "true")

    body = body_of(document)
    result.marked_html = outer_html(body) if body is not None else serialize_document(document)

    log_event(
        logger,
        logging.DEBUG,
        "embedded",
        root_selector=config.root_selector,
        token_count=len(result.token_table),
    )
    return result


def _select_leaf_targets(root: HtmlElement, selector_group: str) -> list[HtmlElement]:
    candidates = [item for item in query_all(root, selector_group) if item is not root]
    candidate_set = set(candidates)
    containers: set[HtmlElement] = set()

    for candidate in candidates:
        ancestor = candidate.getparent()
        while ancestor is not None and ancestor is not root:
            if ancestor in candidate_set:
                containers.add(ancestor)
            ancestor = ancestor.getparent()

    return [item for item in candidates if item not in containers]


def _embed_element(
    element: HtmlElement,
    root: HtmlElement,
    factory: TokenFactory,
    result: EmbedResult,
) -> list[str]:
    tag = tag_name(element)

    if tag == "IMG":
        original_src = element.get("src") or ""
        if not original_src:
            return []
        token = factory.create(tag, TokenKind.SRC)
        element.set("src", token)
        _register(result, token, TokenKind.SRC, original_src, tag, element, root)
        return [token]

    if tag in _LIST_TAGS:
        tokens: list[str] = []
        for item in element_children(element):
            if tag_name(item) != "LI":
                continue
            original_markup = inner_html(item)
            if not original_markup.strip():
                continue
            token = factory.create("LI", TokenKind.HTML)
            replace_inner_html_with_text(item, token)
            _register(result, token, TokenKind.HTML, original_markup, "LI", item, root)
            tokens.append(token)
        return tokens

    original_markup = inner_html(element)
    if not original_markup.strip():
        return []
    token = factory.create(tag, TokenKind.HTML)
    replace_inner_html_with_text(element, token)
    _register(result, token, TokenKind.HTML, original_markup, tag, element, root)
    return [token]


def _register(
    result: EmbedResult,
    token: str,
    kind: TokenKind,
    original_value: str,
    tag: str,
    owner: HtmlElement,
    root: HtmlElement,
) -> None:
    result.token_table[token] = TokenRecord(
        token=token, kind=kind, original_value=original_value, tag=tag
    )
    result.source_paths[token] = get_element_path(owner, root)
