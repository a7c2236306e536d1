"""Explicit editing session on top of a mapper service."""

from __future__ import annotations

from lxml import etree
from lxml.html import HtmlElement

from core.mapping.service import MapperService
from core.utils.errors import SessionStateError
from core.utils.html_dom import (
    body_of,
    outer_html,
    owner_document,
    replace_inner_html,
    serialize_document,
)


class EditSession:
    """Track the page element being edited and its source counterpart.

    One session per editing surface; sessions share nothing but the
    (read-only) service they are built on.
    """

    def __init__(
        self,
        service: MapperService,
        page_document: etree._ElementTree | None = None,
    ) -> None:
        self._service = service
        self._page_document = page_document
        self._active_page: HtmlElement | None = None
        self._active_source: HtmlElement | None = None

    @property
    def page_document(self) -> etree._ElementTree | None:
        return self._page_document

    @property
    def active_page_element(self) -> HtmlElement | None:
        return self._active_page

    @property
    def active_source_element(self) -> HtmlElement | None:
        return self._active_source

    @property
    def is_active(self) -> bool:
        return self._active_source is not None

    def activate(self, page_element: HtmlElement) -> HtmlElement | None:
        """Make page_element the edit target; a lookup miss leaves the session inactive."""

        if self._page_document is not None and not _belongs_to(page_element, self._page_document):
            self.deactivate()
            return None

        source_element = self._service.find_source_element(page_element)
        if source_element is None:
            self.deactivate()
            return None
        self._active_page = page_element
        self._active_source = source_element
        return source_element

    def deactivate(self) -> None:
        self._active_page = None
        self._active_source = None

    def apply_inner_html(self, markup: str) -> HtmlElement:
        """Replace the inner markup of the active source element in place."""

        if self._active_source is None:
            raise SessionStateError("No active element to edit")
        replace_inner_html(self._active_source, markup)
        return self._active_source

    def source_html(self) -> str:
        source_doc = self._service.get_source_doc()
        body = body_of(source_doc)
        return outer_html(body) if body is not None else serialize_document(source_doc)


def _belongs_to(element: HtmlElement, document: etree._ElementTree) -> bool:
    return owner_document(element).getroot() is document.getroot()
