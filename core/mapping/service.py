"""Mapper service: read-only lookups between rendered and source elements."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from lxml import etree
from lxml.html import HtmlElement

from core.config.models import MapperConfig
from core.mapping.models import (
    InitMetrics,
    MappedElement,
    MappedPair,
    MappingEntry,
    MappingReport,
    MappingSummary,
    PhaseTimings,
)
from core.markers.models import TokenRecord
from core.paths.structural_path import (
    StructuralPath,
    get_element_by_path,
    get_element_path,
    path_key,
)
from core.utils.errors import PathError
from core.utils.html_dom import owner_document, query


class MapperService:
    """Answer "which source element produced this page element?".

    All registries are frozen at construction; lookups never mutate state and
    a miss is always None (or omission), never an exception. The only mutable
    piece is the optional bound page document used by get_all_mapped_elements.
    """

    def __init__(
        self,
        source_doc: etree._ElementTree,
        source_paths: Mapping[str, StructuralPath],
        page_paths: Mapping[str, StructuralPath],
        config: MapperConfig,
        *,
        token_table: Mapping[str, TokenRecord] | None = None,
        page_document: etree._ElementTree | None = None,
        metrics: InitMetrics | None = None,
    ) -> None:
        self._source_doc = source_doc
        self._source_paths = MappingProxyType(dict(source_paths))
        self._page_paths = MappingProxyType(dict(page_paths))
        self._token_table = MappingProxyType(dict(token_table or {}))
        self._config = config
        self._page_document = page_document
        self._metrics = metrics

        self._page_index = MappingProxyType(
            {path_key(page_path): token for token, page_path in self._page_paths.items()}
        )
        self._source_index = MappingProxyType(
            {path_key(source_path): token for token, source_path in self._source_paths.items()}
        )

    @property
    def config(self) -> MapperConfig:
        return self._config

    @property
    def source_paths(self) -> Mapping[str, StructuralPath]:
        return self._source_paths

    @property
    def page_paths(self) -> Mapping[str, StructuralPath]:
        return self._page_paths

    @property
    def token_table(self) -> Mapping[str, TokenRecord]:
        return self._token_table

    @property
    def metrics(self) -> InitMetrics | None:
        return self._metrics

    @property
    def page_document(self) -> etree._ElementTree | None:
        return self._page_document

    def bind_page_document(self, page_document: etree._ElementTree | None) -> None:
        """Set the live page document used when none is passed explicitly."""

        self._page_document = page_document

    def get_source_doc(self) -> etree._ElementTree:
        return self._source_doc

    def find_source_element(self, page_element: HtmlElement) -> HtmlElement | None:
        """Resolve a rendered element to its source element, or None."""

        page_root = query(owner_document(page_element), self._config.root_selector)
        if page_root is None:
            return None

        try:
            page_path = get_element_path(page_element, page_root)
        except PathError:
            return None

        token = self._page_index.get(path_key(page_path))
        if token is None:
            return None
        source_path = self._source_paths.get(token)
        if source_path is None:
            return None

        source_root = query(self._source_doc, self._config.root_selector)
        if source_root is None:
            return None
        return get_element_by_path(source_root, source_path)

    def find_page_path(self, source_element: HtmlElement) -> StructuralPath | None:
        """Return the recorded page path for an element of the source document."""

        source_root = query(self._source_doc, self._config.root_selector)
        if source_root is None:
            return None

        try:
            source_path = get_element_path(source_element, source_root)
        except PathError:
            return None

        token = self._source_index.get(path_key(source_path))
        if token is None:
            return None
        return self._page_paths.get(token)

    def get_all_mapped_elements(
        self, page_document: etree._ElementTree | None = None
    ) -> list[MappedPair]:
        """Resolve every mapped token to a (source, page) element pair.

        Tokens whose path no longer resolves on either side are omitted.
        """

        page_document = page_document if page_document is not None else self._page_document
        if page_document is None:
            return []

        source_root = query(self._source_doc, self._config.root_selector)
        page_root = query(page_document, self._config.root_selector)
        if source_root is None or page_root is None:
            return []

        pairs: list[MappedPair] = []
        for token, source_path in self._source_paths.items():
            page_path = self._page_paths.get(token)
            if page_path is None:
                continue
            source_element = get_element_by_path(source_root, source_path)
            if source_element is None:
                continue
            page_element = get_element_by_path(page_root, page_path)
            if page_element is None:
                continue
            pairs.append(
                MappedPair(
                    source=MappedElement(element=source_element, path=source_path),
                    page=MappedElement(element=page_element, path=page_path),
                )
            )
        return pairs

    def build_report(self) -> MappingReport:
        entries: list[MappingEntry] = []
        for token, source_path in self._source_paths.items():
            record = self._token_table.get(token)
            page_path = self._page_paths.get(token)
            entries.append(
                MappingEntry(
                    token=token,
                    kind=record.kind.value if record is not None else None,
                    tag=record.tag if record is not None else None,
                    source_path=path_key(source_path),
                    page_path=path_key(page_path) if page_path is not None else None,
                )
            )

        mapped_count = sum(1 for entry in entries if entry.page_path is not None)
        timings = None
        if self._metrics is not None:
            timings = PhaseTimings(
                embedding_ms=self._metrics.embedding_ms,
                rendering_ms=self._metrics.rendering_ms,
                mapping_ms=self._metrics.mapping_ms,
                total_ms=self._metrics.total_ms,
            )

        return MappingReport(
            root_selector=self._config.root_selector,
            token_prefix=self._config.token_prefix,
            entries=entries,
            summary=MappingSummary(
                token_count=len(entries),
                mapped_count=mapped_count,
                unmapped_count=len(entries) - mapped_count,
            ),
            timings=timings,
        )
