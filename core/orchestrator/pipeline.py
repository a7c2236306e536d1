"""Orchestration pipeline: embed -> render -> map -> service."""

from __future__ import annotations

import logging
from enum import Enum
from time import perf_counter

from core.config.models import MapperConfig
from core.mapping.models import InitMetrics
from core.mapping.page_mapper import build_page_mapping
from core.mapping.service import MapperService
from core.markers.embedder import embed_source_markers
from core.markers.models import EmbedResult
from core.render.simulator import render_page
from core.utils.errors import ConfigurationError, InitializationError
from core.utils.html_dom import parse_document
from core.utils.log_events import log_event

logger = logging.getLogger("pagemap.pipeline")


class InitPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    EMBEDDING = "embedding"
    RENDERING = "rendering"
    MAPPING = "mapping"
    READY = "ready"
    FAILED = "failed"


class MapperInitializer:
    """One-shot initialization state machine.

    Phases advance strictly UNINITIALIZED -> EMBEDDING -> RENDERING -> MAPPING
    -> READY. Any failure moves to FAILED and propagates; no partial service is
    ever produced. READY and FAILED are terminal.
    """

    def __init__(self, config: MapperConfig | None = None) -> None:
        self.config = config or MapperConfig()
        self._phase = InitPhase.UNINITIALIZED
        self.metrics: InitMetrics | None = None
        self.embed_result: EmbedResult | None = None
        self.rendered_html: str | None = None

    @property
    def phase(self) -> InitPhase:
        return self._phase

    async def run(self, source_html: str) -> MapperService:
        if self._phase is not InitPhase.UNINITIALIZED:
            raise InitializationError(
                f"Initializer cannot be reused (phase={self._phase.value})",
                phase=self._phase.value,
            )

        config = self.config
        total_start = perf_counter()
        try:
            self._phase = InitPhase.EMBEDDING
            start = perf_counter()
            embedded = embed_source_markers(source_html, config)
            self.embed_result = embedded
            embedding_ms = _elapsed_ms(start)

            self._phase = InitPhase.RENDERING
            options = config.decoration_options
            if options is None:
                raise ConfigurationError(
                    "Rendering options must be provided in config.decoration_options"
                )
            render_options = options.model_copy(
                update={
                    "root_selector": config.effective_render_root(),
                    "timeout_ms": config.effective_timeout_ms(),
                }
            )
            start = perf_counter()
            rendered_html = await render_page(embedded.marked_html, render_options)
            self.rendered_html = rendered_html
            rendering_ms = _elapsed_ms(start)

            self._phase = InitPhase.MAPPING
            start = perf_counter()
            rendered_doc = parse_document(rendered_html)
            source_doc = parse_document(source_html)
            page_paths = build_page_mapping(
                rendered_doc,
                embedded.source_paths,
                config,
                source_doc=source_doc,
            )
            mapping_ms = _elapsed_ms(start)
        except Exception as exc:
            failed_phase = self._phase
            self._phase = InitPhase.FAILED
            log_event(
                logger,
                logging.ERROR,
                "initialization_failed",
                phase=failed_phase.value,
                error_type=type(exc).__name__,
                message=str(exc),
            )
            raise

        self.metrics = InitMetrics(
            embedding_ms=embedding_ms,
            rendering_ms=rendering_ms,
            mapping_ms=mapping_ms,
            total_ms=_elapsed_ms(total_start),
            mapped_count=len(page_paths),
        )
        if config.log_performance:
            _log_performance(self.metrics)

        service = MapperService(
            source_doc,
            embedded.source_paths,
            page_paths,
            config,
            token_table=embedded.token_table,
            page_document=rendered_doc,
            metrics=self.metrics,
        )
        self._phase = InitPhase.READY
        return service


async def initialize_mapper(
    source_html: str, config: MapperConfig | None = None
) -> MapperService:
    """Run the full pipeline once and return a ready mapper service."""

    return await MapperInitializer(config).run(source_html)


def _elapsed_ms(start: float) -> float:
    return (perf_counter() - start) * 1000


def _log_performance(metrics: InitMetrics) -> None:
    log_event(
        logger,
        logging.INFO,
        "performance",
        embedding_ms=round(metrics.embedding_ms, 2),
        rendering_ms=round(metrics.rendering_ms, 2),
        mapping_ms=round(metrics.mapping_ms, 2),
        total_ms=round(metrics.total_ms, 2),
        mapped_count=metrics.mapped_count,
    )
