"""Data models for page mapping, lookup results and reports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from lxml.html import HtmlElement
from pydantic import BaseModel, ConfigDict, Field

from core.paths.structural_path import StructuralPath


@dataclass(frozen=True)
class MappedElement:
    """A live element together with the path it was resolved from."""

    element: HtmlElement
    path: StructuralPath


@dataclass(frozen=True)
class MappedPair:
    source: MappedElement
    page: MappedElement


@dataclass(frozen=True)
class InitMetrics:
    """Wall-clock phase timings of one initialization."""

    embedding_ms: float
    rendering_ms: float
    mapping_ms: float
    total_ms: float
    mapped_count: int


class MappingEntry(BaseModel):
    """One token with its source path and, when rendered, its page path."""

    model_config = ConfigDict(extra="forbid")

    token: str
    kind: Literal["HTML", "SRC"] | None = None
    tag: str | None = None
    source_path: str
    page_path: str | None = None


class MappingSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    token_count: int
    mapped_count: int
    unmapped_count: int


class PhaseTimings(BaseModel):
    """Phase timings in milliseconds."""

    model_config = ConfigDict(extra="forbid")

    embedding_ms: float
    rendering_ms: float
    mapping_ms: float
    total_ms: float


class MappingReport(BaseModel):
    """Serializable view of a mapper service for the CLI and HTTP API."""

    model_config = ConfigDict(extra="forbid")

    root_selector: str
    token_prefix: str
    entries: list[MappingEntry] = Field(default_factory=list)
    summary: MappingSummary
    timings: PhaseTimings | None = None
