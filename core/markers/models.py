"""Data models for marker embedding."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from core.paths.structural_path import StructuralPath


class TokenKind(str, Enum):
    """Which channel of the element a token replaced."""

    HTML = "HTML"
    SRC = "SRC"


@dataclass(frozen=True)
class TokenRecord:
    """Token table row: what a token replaced and which tag owns it."""

    token: str
    kind: TokenKind
    original_value: str
    tag: str


@dataclass
class EmbedResult:
    """Marker embedding output."""

    marked_html: str
    token_table: dict[str, TokenRecord] = field(default_factory=dict)
    source_paths: dict[str, StructuralPath] = field(default_factory=dict)
