"""Render simulation option models."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Decorator contract: (root element, sandbox document) -> None | awaitable.
# Decorators must not truncate, escape or deduplicate tracking tokens and
# must not touch anything outside the sandbox they are given.
Decorator = Callable[..., Any]
ContextSetup = Callable[[dict[str, Any]], Any]


class DecorationOptions(BaseModel):
    """Host decoration pipeline supplied to the render simulator.

    Rules:
    - decorators run strictly in list order
    - root_selector/timeout_ms fall back to the mapper config when None
    - host_document is the live page tree whose styling is copied into the sandbox
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    decorators: list[Decorator] = Field(default_factory=list)
    setup_context: ContextSetup | None = None
    root_selector: str | None = None
    timeout_ms: int | None = Field(default=None, gt=0)
    host_document: Any | None = None
