"""Custom exceptions for core logic."""

from __future__ import annotations

from typing import Any


class PageMapperError(Exception):
    """Base class for page mapper failures."""


class ConfigurationError(PageMapperError):
    """Raised when decoration options or decorators are missing or invalid."""


class RootNotFoundError(PageMapperError):
    """Raised when the root selector matches nothing in the rendering sandbox."""

    def __init__(self, message: str, *, selector: str) -> None:
        super().__init__(message)
        self.selector = selector


class RenderTimeoutError(PageMapperError, TimeoutError):
    """Raised when the decoration pipeline exceeds its timeout budget."""

    def __init__(self, *, timeout_ms: int, decorator_index: int | None = None) -> None:
        detail: dict[str, Any] = {"timeout_ms": timeout_ms}
        if decorator_index is not None:
            detail["decorator_index"] = decorator_index

        super().__init__(f"rendering timed out after {timeout_ms} ms")
        self.timeout_ms = timeout_ms
        self.detail = detail


class PathError(PageMapperError, ValueError):
    """Raised for malformed input to the structural path primitives."""


class InitializationError(PageMapperError):
    """Raised when an initializer is reused after it finished or failed."""

    def __init__(self, message: str, *, phase: str) -> None:
        super().__init__(message)
        self.phase = phase


class SessionStateError(PageMapperError):
    """Raised when an edit session operation needs an active element."""
