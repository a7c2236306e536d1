"""Render simulator: runs host decorators over marked markup in a sandbox."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from lxml.html import HtmlElement

from core.render.models import DecorationOptions, Decorator
from core.render.sandbox import Sandbox, SandboxDocument, copy_host_styles
from core.utils.errors import ConfigurationError, RenderTimeoutError, RootNotFoundError
from core.utils.log_events import log_event

logger = logging.getLogger("pagemap.render")

DEFAULT_ROOT_SELECTOR = "main"
DEFAULT_TIMEOUT_MS = 10000

# Decoration tasks that outlived their budget. Held so they are not
# garbage-collected mid-flight; removed once they settle.
_ABANDONED_TASKS: set[asyncio.Task[None]] = set()


async def render_page(marked_html: str, options: DecorationOptions | None) -> str:
    """Render marked markup through the host decoration pipeline.

    Decorators run strictly in order and each result is awaited when it is
    awaitable. The whole decoration run is bounded by the timeout budget; a
    decorator still running at the deadline is left alone, its result is
    discarded and no later decorator starts. The sandbox is disposed on every
    path.

    Raises:
        ConfigurationError: no decoration options or an empty decorator list.
        RootNotFoundError: the root selector matches nothing after loading.
        RenderTimeoutError: decoration exceeded the timeout budget.
    """

    if options is None or not options.decorators:
        raise ConfigurationError("At least one decorator function is required")

    root_selector = options.root_selector or DEFAULT_ROOT_SELECTOR
    timeout_ms = options.timeout_ms or DEFAULT_TIMEOUT_MS
    decorators = list(options.decorators)

    sandbox = Sandbox()
    try:
        document = sandbox.document
        copied = copy_host_styles(options.host_document, document)
        if options.setup_context is not None:
            options.setup_context(sandbox.globals)
        document.load(marked_html)

        root = document.query(root_selector)
        if root is None:
            raise RootNotFoundError(
                f"No {root_selector} element found in marked HTML",
                selector=root_selector,
            )

        progress: dict[str, Any] = {"index": None, "abandoned": False}
        task = asyncio.ensure_future(_decorate(root, document, decorators, progress))
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
        if task not in done:
            _abandon(task, progress)
            log_event(
                logger,
                logging.ERROR,
                "render_timeout",
                sandbox_id=sandbox.sandbox_id,
                timeout_ms=timeout_ms,
                decorator_index=progress["index"],
            )
            raise RenderTimeoutError(timeout_ms=timeout_ms, decorator_index=progress["index"])

        task.result()
        log_event(
            logger,
            logging.DEBUG,
            "rendered",
            sandbox_id=sandbox.sandbox_id,
            decorator_count=len(decorators),
            copied_styles=copied,
        )
        return document.serialize()
    except (RootNotFoundError, RenderTimeoutError):
        raise
    except Exception as exc:
        log_event(
            logger,
            logging.ERROR,
            "render_failed",
            sandbox_id=sandbox.sandbox_id,
            error_type=type(exc).__name__,
            message=str(exc),
        )
        raise
    finally:
        sandbox.dispose()


async def _decorate(
    root: HtmlElement,
    document: SandboxDocument,
    decorators: list[Decorator],
    progress: dict[str, Any],
) -> None:
    for index, decorator in enumerate(decorators):
        # a timed-out run finishes its in-flight decorator and starts no other
        if progress["abandoned"]:
            return
        progress["index"] = index
        outcome = decorator(root, document)
        if inspect.isawaitable(outcome):
            await outcome


def _abandon(task: asyncio.Task[None], progress: dict[str, Any]) -> None:
    progress["abandoned"] = True
    _ABANDONED_TASKS.add(task)
    task.add_done_callback(_discard_late_result)


def _discard_late_result(task: asyncio.Task[None]) -> None:
    _ABANDONED_TASKS.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log_event(
            logger,
            logging.DEBUG,
            "late_decorator_error_discarded",
            error_type=type(exc).__name__,
        )
