"""FastAPI wrapper for the page mapping pipeline."""

from __future__ import annotations

import importlib.metadata
import logging
import os
import time
import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from core.config.loader import load_config
from core.config.models import MapperConfig
from core.orchestrator.pipeline import MapperInitializer
from core.render.decorators import list_supported_decorators, resolve_decorators
from core.render.models import DecorationOptions
from core.utils.errors import ConfigurationError, RenderTimeoutError, RootNotFoundError
from core.utils.log_events import log_event

app = FastAPI(title="page-mapper API", version="0.1.0")
logger = logging.getLogger("pagemap.api")

REQUEST_ID_HEADER = "X-Pagemap-Request-Id"
_DEFAULT_MAX_SOURCE_BYTES = 5 * 1024 * 1024
_OVERRIDABLE_FIELDS = (
    "root_selector",
    "target_selectors",
    "token_prefix",
    "token_id_length",
    "timeout_ms",
)


class MapRequest(BaseModel):
    """Body of POST /v1/map."""

    model_config = ConfigDict(extra="forbid")

    source_html: str
    decorators: list[str] = Field(default_factory=list)
    root_selector: str | None = None
    target_selectors: list[str] | None = None
    token_prefix: str | None = None
    token_id_length: int | None = None
    timeout_ms: int | None = None
    include_html: bool = False


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    request_id = _request_id_from_request(request)
    return _error_response(
        status_code=400,
        error_code="INVALID_REQUEST",
        message="request body is invalid",
        request_id=request_id,
        detail={"errors": [error.get("msg", "") for error in exc.errors()]},
    )


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint: built-in decorators and default configuration."""

    request_id = _request_id_from_request(request)
    defaults = load_config()
    default_config = defaults.model_dump(mode="json", exclude={"decoration_options"})
    options = defaults.decoration_options
    default_config["decorators"] = [
        getattr(decorator, "__name__", repr(decorator))
        for decorator in (options.decorators if options is not None else [])
    ]
    payload = {
        "supported_decorators": list_supported_decorators(),
        "default_config": default_config,
        "version": app.version,
        "package_version": _package_version(),
    }
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content=payload,
    )


@app.post("/v1/map", response_model=None)
async def map_v1(request: Request, payload: MapRequest) -> JSONResponse:
    """Embed, render and map one source page; return the mapping report."""

    request_id = _request_id_from_request(request)
    start = time.perf_counter()
    _log_event(
        logging.INFO,
        "request_start",
        request_id,
        decorators=payload.decorators,
        source_bytes=len(payload.source_html.encode("utf-8")),
    )

    max_bytes = _max_source_bytes()
    if len(payload.source_html.encode("utf-8")) > max_bytes:
        return _error_response(
            status_code=413,
            error_code="SOURCE_TOO_LARGE",
            message="source_html exceeds size limit",
            request_id=request_id,
            detail={"max_source_bytes": max_bytes},
        )

    try:
        config = _build_config(payload)
    except ValueError as exc:
        return _failure(400, "CONFIGURATION_ERROR", str(exc), request_id, start)

    initializer = MapperInitializer(config)
    try:
        service = await initializer.run(payload.source_html)
    except ConfigurationError as exc:
        return _failure(400, "CONFIGURATION_ERROR", str(exc), request_id, start)
    except RootNotFoundError as exc:
        return _failure(
            422, "ROOT_NOT_FOUND", str(exc), request_id, start, detail={"selector": exc.selector}
        )
    except RenderTimeoutError as exc:
        return _failure(504, "RENDER_TIMEOUT", str(exc), request_id, start, detail=exc.detail)

    content: dict[str, Any] = service.build_report().model_dump(mode="json")
    if payload.include_html:
        embedded = initializer.embed_result
        content["marked_html"] = embedded.marked_html if embedded is not None else ""
        content["rendered_html"] = initializer.rendered_html or ""

    _log_event(
        logging.INFO,
        "request_done",
        request_id,
        status_code=200,
        mapped_count=content["summary"]["mapped_count"],
        total_ms=_elapsed_ms(start),
    )
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content=content,
    )


def _build_config(payload: MapRequest) -> MapperConfig:
    base = load_config()
    values: dict[str, Any] = {name: getattr(base, name) for name in MapperConfig.model_fields}
    for name in _OVERRIDABLE_FIELDS:
        override = getattr(payload, name)
        if override is not None:
            values[name] = override

    if payload.decorators:
        options = base.decoration_options or DecorationOptions()
        values["decoration_options"] = options.model_copy(
            update={"decorators": resolve_decorators(payload.decorators)}
        )

    return MapperConfig.model_validate(values)


def _failure(
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    start: float,
    *,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    _log_event(
        logging.WARNING,
        "error",
        request_id,
        error_code=error_code,
        status_code=status_code,
        total_ms=_elapsed_ms(start),
    )
    return _error_response(
        status_code=status_code,
        error_code=error_code,
        message=message,
        request_id=request_id,
        detail=detail,
    )


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _max_source_bytes() -> int:
    raw = os.getenv("PAGEMAP_MAX_SOURCE_BYTES")
    if raw is None:
        return _DEFAULT_MAX_SOURCE_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_SOURCE_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_SOURCE_BYTES


def _package_version() -> str:
    try:
        return importlib.metadata.version("page-mapper")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    log_event(logger, level, event, request_id=request_id, **fields)
