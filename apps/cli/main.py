"""Typer CLI entrypoint for page-mapper."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from apps.cli.io import (
    OutputPaths,
    build_output_paths,
    existing_output_files,
    write_fallback_json_atomic,
    write_mapping_outputs_atomic,
)
from core.config.loader import load_config
from core.config.models import MapperConfig
from core.orchestrator.pipeline import MapperInitializer
from core.render.decorators import list_supported_decorators, resolve_decorators
from core.render.models import DecorationOptions
from core.utils.errors import ConfigurationError, RenderTimeoutError, RootNotFoundError

app = typer.Typer(help="Page Mapper CLI", rich_markup_mode=None)


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep `pagemap map` as explicit command form."""


@app.command("map")
def map_command(
    source: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    out_dir: Annotated[Path, typer.Option()] = Path("."),
    config: Annotated[
        Path | None,
        typer.Option("--config", help="Mapper YAML config; defaults to the bundled one."),
    ] = None,
    decorator: Annotated[
        list[str] | None,
        typer.Option("--decorator", help="Decorator name; repeat to build a pipeline."),
    ] = None,
    root_selector: Annotated[str | None, typer.Option("--root-selector")] = None,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite outputs when they already exist.")
    ] = False,
    no_overwrite: Annotated[
        bool,
        typer.Option(
            "--no-overwrite",
            help="Fail when outputs already exist.",
        ),
    ] = False,
) -> None:
    """Map one source page and write marked, rendered and mapping artifacts."""

    paths = build_output_paths(out_dir)

    if force and no_overwrite:
        typer.echo("ERROR: --force and --no-overwrite cannot be used together.")
        _safe_write_fallback(paths, "ArgumentConflict", "conflicting overwrite flags", "args")
        raise typer.Exit(code=1)

    existing = existing_output_files(paths)
    if existing and no_overwrite:
        typer.echo("ERROR: outputs already exist and --no-overwrite is enabled.")
        raise typer.Exit(code=1)
    if existing:
        names = ", ".join(path.name for path in existing)
        typer.echo(f"INFO: overwriting existing outputs: {names}")

    failure_stage = "load_config"
    try:
        mapper_config = _build_config(config, decorator, root_selector)
    except (ConfigurationError, ValueError) as exc:
        typer.echo(f"ERROR: configuration error: {exc}")
        _safe_write_fallback(paths, type(exc).__name__, str(exc), failure_stage)
        raise typer.Exit(code=2) from exc

    initializer = MapperInitializer(mapper_config)
    exit_code = 1
    reason = "unexpected error"

    try:
        failure_stage = "read_source"
        source_html = source.read_text(encoding="utf-8")
        failure_stage = "pipeline"
        service = asyncio.run(initializer.run(source_html))
        failure_stage = "write_outputs"
        embedded = initializer.embed_result
        report = service.build_report()
        write_mapping_outputs_atomic(
            paths,
            marked_html=embedded.marked_html if embedded is not None else "",
            rendered_html=initializer.rendered_html or "",
            report=report,
        )
        summary = report.summary
        typer.echo(
            f"INFO: mapped {summary.mapped_count}/{summary.token_count} tokens "
            f"(unmapped={summary.unmapped_count})."
        )
        exit_code = 0
        reason = "success"
    except ConfigurationError as exc:
        exit_code = 2
        reason = f"configuration error: {exc}"
        _safe_write_fallback(paths, type(exc).__name__, str(exc), failure_stage)
    except RootNotFoundError as exc:
        exit_code = 3
        reason = f"root not found: {exc.selector}"
        _safe_write_fallback(paths, type(exc).__name__, str(exc), failure_stage)
    except RenderTimeoutError as exc:
        exit_code = 4
        reason = f"rendering timed out after {exc.timeout_ms} ms"
        _safe_write_fallback(paths, type(exc).__name__, str(exc), failure_stage)
    except Exception as exc:  # noqa: BLE001
        exit_code = 1
        reason = f"internal error: {type(exc).__name__}: {exc}"
        _safe_write_fallback(paths, type(exc).__name__, str(exc), failure_stage)

    if exit_code == 0:
        typer.echo("INFO: success")
    else:
        typer.echo(f"ERROR: {reason}")

    raise typer.Exit(code=exit_code)


@app.command("decorators")
def decorators_command() -> None:
    """List built-in decorator names."""

    for name in list_supported_decorators():
        typer.echo(name)


def _build_config(
    config_path: Path | None,
    decorator_names: list[str] | None,
    root_selector: str | None,
) -> MapperConfig:
    mapper_config = load_config(config_path)
    updates: dict[str, object] = {}

    if root_selector is not None:
        if not root_selector.strip():
            raise ValueError("--root-selector must not be blank")
        updates["root_selector"] = root_selector.strip()

    if decorator_names:
        options = mapper_config.decoration_options or DecorationOptions()
        updates["decoration_options"] = options.model_copy(
            update={"decorators": resolve_decorators(decorator_names)}
        )

    if updates:
        mapper_config = mapper_config.model_copy(update=updates)
    return mapper_config


def _safe_write_fallback(
    paths: OutputPaths,
    error_type: str,
    error_message: str,
    stage: str,
) -> None:
    try:
        write_fallback_json_atomic(
            paths,
            error_type=error_type,
            error_message=error_message,
            stage=stage,
        )
    except OSError as exc:
        typer.echo(f"ERROR: fallback report write failed: {exc}")


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
