"""CLI I/O helpers for atomic output writing."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.mapping.models import MappingReport


@dataclass(frozen=True)
class OutputPaths:
    """Fixed output artifact paths for a single mapping run."""

    marked: Path
    rendered: Path
    mapping: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    """Build fixed output file paths under out_dir."""

    return OutputPaths(
        marked=out_dir / "out.marked.html",
        rendered=out_dir / "out.rendered.html",
        mapping=out_dir / "out.mapping.json",
    )


def existing_output_files(paths: OutputPaths) -> list[Path]:
    """Return existing output files among fixed artifact paths."""

    candidates = [paths.marked, paths.rendered, paths.mapping]
    return [path for path in candidates if path.exists()]


def write_mapping_outputs_atomic(
    paths: OutputPaths,
    *,
    marked_html: str,
    rendered_html: str,
    report: MappingReport,
) -> None:
    """Write three artifacts atomically using temporary files + replace."""

    paths.mapping.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_text(paths.marked, marked_html)
    _atomic_write_text(paths.rendered, rendered_html)
    _atomic_write_json(paths.mapping, report.model_dump(mode="json"))


def write_fallback_json_atomic(
    paths: OutputPaths,
    *,
    error_type: str,
    error_message: str,
    stage: str,
) -> None:
    """Write a fallback mapping report carrying the failure metadata."""

    payload: dict[str, Any] = {
        "entries": [],
        "summary": {"token_count": 0, "mapped_count": 0, "unmapped_count": 0},
        "timings": None,
        "error": {
            "error_type": error_type,
            "error_message": error_message,
            "stage": stage,
        },
    }
    paths.mapping.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_json(paths.mapping, payload)


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    tmp_path.replace(path)


def _atomic_write_text(path: Path, text: str) -> None:
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        tmp_path.write_text(text, encoding="utf-8")
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise
