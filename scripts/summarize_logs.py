#!/usr/bin/env python3
"""Summarize page-mapper JSON line logs (API and pipeline events)."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Annotated, Any

import typer

_COUNTED_KEYS = ("event", "error_code", "status_code")


def summarize_log_files(paths: list[Path]) -> dict[str, Any]:
    counts: dict[str, Counter[str]] = {key: Counter() for key in _COUNTED_KEYS}
    total_ms: list[int] = []
    parse_errors = 0
    lines_total = 0

    for path in paths:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError:
            parse_errors += 1
            continue

        lines_total += len(lines)
        for payload in _iter_payloads(lines):
            if payload is None:
                parse_errors += 1
                continue
            for key in _COUNTED_KEYS:
                if payload.get(key) is not None:
                    counts[key][str(payload[key])] += 1
            # request_done and the pipeline's performance event both carry total_ms
            if isinstance(payload.get("total_ms"), int | float):
                total_ms.append(int(payload["total_ms"]))

    total_ms.sort()
    return {
        "files": [str(path) for path in paths],
        "lines_total": lines_total,
        "parse_errors": parse_errors,
        "event_counts": dict(sorted(counts["event"].items())),
        "error_code_counts": dict(sorted(counts["error_code"].items())),
        "http_status_counts": dict(sorted(counts["status_code"].items())),
        "total_ms_p50": _nearest_rank(total_ms, 50),
        "total_ms_p95": _nearest_rank(total_ms, 95),
    }


def _iter_payloads(lines: list[str]):
    for line in lines:
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            yield None
            continue
        yield payload if isinstance(payload, dict) else None


def _nearest_rank(ordered: list[int], percent: int) -> int | None:
    if not ordered:
        return None
    rank = max(1, -(-percent * len(ordered) // 100))
    return ordered[rank - 1]


def main(
    files: Annotated[list[Path], typer.Argument(help="One or more JSONL log files.")],
    as_json: Annotated[bool, typer.Option("--json", help="Output JSON.")] = False,
) -> None:
    summary = summarize_log_files([path.expanduser() for path in files])
    if as_json:
        typer.echo(json.dumps(summary, ensure_ascii=False, indent=2, sort_keys=True))
        return
    typer.echo("Page Mapper Log Summary")
    for key, value in summary.items():
        typer.echo(f"{key}={value}")


if __name__ == "__main__":
    typer.run(main)
