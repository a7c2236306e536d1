"""Mapper configuration loading from YAML."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.config.models import MapperConfig
from core.render.decorators import resolve_decorators
from core.render.models import DecorationOptions

DEFAULT_CONFIG_PATH = Path(__file__).with_name("mapper.yaml")


def load_config(path: Path | None = None) -> MapperConfig:
    """Load and validate mapper configuration from YAML."""

    config_path = path or DEFAULT_CONFIG_PATH

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {config_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file: {config_path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    values = dict(raw)
    decoration = values.pop("decoration", None)
    if decoration is not None:
        values["decoration_options"] = _build_decoration_options(decoration, config_path)

    try:
        return MapperConfig.model_validate(values)
    except ValidationError as exc:
        raise ValueError(f"Invalid config schema: {config_path}") from exc


def _build_decoration_options(raw: Any, config_path: Path) -> DecorationOptions:
    if not isinstance(raw, dict):
        raise ValueError(f"'decoration' must be a mapping in {config_path}")

    values = dict(raw)
    names = values.pop("decorators", None) or []
    if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
        raise ValueError(f"'decoration.decorators' must be a list of names in {config_path}")

    try:
        values["decorators"] = resolve_decorators(names)
    except ValueError as exc:
        raise ValueError(f"{exc} in {config_path}") from exc

    try:
        return DecorationOptions.model_validate(values)
    except ValidationError as exc:
        raise ValueError(f"Invalid decoration schema: {config_path}") from exc
