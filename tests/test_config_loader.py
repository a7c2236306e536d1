from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config.loader import load_config
from core.config.models import DEFAULT_TARGET_SELECTORS, MapperConfig
from core.render.decorators import decorate_main, wrap_sections


def test_load_default_config() -> None:
    config = load_config()

    assert config.root_selector == "main"
    assert config.target_selectors == DEFAULT_TARGET_SELECTORS
    assert config.token_prefix == "HASH_"
    assert config.token_id_length == 8
    assert config.timeout_ms == 10000
    assert config.log_performance is True
    assert config.decoration_options is not None
    assert config.decoration_options.decorators == []


def test_load_config_resolves_decorator_names(tmp_path: Path) -> None:
    path = tmp_path / "mapper.yaml"
    path.write_text(
        """
root_selector: article
timeout_ms: 2500
decoration:
  decorators: [wrap_sections, decorate_main]
  timeout_ms: 1000
""",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.root_selector == "article"
    assert config.decoration_options.decorators == [wrap_sections, decorate_main]
    assert config.effective_timeout_ms() == 1000
    assert config.effective_render_root() == "article"


def test_load_config_without_decoration_section(tmp_path: Path) -> None:
    path = tmp_path / "mapper.yaml"
    path.write_text("token_prefix: MK_\n", encoding="utf-8")

    config = load_config(path)

    assert config.token_prefix == "MK_"
    assert config.decoration_options is None


def test_load_config_rejects_unknown_decorator(tmp_path: Path) -> None:
    path = tmp_path / "mapper.yaml"
    path.write_text("decoration:\n  decorators: [not_a_decorator]\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported decorator: not_a_decorator"):
        load_config(path)


def test_load_config_raises_for_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Config file not found"):
        load_config(tmp_path / "missing.yaml")


def test_load_config_raises_for_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "mapper.yaml"
    path.write_text("root_selector: [unclosed\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_config(path)


def test_load_config_raises_for_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "mapper.yaml"
    path.write_text("- main\n", encoding="utf-8")

    with pytest.raises(ValueError, match="must contain a mapping"):
        load_config(path)


@pytest.mark.parametrize(
    "body",
    [
        "token_id_length: 2\n",
        "timeout_ms: 0\n",
        "unknown_key: 1\n",
        "target_selectors: []\n",
    ],
)
def test_load_config_raises_for_schema_errors(tmp_path: Path, body: str) -> None:
    path = tmp_path / "mapper.yaml"
    path.write_text(body, encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid config schema"):
        load_config(path)


def test_mapper_config_rejects_blank_selectors() -> None:
    with pytest.raises(ValidationError):
        MapperConfig(root_selector="  ")
    with pytest.raises(ValidationError):
        MapperConfig(target_selectors=[" ", ""])


def test_mapper_config_builds_selector_group() -> None:
    config = MapperConfig(target_selectors=[" h1 ", "p"])

    assert config.target_selector_group() == "h1, p"
