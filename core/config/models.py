"""Mapper configuration model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.render.models import DecorationOptions

DEFAULT_TARGET_SELECTORS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "img", "ul", "ol"]


class MapperConfig(BaseModel):
    """Configuration shared by every phase of the mapping pipeline."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    root_selector: str = "main"
    target_selectors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TARGET_SELECTORS), min_length=1
    )
    token_prefix: str = "HASH_"
    token_id_length: int = Field(default=8, ge=4, le=32)
    timeout_ms: int = Field(default=10000, gt=0)
    log_performance: bool = True
    decoration_options: DecorationOptions | None = None

    @field_validator("root_selector", "token_prefix")
    @classmethod
    def require_non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("target_selectors")
    @classmethod
    def normalize_selectors(cls, value: list[str]) -> list[str]:
        selectors = [item.strip() for item in value if item.strip()]
        if not selectors:
            raise ValueError("at least one target selector is required")
        return selectors

    def target_selector_group(self) -> str:
        """Return the selectors as one comma-separated CSS selector group."""

        return ", ".join(self.target_selectors)

    def effective_render_root(self) -> str:
        options = self.decoration_options
        if options is not None and options.root_selector:
            return options.root_selector
        return self.root_selector

    def effective_timeout_ms(self) -> int:
        options = self.decoration_options
        if options is not None and options.timeout_ms is not None:
            return options.timeout_ms
        return self.timeout_ms
