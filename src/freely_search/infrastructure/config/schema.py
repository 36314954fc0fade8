"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class SearchConfig(BaseModel):
    """Tuning for the federated search pipeline.

    The selection heuristic and score threshold are empirical; they are
    exposed here instead of being hardcoded.
    """

    deadline_ms: int = Field(
        default=3000,
        description="Wall-clock budget for the plugin fan-out (milliseconds).",
    )
    min_score: int = Field(
        default=1,
        description="Minimum score for magnet resolution and the final pool.",
    )
    selection_fraction: float = Field(
        default=0.25,
        description="Share of candidates resolved when none clears min_score.",
    )
    selection_min: int = Field(
        default=5,
        description="Lower bound for the fallback selection size.",
    )
    selection_max: int = Field(
        default=15,
        description="Upper bound for the fallback selection size.",
    )
    fallback_limit: int = Field(
        default=15,
        description="Max magnet-bearing candidates returned by the final fallback.",
    )
    max_variants: int = Field(
        default=6,
        description="Max query phrasings sent to every plugin.",
    )
    detail_concurrency: int = Field(
        default=8,
        description="Max parallel detail-page magnet lookups.",
    )
    detail_retry_delay_ms: int = Field(
        default=350,
        description="Pause before retrying a blocked detail page (milliseconds).",
    )

    @field_validator("deadline_ms", "max_variants", "detail_concurrency")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("min_score")
    @classmethod
    def _validate_min_score(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("min_score must be within 0..100")
        return v

    @field_validator("selection_fraction")
    @classmethod
    def _validate_fraction(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("selection_fraction must be within (0, 1]")
        return v

    @model_validator(mode="after")
    def _validate_bounds(self) -> "SearchConfig":
        if self.selection_min > self.selection_max:
            raise ValueError("selection_min must be <= selection_max")
        return self


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (plugins/http/search/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="freely-search", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Plugins (YAML section: plugins.*)
    plugin_dir: Path = Field(
        default=Path("./plugins"),
        validation_alias=AliasChoices(
            "plugin_dir",
            AliasPath("plugins", "plugin_dir"),
        ),
        description="Directory containing Python scraper plugins.",
    )
    plugin_toggles: dict[str, bool] = Field(
        default_factory=dict,
        validation_alias=AliasChoices(
            "plugin_toggles",
            AliasPath("plugins", "toggles"),
        ),
        description="Per-plugin enable/disable overrides keyed by plugin id.",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Per-request HTTP timeout in seconds.",
    )
    http_mirror_timeout_seconds: float = Field(
        default=3.0,
        validation_alias=AliasChoices(
            "http_mirror_timeout_seconds",
            AliasPath("http", "mirror_timeout_seconds"),
        ),
        description="Timeout for each mirror attempt of a search request.",
    )
    http_max_redirects: int = Field(
        default=5,
        validation_alias=AliasChoices(
            "http_max_redirects",
            AliasPath("http", "max_redirects"),
        ),
        description="Redirect hop cap per request.",
    )
    http_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/125.0 Safari/537.36"
        ),
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Search pipeline (YAML section: search.*)
    search: SearchConfig = Field(default_factory=SearchConfig)

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    @field_validator("plugin_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("http_timeout_seconds", "http_mirror_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("HTTP timeouts must be > 0")
        return v

    @field_validator("http_max_redirects")
    @classmethod
    def _validate_max_redirects(cls, v: int) -> int:
        if v < 0:
            raise ValueError("http_max_redirects must be >= 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "plugins": {
                "plugin_dir": str(self.plugin_dir),
                "toggles": dict(self.plugin_toggles),
            },
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "mirror_timeout_seconds": self.http_mirror_timeout_seconds,
                "max_redirects": self.http_max_redirects,
                "user_agent": self.http_user_agent,
            },
            "search": self.search.model_dump(),
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read FREELY_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - FREELY_PLUGIN_DIR
    - FREELY_HTTP_TIMEOUT_SECONDS
    - FREELY_SEARCH_DEADLINE_MS (any search.* field as FREELY_SEARCH_<FIELD>)
    - FREELY_PLUGIN_TOGGLES (JSON object)
    - FREELY_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="FREELY_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    plugin_dir: Optional[Path] = None
    # JSON object, e.g. FREELY_PLUGIN_TOGGLES='{"rutracker": false}'
    plugin_toggles: Optional[dict[str, bool]] = None

    http_timeout_seconds: Optional[float] = None
    http_mirror_timeout_seconds: Optional[float] = None
    http_max_redirects: Optional[int] = None
    http_user_agent: Optional[str] = None

    search_deadline_ms: Optional[int] = None
    search_min_score: Optional[int] = None
    search_selection_fraction: Optional[float] = None
    search_selection_min: Optional[int] = None
    search_selection_max: Optional[int] = None
    search_fallback_limit: Optional[int] = None
    search_max_variants: Optional[int] = None
    search_detail_concurrency: Optional[int] = None
    search_detail_retry_delay_ms: Optional[int] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    @field_validator("plugin_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
