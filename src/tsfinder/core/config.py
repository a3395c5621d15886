# src/tsfinder/core/config.py
"""
Configuration schema and loading for tsfinder.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from tsfinder.contracts.enums import ProbeErrorPolicy
from tsfinder.core.timestamps import millis_to_nanos, parse_timestamp

DEFAULT_ACCURACY_MS = 10


class DatabaseSettings(BaseModel):
    """Cloud Spanner database coordinates."""

    model_config = {"frozen": True, "extra": "forbid"}

    project: str = Field(min_length=1, description="Google Cloud project ID")
    instance: str = Field(min_length=1, description="Cloud Spanner instance ID")
    database: str = Field(min_length=1, description="Cloud Spanner database ID")

    @property
    def path(self) -> str:
        """Fully qualified database resource name."""
        return f"projects/{self.project}/instances/{self.instance}/databases/{self.database}"


class SearchSettings(BaseModel):
    """Bisection search parameters.

    Example YAML:
        search:
          accuracy_ms: 50
          start: "2024-03-01T12:00:00Z"
          on_probe_error: abort
    """

    model_config = {"frozen": True, "extra": "forbid"}

    accuracy_ms: int = Field(
        default=DEFAULT_ACCURACY_MS,
        ge=0,
        description="Stop once the remaining window is narrower than this",
    )
    start: str | None = Field(
        default=None,
        description="RFC 3339 window start (default: earliest version time)",
    )
    end: str | None = Field(
        default=None,
        description="RFC 3339 window end (default: database server time)",
    )
    on_probe_error: ProbeErrorPolicy = Field(
        default=ProbeErrorPolicy.NARROW_EARLIER,
        description="Handling of hard backend errors during bisection",
    )

    @field_validator("start", "end")
    @classmethod
    def validate_timestamp(cls, v: str | None) -> str | None:
        """Reject malformed bounds at config time rather than mid-run."""
        if v is None:
            return v
        parse_timestamp(v)
        return v

    @model_validator(mode="after")
    def validate_window_order(self) -> "SearchSettings":
        if self.start is not None and self.end is not None and parse_timestamp(self.start) >= parse_timestamp(self.end):
            raise ValueError(f"start ({self.start}) must be earlier than end ({self.end})")
        return self

    @property
    def accuracy_ns(self) -> int:
        return millis_to_nanos(self.accuracy_ms)

    @property
    def start_ns(self) -> int | None:
        return None if self.start is None else parse_timestamp(self.start)

    @property
    def end_ns(self) -> int | None:
        return None if self.end is None else parse_timestamp(self.end)


class RetrySettings(BaseModel):
    """Retry behavior for database metadata lookups.

    Probes are never retried; these only cover earliest-version-time and
    server-time reads made before the search starts.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    max_attempts: int = Field(default=3, gt=0, description="Maximum attempts, including the first")
    initial_delay_seconds: float = Field(default=1.0, gt=0, description="Initial backoff delay")
    max_delay_seconds: float = Field(default=30.0, gt=0, description="Maximum backoff delay")
    exponential_base: float = Field(default=2.0, gt=1.0, description="Exponential backoff base")


class TsFinderSettings(BaseModel):
    """Top-level tsfinder configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    database: DatabaseSettings = Field(description="Database to search")
    search: SearchSettings = Field(default_factory=SearchSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``overrides`` into a copy of ``base``, skipping None values."""
    merged = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        elif isinstance(value, dict):
            merged[key] = _merge({}, value)
        else:
            merged[key] = value
    return merged


def _load_raw(config_path: Path | None) -> dict[str, Any]:
    from dynaconf import Dynaconf

    if config_path is not None and not config_path.exists():
        # Dynaconf silently accepts missing files
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="TSFINDER",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic wants lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    return {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> TsFinderSettings:
    """Load settings from an optional YAML file, environment and CLI overrides.

    Precedence, highest first:
    1. ``overrides`` (CLI flags; None values are ignored)
    2. Environment variables (TSFINDER_*), e.g. TSFINDER_DATABASE__PROJECT
    3. Config file
    4. Defaults from the Pydantic schema

    Args:
        config_path: Path to YAML configuration file, if any
        overrides: Nested dict of explicit values, e.g. {"search": {"accuracy_ms": 5}}

    Returns:
        Validated TsFinderSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    raw_config = _load_raw(config_path)
    raw_config = _merge(raw_config, overrides or {})
    return TsFinderSettings(**raw_config)
