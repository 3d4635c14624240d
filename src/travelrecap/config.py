"""Central Configuration System for Travel Recap.

This module is the single source of truth for application configuration.
Every other module that needs settings imports from here.

The configuration system supports:
- Multi-source configuration (environment variables > config file > defaults)
- Story pacing (per-slide durations, settle window, tick interval)
- Story calendar settings (year, timezone used to bucket quarters)
- Logging level and optional log file

Example:
    >>> from travelrecap.config import get_config
    >>>
    >>> cfg = get_config()
    >>> print(cfg.playback.destination_base_ms)
    5000

Config File Format (YAML):
    ```yaml
    playback:
      intro_ms: 5000
      quarter_intro_ms: 4000
      destination_base_ms: 5000
      destination_per_image_ms: 1500
      destination_max_ms: 15000
      summary_ms: 5000
      settle_ms: 300
      tick_interval_ms: 50

    story:
      year: 2025
      timezone: UTC
      preview_limit: 6

    logs:
      level: INFO
      file: ~/.travelrecap/logs/travelrecap.log

    debug: false
    verbose: false
    ```
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors.

    All configuration-related exceptions inherit from this class to allow
    for easy exception handling at a higher level.
    """

    pass


class ConfigFileError(ConfigError):
    """Exception raised for YAML config file issues.

    Raised when a config file is passed explicitly but cannot be read.
    Files found through the default search path only log a warning.
    """

    pass


# =============================================================================
# Sections
# =============================================================================


class PlaybackConfig(BaseModel):
    """Pacing of the auto-playing story.

    Attributes:
        intro_ms: Dwell time of the intro slide.
        quarter_intro_ms: Dwell time of each quarter-intro slide.
        destination_base_ms: Dwell time of a destination with one photo.
        destination_per_image_ms: Extra dwell per additional photo.
        destination_max_ms: Upper bound on destination dwell time.
        summary_ms: Dwell time of the stats slide before the terminal summary.
        settle_ms: Window after a slide change during which taps are ignored.
        tick_interval_ms: How often the autoplay timer fires.

    Example:
        >>> cfg = PlaybackConfig(destination_per_image_ms=1000)
        >>> cfg.destination_duration_ms(3)
        7000
    """

    intro_ms: int = Field(default=5000, gt=0)
    quarter_intro_ms: int = Field(default=4000, gt=0)
    destination_base_ms: int = Field(default=5000, gt=0)
    destination_per_image_ms: int = Field(default=1500, ge=0)
    destination_max_ms: int = Field(default=15000, gt=0)
    summary_ms: int = Field(default=5000, gt=0)
    settle_ms: int = Field(default=300, ge=0)
    tick_interval_ms: int = Field(default=50, gt=0)

    @model_validator(mode="after")
    def check_destination_bounds(self) -> "PlaybackConfig":
        if self.destination_max_ms < self.destination_base_ms:
            raise ValueError(
                f"destination_max_ms ({self.destination_max_ms}) must be at least "
                f"destination_base_ms ({self.destination_base_ms})"
            )
        return self

    def destination_duration_ms(self, image_count: int) -> int:
        """Dwell time for a destination slide showing ``image_count`` photos."""
        extra = max(0, image_count - 1) * self.destination_per_image_ms
        return min(self.destination_base_ms + extra, self.destination_max_ms)


class StoryConfig(BaseModel):
    """Calendar settings for the compiled story.

    Attributes:
        year: Year shown in titles and export filenames.
        timezone: IANA zone used to read the month of capture timestamps.
        preview_limit: Number of stamps shown on the final summary slide.
    """

    year: int = Field(default=2025, ge=1970, le=9999)
    timezone: str = Field(default="UTC", description="IANA timezone name.")
    preview_limit: int = Field(default=6, ge=0)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class LoggingConfig(BaseModel):
    """Logging output settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Path | None = None

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path | None:
        """Expand ~ and resolve path."""
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Configuration priority (highest wins):
    1. Environment variables (TRAVELRECAP_*)
    2. Config file (YAML)
    3. In-code defaults

    Attributes:
        playback: Story pacing.
        story: Calendar settings.
        logs: Log output.
        debug: Enable debug mode (verbose logging, tracebacks with locals).
        verbose: Enable verbose output to console.

    Example:
        >>> import os
        >>> os.environ["TRAVELRECAP_PLAYBACK__SETTLE_MS"] = "0"
        >>> AppConfig().playback.settle_ms
        0
    """

    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    story: StoryConfig = Field(default_factory=StoryConfig)
    logs: LoggingConfig = Field(default_factory=LoggingConfig)
    debug: bool = Field(default=False, description="Enable debug mode.")
    verbose: bool = Field(default=False, description="Enable verbose output.")

    model_config = SettingsConfigDict(
        env_prefix="TRAVELRECAP_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Config file values arrive as init kwargs; environment wins over them.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)

    @property
    def effective_log_level(self) -> str:
        if self.debug:
            return "DEBUG"
        if self.verbose and self.logs.level != "DEBUG":
            return "INFO"
        return self.logs.level


# =============================================================================
# Module-Level Functions
# =============================================================================

def default_search_paths() -> list[Path]:
    return [
        Path("./travelrecap.yaml"),
        Path("./travelrecap.yml"),
        Path.home() / ".travelrecap" / "config.yaml",
    ]


def _read_config_file(config_file: Path) -> dict[str, Any]:
    content = config_file.read_text(encoding="utf-8")
    if not content.strip():
        return {}
    loaded = yaml.safe_load(content)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigFileError(f"Config file {config_file} must contain a mapping at the top level")
    return loaded


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from file, environment, and defaults.

    If no config file is found, uses defaults only (not an error).
    If a config file from the default search path is malformed, logs a
    warning and uses defaults.

    Args:
        path: Optional path to config file. If None, searches default locations.

    Returns:
        Fully-populated AppConfig instance.

    Raises:
        ConfigFileError: If ``path`` was given explicitly and cannot be
            read or parsed.

    Example:
        >>> config = load_config()
        >>> config = load_config(Path("./my-config.yaml"))
    """
    if path is not None:
        path = Path(path).expanduser()
        if not path.exists():
            raise ConfigFileError(f"Config file not found: {path}")
        try:
            config_data = _read_config_file(path)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigFileError(f"Failed to read config file {path}: {e}") from e
    else:
        config_data = {}
        for search_path in default_search_paths():
            if not search_path.exists():
                continue
            try:
                config_data = _read_config_file(search_path)
            except (OSError, yaml.YAMLError, ConfigFileError) as e:
                logger.warning(f"Failed to read config file {search_path}: {e}. Using defaults.")
            else:
                logger.debug(f"Loaded config file {search_path}")
            break

    try:
        return AppConfig(**config_data)
    except ValidationError as e:
        if path is not None:
            raise ConfigFileError(f"Invalid configuration in {path}: {e}") from e
        logger.warning(f"Error parsing config values: {e}. Using defaults.")
        return AppConfig()


@functools.lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the cached configuration singleton.

    Loads configuration once and returns the same instance on subsequent calls.

    Returns:
        Cached AppConfig instance.
    """
    return load_config()


def reset_config() -> None:
    """Clear the configuration cache for testing.

    After calling this, the next call to get_config() will reload
    configuration from sources.
    """
    get_config.cache_clear()
