"""
Configuration management for decant using Pydantic.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, ClassVar, cast

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

KNOWN_PARSERS = ("html.parser", "lxml", "html5lib")

CONFIG_FILE_NAMES = ("decant.yaml", "decant.yml", ".decant.yaml")

# --- Nested Configuration Models ---


class ExtractionSettings(BaseModel):
    """Options for article extraction."""

    char_threshold: int = Field(
        default=500,
        description="Minimum text length an attempt must reach to be accepted outright.",
    )
    nb_top_candidates: int = Field(default=5, description="How many top-scored candidates the viability scan looks at.")
    link_density_modifier: float = Field(
        default=0.0,
        description="Added to (1 - link density) when scoring paragraphs; positive values tolerate links.",
    )
    parser: str = Field(default="html.parser", description="BeautifulSoup tree builder.")
    clean_styles: bool = Field(default=True, description="Strip style, align, bgcolor and valign attributes.")
    clean_whitespace: bool = Field(default=True, description="Remove empty paragraphs and collapse whitespace.")
    remove_title: bool = Field(default=True, description="Drop a heading that repeats the article title.")
    dedupe_candidates: bool = Field(
        default=False,
        description="Score each node once even when it matches several candidate scans.",
    )
    max_elems_to_parse: int = Field(
        default=0,
        ge=0,
        description="Refuse documents with more elements than this. 0 disables the limit.",
    )

    @field_validator("char_threshold")
    @classmethod
    def validate_char_threshold(cls, v: int) -> int:
        if v < 0:
            raise ValueError("char_threshold must be >= 0")
        return v

    @field_validator("nb_top_candidates")
    @classmethod
    def validate_nb_top_candidates(cls, v: int) -> int:
        """Ensure at least one candidate is considered."""
        if v < 1:
            raise ValueError("nb_top_candidates must be >= 1")
        return v

    @field_validator("parser")
    @classmethod
    def validate_parser(cls, v: str) -> str:
        if v not in KNOWN_PARSERS:
            raise ValueError(f"parser must be one of {', '.join(KNOWN_PARSERS)}")
        return v


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="WARNING", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(
        default=None,
        description="Path to log file. If None, logs to the console.",
    )
    prometheus_port: int | None = Field(
        default=None,
        description="Port for Prometheus metrics exporter. None to disable.",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "decant"
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="DECANT_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for name in CONFIG_FILE_NAMES:
        path = current_dir / name
        if path.exists():
            return path
    return None


# --- Lazy Configuration Loader ---


class LazyConfig:
    """
    A proxy for the Config object that delays its loading and validation
    until an attribute is first accessed, so a broken config file cannot
    fail an import.
    """

    _config: ClassVar[Config | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __getattr__(self, name: str) -> Any:
        if self.__class__._config is None:
            with self.__class__._lock:
                if self.__class__._config is None:
                    self.__class__._config = self._load_config_with_fallback()
        return getattr(self.__class__._config, name)

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded configuration; the next access reloads it."""
        with cls._lock:
            cls._config = None

    def _load_config_with_fallback(self) -> Config:
        """Load configuration from file or fall back to defaults."""
        config_path = find_config_file()
        if config_path:
            try:
                log.info("Lazy loading configuration from: %s", config_path)
                return Config.from_yaml(config_path)
            except (ValidationError, FileNotFoundError, yaml.YAMLError) as e:
                log.error(
                    "Failed to load or validate configuration from '%s': %s. "
                    "Falling back to default settings. Please check your config file.",
                    config_path,
                    e,
                    exc_info=log.getEffectiveLevel() <= logging.DEBUG,
                )
        else:
            log.debug("No config file found. Using default settings for lazy load.")

        try:
            return Config()
        except ValidationError as e:
            log.critical("FATAL: Default configuration is invalid: %s", e, exc_info=True)
            raise RuntimeError(f"Default configuration is invalid, cannot start: {e}") from e


# --- Global Settings Instance ---
settings: "Config" = cast("Config", LazyConfig())
