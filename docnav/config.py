from __future__ import annotations

import logging
import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docnav.exceptions import ConfigurationError
from docnav.models.document import DEFAULT_INDEX_FILE, DEFAULT_SORT_CONFIG, SortField
from docnav.models.search import ExecutionMode

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "DOCNAV_CONFIG"

_ENV_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _env_value(match: re.Match[str]) -> str:
    name = match.group(1)
    if name not in os.environ:
        msg = f"Environment variable '{name}' referenced in config but not set"
        raise KeyError(msg)
    return os.environ[name]


def expand_env_vars(config_str: str) -> str:
    """
    Replace ${VAR_NAME} placeholders with environment values.

    Comment lines (first non-blank character '#') are left untouched.

    Raises:
        KeyError: If a referenced environment variable is not set
    """
    return "\n".join(
        line if line.lstrip().startswith("#") else _ENV_PLACEHOLDER.sub(_env_value, line)
        for line in config_str.split("\n")
    )


def load_config_from_yaml(config_path: str | Path) -> dict:
    """
    Load YAML configuration file and expand environment variables.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Dictionary containing parsed configuration

    Raises:
        FileNotFoundError: If config file is not found
        ConfigurationError: If the file is not valid YAML, is not a mapping,
            or references an unset environment variable
    """
    config_file = Path(config_path)
    if not config_file.exists():
        msg = f"Configuration file not found at {config_path}"
        raise FileNotFoundError(msg)

    config_str = config_file.read_text(encoding="utf-8")

    try:
        expanded_config = expand_env_vars(config_str)
    except KeyError as e:
        msg = f"Error expanding environment variables in config: {e}"
        raise ConfigurationError(msg, context={"config_file": str(config_file)}) from None

    try:
        config_dict = yaml.safe_load(expanded_config)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in config: {e}"
        raise ConfigurationError(msg, context={"config_file": str(config_file)}) from None

    if config_dict is None:
        return {}

    if not isinstance(config_dict, dict):
        msg = "Config must contain a YAML mapping/dictionary at root level"
        raise ConfigurationError(msg, context={"config_file": str(config_file)})

    return config_dict


class StaticRankingSettings(BaseModel):
    """Ranking bias for the precomputed index: favor short, title-heavy pages."""

    term_frequency: float = 0.5
    page_length: float = 0.0
    term_saturation: float = 2.0

    def to_index_options(self, base_url: str = "/") -> dict[str, object]:
        """Options payload passed once to the static index module."""
        return {
            "baseUrl": base_url,
            "ranking": {
                "termFrequency": self.term_frequency,
                "pageLength": self.page_length,
                "termSaturation": self.term_saturation,
            },
        }


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DOCNAV_",
        env_file=None,
        case_sensitive=False,
    )

    execution_mode: ExecutionMode = ExecutionMode.LIVE

    # Document index resource
    site_index_url: str = "/.docnav/site.json"
    site_index_path: str | None = None
    index_file: str = DEFAULT_INDEX_FILE
    base_url: str | None = None  # Origin prefix for site-relative URLs (e.g., http://localhost:5200)

    # Search
    search_endpoint: str = "/.docnav/search"
    static_index_module: str = "pagefind"
    search_result_limit: int = Field(default=20, ge=1, le=1000)
    search_debounce_ms: int = Field(default=150, ge=0)
    min_query_length: int = Field(default=2, ge=1)
    request_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for index and live search HTTP requests",
    )
    static_ranking: StaticRankingSettings = Field(default_factory=StaticRankingSettings)

    sort: list[SortField] = Field(default_factory=lambda: list(DEFAULT_SORT_CONFIG))

    # Observability
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("sort", mode="before")
    @classmethod
    def default_sort_when_empty(cls, v: object) -> object:
        if not v:
            return list(DEFAULT_SORT_CONFIG)
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        normalized = v.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Invalid log level: {v}"
            raise ValueError(msg)
        return normalized

    @property
    def debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000

    def resolve_url(self, path: str) -> str:
        """Join a site-relative path onto base_url when one is configured."""
        if not self.base_url or "://" in path:
            return path
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")


def _flatten_config(config_dict: dict) -> dict:
    """Flatten the nested YAML layout into Settings field names."""
    flat_config: dict = {}

    if "mode" in config_dict:
        flat_config["execution_mode"] = config_dict["mode"]

    if "base_url" in config_dict:
        flat_config["base_url"] = config_dict.get("base_url")

    if "index" in config_dict and isinstance(config_dict["index"], dict):
        index = config_dict["index"]
        if "url" in index:
            flat_config["site_index_url"] = index["url"]
        if "path" in index:
            flat_config["site_index_path"] = index["path"]
        if "index_file" in index:
            flat_config["index_file"] = index["index_file"]

    if "search" in config_dict and isinstance(config_dict["search"], dict):
        search = config_dict["search"]
        if "endpoint" in search:
            flat_config["search_endpoint"] = search["endpoint"]
        if "limit" in search:
            flat_config["search_result_limit"] = search["limit"]
        if "debounce_ms" in search:
            flat_config["search_debounce_ms"] = search["debounce_ms"]
        if "min_query_length" in search:
            flat_config["min_query_length"] = search["min_query_length"]
        if "timeout_seconds" in search:
            flat_config["request_timeout_seconds"] = search["timeout_seconds"]
        if "static_module" in search:
            flat_config["static_index_module"] = search["static_module"]
        if "ranking" in search and isinstance(search["ranking"], dict):
            flat_config["static_ranking"] = search["ranking"]

    if "sort" in config_dict:
        flat_config["sort"] = config_dict["sort"]

    if "logging" in config_dict and isinstance(config_dict["logging"], dict):
        flat_config["log_level"] = config_dict["logging"].get("level", "INFO")
        flat_config["log_json"] = config_dict["logging"].get("json", True)

    return flat_config


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Build Settings for one session.

    Reads the YAML file at ``config_path`` (or ``$DOCNAV_CONFIG``). Without a
    file, settings come from defaults and DOCNAV_* environment variables.

    Raises:
        ConfigurationError: If the file or the resulting settings are invalid
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV)

    flat_config: dict = {}
    if config_path is not None:
        flat_config = _flatten_config(load_config_from_yaml(config_path))

    try:
        settings = Settings(**flat_config)
    except ValidationError as e:
        msg = f"Configuration validation error: {e}"
        raise ConfigurationError(
            msg,
            context={"config_file": str(config_path) if config_path else None},
        ) from e

    logger.debug(
        "Settings loaded",
        extra={
            "config_file": str(config_path) if config_path else None,
            "execution_mode": settings.execution_mode.value,
        },
    )
    return settings
