"""Configuration settings for jiracrawler.

Settings come from, highest priority first: environment variables, a
``.env`` file, and the YAML config file written by ``jiracrawler config set``
(``~/.jiracrawler/config.yaml``, or the path in ``JIRACRAWLER_CONFIG``).
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_FILE_ENV = "JIRACRAWLER_CONFIG"
DEFAULT_CONFIG_FILE = Path("~") / ".jiracrawler" / "config.yaml"


def config_file_path() -> Path:
    """Location of the persistent YAML config file."""
    return Path(os.environ.get(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE).expanduser()


class RateLimitConfig(BaseModel):
    """Configuration for the shared request rate limiter.

    Controls the per-request delay and the retry/backoff behavior
    applied when Jira answers with HTTP 429.
    """

    delay_ms: int = Field(
        default=100,
        ge=0,
        description="Milliseconds to wait before each request (also the backoff base)",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries allowed after a 429 before giving up",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        gt=1.0,
        description="Exponential backoff factor applied per retry attempt",
    )
    enabled: bool = Field(
        default=True,
        description="Apply the per-request delay (backoff on 429 always applies)",
    )

    @property
    def delay_seconds(self) -> float:
        """Get the per-request delay in seconds."""
        return self.delay_ms / 1000


class EnhanceConfig(BaseModel):
    """Configuration for enhanced context fetching."""

    batch_delay_ms: int = Field(
        default=100,
        ge=0,
        description="Fixed pause between consecutive issues in a batch enhancement",
    )
    search_max_results: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum issues returned by a single search",
    )

    @property
    def batch_delay_seconds(self) -> float:
        """Get the batch pause in seconds."""
        return self.batch_delay_ms / 1000


class LoggingConfig(BaseModel):
    """Optional file sink; the console always logs to stderr."""

    log_file: str | None = Field(
        default=None,
        description="Write DEBUG-and-up records to this file",
    )
    rotation: str = Field(
        default="10 MB",
        description="Size or age at which the log file rotates",
    )
    retention: str = Field(
        default="7 days",
        description="Age after which rotated files are deleted",
    )
    serialize: bool = Field(
        default=False,
        description="Write the file as JSON lines",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
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
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=config_file_path())
        return init_settings, env_settings, dotenv_settings, yaml_settings, file_secret_settings

    # --------------------------------------------------------------------------
    # Jira API
    # --------------------------------------------------------------------------
    jira_url: str = Field(
        default="https://issues.redhat.com",
        description="Base URL of the Jira instance",
    )
    jira_token: str = Field(
        default="",
        description="Jira personal access token (sent as a Bearer token)",
    )
    jira_user: str = Field(
        default="",
        description="Jira user the token belongs to",
    )
    jira_project: str = Field(
        default="CNF",
        description="Default project key for assigned-issue searches",
    )
    request_timeout_s: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout in seconds for a single request",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Rate Limiting & Enhancement
    # --------------------------------------------------------------------------
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Shared rate limiter configuration",
    )
    enhance: EnhanceConfig = Field(
        default_factory=EnhanceConfig,
        description="Enhanced context configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# ------------------------------------------------------------------------------
# Persistent Config File
# ------------------------------------------------------------------------------
def read_config_file(path: Path | None = None) -> dict[str, Any]:
    """Load the YAML config file, or an empty mapping if there is none."""
    path = path or config_file_path()
    if not path.is_file():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


def _split_key(key: str) -> list[str]:
    """Split ``rate_limit.delay_ms`` (or ``RATE_LIMIT__DELAY_MS``) into field names."""
    parts = key.strip().lower().replace("__", ".").split(".")
    field = Settings.model_fields.get(parts[0])
    if field is None or len(parts) > 2:
        raise ValueError(f"unknown config key {key!r}")

    section = field.annotation
    is_section = isinstance(section, type) and issubclass(section, BaseModel)
    if is_section != (len(parts) == 2):
        raise ValueError(f"unknown config key {key!r}")
    if is_section and parts[1] not in section.model_fields:
        raise ValueError(f"unknown config key {key!r}")
    return parts


def set_config_value(key: str, value: str, path: Path | None = None) -> Any:
    """Validate one setting and write it to the YAML config file.

    Args:
        key: Field name, dotted for nested sections (e.g. ``rate_limit.delay_ms``)
        value: Raw value, converted to the field's type
        path: Config file (defaults to config_file_path())

    Returns:
        The converted value that was written

    Raises:
        ValueError: If the key is unknown or the value does not validate
    """
    parts = _split_key(key)
    path = path or config_file_path()
    data = read_config_file(path)

    target = data
    if len(parts) == 2:
        if not isinstance(data.get(parts[0]), dict):
            data[parts[0]] = {}
        target = data[parts[0]]
    target[parts[-1]] = value

    converted: Any = Settings.model_validate(data)
    for part in parts:
        converted = getattr(converted, part)
    target[parts[-1]] = converted

    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    path.touch(mode=0o600, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    get_settings.cache_clear()
    return converted
