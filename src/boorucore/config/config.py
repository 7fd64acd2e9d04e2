"""
Configuration management for boorucore using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Nested Configuration Models ---


class HttpConfig(BaseModel):
    """Shared HTTP session settings."""

    timeout: float = Field(default=30.0, description="Total request timeout in seconds.")
    connect_timeout: float = Field(default=10.0, description="Connection timeout in seconds.")
    pool_size: int = Field(default=10, description="Maximum pooled connections per host.")
    user_agent: str = Field(
        default="boorucore/0.1.0",
        description="User-Agent string for HTTP requests.",
    )


class RateLimitConfig(BaseModel):
    permits: int = Field(default=2, ge=1, description="Requests allowed per window, per site.")
    window_seconds: float = Field(default=1.0, gt=0, description="Length of the rolling window.")


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=4, ge=1, description="Total attempts including the first one.")
    base_delay: float = Field(default=0.1, ge=0, description="Delay before the first retry, in seconds.")
    max_delay: float = Field(default=5.0, ge=0, description="Upper bound for any single backoff delay.")
    jitter: bool = Field(default=False, description="Scale each delay by a random factor in [0.8, 1.2].")


class CacheConfig(BaseModel):
    enabled: bool = True
    ttl_seconds: Optional[float] = Field(default=300.0, description="Entry lifetime. None disables expiry.")
    max_entries: Optional[int] = Field(default=500, description="LRU capacity. None means unbounded.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(
        default=None,
        description="Path to log file. If None, logs to the console.",
    )
    json_logs: bool = Field(default=False, description="Render console logs as JSON.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


class SiteConfig(BaseModel):
    """Per-site overrides."""

    api_key: Optional[str] = None
    user_id: Optional[str] = None
    base_url: Optional[str] = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.user_id)


# --- Main Configuration Class ---


class Config(BaseSettings):
    http: HttpConfig = Field(default_factory=HttpConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    sites: Dict[str, SiteConfig] = Field(default_factory=dict)

    model_config = SettingsConfigDict(env_prefix="BOORU_", env_nested_delimiter="__", case_sensitive=False)

    @field_validator("sites", mode="after")
    @classmethod
    def lowercase_site_names(cls, v: Dict[str, SiteConfig]) -> Dict[str, SiteConfig]:
        return {name.lower(): site for name, site in v.items()}

    def site(self, name: str) -> SiteConfig:
        return self.sites.get(name.lower(), SiteConfig())

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


def find_config_file(directory: Path | None = None) -> Path | None:
    current_dir = directory or Path.cwd()
    for name in ("booru.yaml", "booru.yml"):
        path = current_dir / name
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load from ``path``, else from a discovered ``booru.yaml``, else from the environment."""
    config_path = path or find_config_file()
    if config_path is not None:
        log.info("Loading configuration from: %s", config_path)
        return Config.from_yaml(config_path)
    return Config()
