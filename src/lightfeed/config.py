"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# CryptoRank v2 endpoints
DEFAULT_SNAPSHOT_URL = "https://api.cryptorank.io/v2/currencies?include=percentChange&limit=500"
DEFAULT_GLOBAL_URL = "https://api.cryptorank.io/v2/global"


def _strip(value: object) -> object:
    """Trim whitespace and one layer of surrounding quotes from env strings."""
    if isinstance(value, str):
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1].strip()
    return value


class SourceSettings(BaseSettings):
    """Market-data API the snapshot is fetched from."""

    model_config = SettingsConfigDict(env_prefix="SOURCE_")

    url: str = DEFAULT_SNAPSHOT_URL
    global_url: str = DEFAULT_GLOBAL_URL
    api_key: SecretStr = SecretStr("")
    timeout_seconds: float = 15.0

    @field_validator("url", "global_url", "api_key", mode="before")
    @classmethod
    def strip_strings(cls, value: object) -> object:
        return _strip(value)


class StoreSettings(BaseSettings):
    """Versioned content store coordinates (GitHub contents API)."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    backend: Literal["github", "memory"] = "github"
    token: SecretStr = SecretStr("")
    owner: str = ""
    repo: str = ""
    branch: str = "main"
    api_url: str = "https://api.github.com"
    raw_path: str = "raw.json"
    derived_path: str = "light.json"
    global_path: str = "global.json"
    timeout_seconds: float = 15.0

    @field_validator("token", "owner", "repo", "branch", "api_url", mode="before")
    @classmethod
    def strip_strings(cls, value: object) -> object:
        return _strip(value)


class PipelineSettings(BaseSettings):
    """Ranking and merge parameters."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    capacity: int = 16  # deployments use 16, 20, 50 or 100
    previous_read_attempts: int = 3
    previous_read_backoff_seconds: float = 1.0

    @field_validator("capacity")
    @classmethod
    def capacity_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("capacity must be >= 0")
        return value

    @field_validator("previous_read_attempts")
    @classmethod
    def attempts_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("previous_read_attempts must be >= 1")
        return value


class SchedulerSettings(BaseSettings):
    """Timer and snapshot cache configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    enabled: bool = True
    interval_seconds: int = 1800  # 30 minutes
    cache_ttl_seconds: int = 1800
    run_on_start: bool = False


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    source: SourceSettings = SourceSettings()
    store: StoreSettings = StoreSettings()
    pipeline: PipelineSettings = PipelineSettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    dashboard: DashboardSettings = DashboardSettings()

    def missing_settings(self) -> list[str]:
        """Return the env names of required settings that are empty.

        The memory backend needs no store credentials.
        """
        missing: list[str] = []
        if not self.source.url:
            missing.append("SOURCE_URL")
        if self.store.backend == "github":
            if not self.store.token.get_secret_value():
                missing.append("STORE_TOKEN")
            if not self.store.owner:
                missing.append("STORE_OWNER")
            if not self.store.repo:
                missing.append("STORE_REPO")
        return missing
