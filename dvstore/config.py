"""Application Configuration — layered settings via pydantic-settings.

Precedence, highest first:
    1. explicit overrides (CLI flags, passed as init kwargs)
    2. environment variables, DVSTORE_ prefix (--http-address -> DVSTORE_HTTP_ADDRESS)
    3. .env file
    4. dvstore.toml in the working directory (optional, keys are field names)
    5. field defaults

Invariants:
    - A missing config file is not an error; an unparseable one is
    - log_level and log_format are normalized to lower case before validation
"""

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict,
    TomlConfigSettingsSource,
)

ENV_PREFIX = "DVSTORE_"
CONFIG_FILE = "dvstore.toml"


class Settings(BaseSettings):
    """DVStore process settings."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        toml_file=CONFIG_FILE,
        case_sensitive=False,
        extra="ignore",
    )

    http_address: str = Field("localhost:8080", description="HTTP server address")
    database_address: str = Field(
        "sqlite+aiosqlite:///dvstore.db", description="SQLAlchemy database URL",
    )
    log_format: Literal["console", "logfmt", "json"] = Field(
        "console", description="Log format; console, logfmt or json",
    )
    log_level: Literal["debug", "info", "warn", "error"] = Field(
        "info", description="Log level; debug, info, warn or error",
    )
    request_timeout: float = Field(
        0, ge=0, description="Per-request handler deadline in seconds, 0 disables",
    )

    @field_validator("database_address", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: Any) -> Any:
        """Plain postgresql:// URLs are served by the asyncpg driver."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("log_format", "log_level", mode="before")
    @classmethod
    def lower_case(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    def http_host_port(self) -> tuple[str, int]:
        """Split http_address into (host, port). Raises ValueError if malformed."""
        host, sep, port = self.http_address.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"invalid http address: {self.http_address}")
        return host.strip("[]") or "0.0.0.0", int(port)


def load_settings(overrides: dict[str, Any] | None = None) -> Settings:
    """Resolve settings with overrides taking precedence over every other source."""
    return Settings(**(overrides or {}))


@lru_cache
def get_settings() -> Settings:
    return Settings()
