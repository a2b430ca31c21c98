# src/config/settings.py v2
"""Typed configuration loaded from the environment / .env via pydantic-settings.

All variables use the SECUREPROXY_ prefix, e.g. SECUREPROXY_PROXY_KEY,
SECUREPROXY_SECRET_KEY, SECUREPROXY_BASE_URL.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.secureproxy.com"


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class ProxySettings(BaseSettings):
    """SDK settings loaded from .env file and environment."""

    model_config = SettingsConfigDict(
        env_prefix="SECUREPROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Credentials ===
    proxy_key: str = ""
    secret_key: str | None = None

    # === Endpoint ===
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float | None = None

    # === Requests ===
    default_model: str = "gpt-4o"

    # === Token lifecycle ===
    token_refresh_buffer_s: float = 300.0
    single_flight_refresh: bool = True

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    @field_validator("secret_key")
    @classmethod
    def empty_secret_is_none(cls, v: str | None) -> str | None:
        # SECUREPROXY_SECRET_KEY= in a .env means "not set"
        return v or None

    @field_validator("token_refresh_buffer_s")
    @classmethod
    def validate_buffer(cls, v: float) -> float:
        if v < 0:
            raise ValueError("token_refresh_buffer_s must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> ProxySettings:
        """Cross-field rules."""
        errors: list[str] = []

        if self.secret_key and not self.proxy_key:
            errors.append("SECRET_KEY is set but PROXY_KEY is empty")

        if self.timeout_s is not None and self.timeout_s <= 0:
            errors.append("TIMEOUT_S must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def split_key(self) -> bool:
        """Whether requests are HMAC-signed with the secret half."""
        return bool(self.secret_key)


def load_settings(**overrides: object) -> ProxySettings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return ProxySettings(**overrides)  # type: ignore[arg-type]
