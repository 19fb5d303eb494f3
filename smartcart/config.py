"""Configuration management for SmartCart."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Application configuration."""

    # Backend
    api_base_url: str = field(
        default_factory=lambda: os.getenv("SMARTCART_API_URL", "http://localhost:5000")
    )
    api_token: str = field(default_factory=lambda: os.getenv("SMARTCART_API_TOKEN", ""))
    request_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
    )

    # Retry policy (network errors only, GET requests only)
    max_network_retries: int = field(
        default_factory=lambda: int(os.getenv("MAX_NETWORK_RETRIES", "3"))
    )
    retry_base_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("RETRY_BASE_DELAY_SECONDS", "1.0"))
    )
    retry_max_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("RETRY_MAX_DELAY_SECONDS", "30.0"))
    )

    # Offline
    offline_mode: bool = field(default_factory=lambda: _env_bool("OFFLINE_MODE"))
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "data"))
    offline_store_file: str = field(
        default_factory=lambda: os.getenv(
            "OFFLINE_STORE_FILE", "shopping-app-offline-data.json"
        )
    )

    # Caching
    batch_stale_seconds: int = field(
        default_factory=lambda: int(os.getenv("BATCH_STALE_SECONDS", "300"))
    )
    category_cache_ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv("CATEGORY_CACHE_TTL_SECONDS", "86400"))
    )
    category_cache_max_size: int = field(
        default_factory=lambda: int(os.getenv("CATEGORY_CACHE_MAX_SIZE", "1000"))
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: str = field(default_factory=lambda: os.getenv("LOG_FILE", "smartcart.log"))

    @property
    def offline_store_path(self) -> Path:
        """Location of the offline JSON store."""
        return Path(self.data_dir) / self.offline_store_file

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []
        if not self.api_base_url.startswith(("http://", "https://")):
            errors.append("SMARTCART_API_URL must start with http:// or https://")
        if self.request_timeout_seconds <= 0:
            errors.append("REQUEST_TIMEOUT_SECONDS must be positive")
        if self.max_network_retries < 0:
            errors.append("MAX_NETWORK_RETRIES must be >= 0")
        if self.retry_base_delay_seconds < 0 or self.retry_max_delay_seconds < 0:
            errors.append("Retry delays must be >= 0")
        if self.batch_stale_seconds < 0:
            errors.append("BATCH_STALE_SECONDS must be >= 0")
        if self.category_cache_ttl_seconds < 0:
            errors.append("CATEGORY_CACHE_TTL_SECONDS must be >= 0")
        if self.category_cache_max_size <= 0:
            errors.append("CATEGORY_CACHE_MAX_SIZE must be positive")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            errors.append(f"LOG_LEVEL {self.log_level!r} is not a valid level")
        return errors


# Global config instance
config = Config()
