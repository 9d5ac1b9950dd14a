"""Runtime configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from catalog_browser.api import DEFAULT_BASE_URL

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True, slots=True)
class CatalogSettings:
    """Settings for the catalog browser."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0  # seconds
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CatalogSettings:
        """Read CATALOG_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        timeout = env.get("CATALOG_TIMEOUT")
        try:
            timeout_value = float(timeout) if timeout else defaults.timeout
        except ValueError as e:
            raise ValueError(f"Invalid CATALOG_TIMEOUT: {timeout!r}") from e
        return cls(
            base_url=env.get("CATALOG_BASE_URL") or defaults.base_url,
            timeout=timeout_value,
            log_level=(env.get("CATALOG_LOG_LEVEL") or defaults.log_level).upper(),
        )
