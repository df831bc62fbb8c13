"""
cold-storage-signer settings.

All configuration comes from environment variables (optionally loaded from a .env file)
and is validated when a Settings instance is created.

Usage:
    from cold_storage_signer.settings import Settings

    settings = Settings()
    if settings.has_signer_config:
        ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from dotenv import load_dotenv

from .endpoint import DEFAULT_TIMEOUT_SEC, Endpoint

load_dotenv()

_LOG_LEVELS = ("debug", "info", "warning", "error")


class SettingsValidationError(Exception):
    """Raised when settings validation fails."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid configuration for {field}={value!r}: {message}")


def _parse_str(value: str | None) -> str | None:
    """Strip a string; empty means unset."""
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _parse_float(value: str | None, default: float | None = None) -> float | None:
    """Parse a float from environment variable."""
    if value is None or value.strip() == "":
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


@dataclass
class Settings:
    """
    Remote signer configuration.

    Only formats are validated here; `require_signer_config()` checks that everything
    needed to build a signer is present.
    """

    ACCOUNT: str | None = field(default_factory=lambda: _parse_str(os.getenv("COLD_SIGNER_ACCOUNT")))
    URL: str | None = field(default_factory=lambda: _parse_str(os.getenv("COLD_SIGNER_URL")))
    AUTHORIZATION: str | None = field(default_factory=lambda: _parse_str(os.getenv("COLD_SIGNER_AUTHORIZATION")))
    CA_PATH: str | None = field(default_factory=lambda: _parse_str(os.getenv("COLD_SIGNER_CA_PATH")))
    TIMEOUT_SEC: float = field(
        default_factory=lambda: _parse_float(os.getenv("COLD_SIGNER_TIMEOUT_SEC"), DEFAULT_TIMEOUT_SEC) or DEFAULT_TIMEOUT_SEC
    )
    RPC_URL: str | None = field(default_factory=lambda: _parse_str(os.getenv("COLD_SIGNER_RPC_URL")))

    # Observability
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("COLD_SIGNER_LOG_LEVEL", "info").strip().lower())
    SERVICE_NAME: str = field(
        default_factory=lambda: os.getenv("COLD_SIGNER_SERVICE_NAME", "cold-storage-signer").strip()
    )

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        errors: list[str] = []

        if self.URL is not None:
            try:
                Endpoint.from_url(self.URL)
            except ValueError as e:
                errors.append(f"COLD_SIGNER_URL is invalid: {e}")

        if self.TIMEOUT_SEC <= 0:
            errors.append(f"COLD_SIGNER_TIMEOUT_SEC must be > 0, got {self.TIMEOUT_SEC}")

        if self.CA_PATH is not None and not os.path.isfile(os.path.expanduser(self.CA_PATH)):
            errors.append(f"COLD_SIGNER_CA_PATH does not exist: {self.CA_PATH}")

        if self.LOG_LEVEL not in _LOG_LEVELS:
            errors.append(f"COLD_SIGNER_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got {self.LOG_LEVEL}")

        if errors:
            raise SettingsValidationError("MULTIPLE", None, "; ".join(errors))

    @property
    def has_signer_config(self) -> bool:
        return bool(self.ACCOUNT and self.URL and self.AUTHORIZATION)

    def require_signer_config(self) -> None:
        missing = [
            name
            for name, value in (
                ("COLD_SIGNER_ACCOUNT", self.ACCOUNT),
                ("COLD_SIGNER_URL", self.URL),
                ("COLD_SIGNER_AUTHORIZATION", self.AUTHORIZATION),
            )
            if not value
        ]
        if missing:
            raise SettingsValidationError(missing[0], None, f"required to build a signer (missing: {', '.join(missing)})")

    def to_dict(self) -> dict[str, Any]:
        """Settings without secrets, for logging."""
        return {
            "ACCOUNT": self.ACCOUNT,
            "URL": self.URL,
            "AUTHORIZATION": "***" if self.AUTHORIZATION else None,
            "CA_PATH": self.CA_PATH,
            "TIMEOUT_SEC": self.TIMEOUT_SEC,
            "RPC_URL": self.RPC_URL,
            "LOG_LEVEL": self.LOG_LEVEL,
            "SERVICE_NAME": self.SERVICE_NAME,
        }
