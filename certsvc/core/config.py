from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_PREFIX_RE = re.compile(r"^[A-Z0-9]+$")


class ConfigurationError(ValueError):
    """Fatal misconfiguration detected at startup (e.g. no signing secret)."""


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    # Signing key for validation tokens; kept out of repr so it never
    # ends up in a log line or traceback.
    certificate_secret: str = field(repr=False)
    certificate_number_prefix: str = "ROBTEC"
    certificate_validity_years: int = 3
    verify_base_url: str = "http://localhost:8000"
    issue_timeout_seconds: float = 10.0

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    log_json = _parse_bool("LOG_JSON", _getenv("LOG_JSON", "false"))

    secret = os.environ.get("CERTIFICATE_SECRET", "")
    if not secret.strip():
        raise ConfigurationError(
            "CERTIFICATE_SECRET must be set; refusing to start without a signing secret"
        )

    prefix = _getenv("CERTIFICATE_NUMBER_PREFIX", "ROBTEC").upper()
    if not _PREFIX_RE.match(prefix):
        raise ValueError(
            f"CERTIFICATE_NUMBER_PREFIX must be alphanumeric (got {prefix!r})"
        )

    validity_raw = _getenv("CERTIFICATE_VALIDITY_YEARS", "3")
    try:
        validity_years = int(validity_raw)
    except ValueError:
        raise ValueError(
            f"CERTIFICATE_VALIDITY_YEARS must be an integer (got {validity_raw!r})"
        ) from None
    if validity_years < 1:
        raise ValueError(
            f"CERTIFICATE_VALIDITY_YEARS must be >= 1 (got {validity_years})"
        )

    timeout_raw = _getenv("ISSUE_TIMEOUT_SECONDS", "10")
    try:
        issue_timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"ISSUE_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if issue_timeout <= 0:
        raise ValueError(f"ISSUE_TIMEOUT_SECONDS must be > 0 (got {issue_timeout})")

    verify_base_url = _getenv("VERIFY_BASE_URL", "http://localhost:8000").rstrip("/")

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        certificate_secret=secret,
        certificate_number_prefix=prefix,
        certificate_validity_years=validity_years,
        verify_base_url=verify_base_url,
        issue_timeout_seconds=issue_timeout,
    )


SETTINGS = load_settings()
