"""Settings resolved from environment variables."""

import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Tuple

logger = logging.getLogger("image-gallery.utils.environment")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")

TOKEN_STORAGE_SESSION: Final[str] = "session"
TOKEN_STORAGE_PERSISTENT: Final[str] = "persistent"


class ConfigurationError(RuntimeError):
    """Raised when required environment variables are missing or invalid."""


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _api_base_url() -> str:
    """
    Resolve the gallery API base URL.

    ``API_SERVER_LOCATION=local`` selects ``API_SERVER_LOCAL``; any other value
    (or none) selects ``API_SERVER_REMOTE``.
    """
    location = (os.getenv("API_SERVER_LOCATION") or "remote").strip().lower()
    key = "API_SERVER_LOCAL" if location == "local" else "API_SERVER_REMOTE"
    url = (os.getenv(key) or "").strip()
    if not url:
        raise ConfigurationError(
            "API_SERVER_LOCATION, API_SERVER_LOCAL and API_SERVER_REMOTE are not "
            f"configured ({key} is empty)"
        )
    return url.rstrip("/")


def _token_storage() -> str:
    mode = (os.getenv("TOKEN_STORAGE") or TOKEN_STORAGE_SESSION).strip().lower()
    if mode not in (TOKEN_STORAGE_SESSION, TOKEN_STORAGE_PERSISTENT):
        raise ConfigurationError(
            f"TOKEN_STORAGE must be '{TOKEN_STORAGE_SESSION}' or "
            f"'{TOKEN_STORAGE_PERSISTENT}', got {mode!r}"
        )
    return mode


@dataclass(frozen=True)
class AppSettings:
    """
    Runtime configuration of the gallery front end.

    ``cognito_domain``/``cognito_client_id`` are optional: when both are set
    they override the values published by ``GET /v1/config``.
    """

    api_base_url: str
    app_origin: str = "http://localhost:5173"
    session_secret: str = ""
    token_storage: str = TOKEN_STORAGE_SESSION
    token_storage_dir: Path = Path.home() / ".image-gallery" / "sessions"
    cognito_domain: str | None = None
    cognito_client_id: str | None = None
    config_cache_seconds: int = 300
    connect_timeout: float = 5.0
    read_timeout: float = 20.0
    session_idle_seconds: int = 8 * 3600
    persistent_session_days: int = 30
    https_only: bool = False
    log_level: str = "INFO"

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    @property
    def persistent(self) -> bool:
        return self.token_storage == TOKEN_STORAGE_PERSISTENT

    @property
    def provider_override(self) -> bool:
        return bool(self.cognito_domain and self.cognito_client_id)

    @classmethod
    def from_env(cls) -> "AppSettings":
        session_secret = os.getenv("SESSION_SECRET")
        if not session_secret:
            # Generate ephemeral secret – suitable for single-instance dev setups
            session_secret = secrets.token_urlsafe(32)
            logger.warning(
                "Environment variable SESSION_SECRET not set – generated transient "
                "secret. Browser sessions will be lost after process restart."
            )

        storage_dir = os.getenv("TOKEN_STORAGE_DIR")
        cognito_domain = os.getenv("COGNITO_DOMAIN") or None
        cognito_client_id = os.getenv("COGNITO_CLIENT_ID") or None
        if bool(cognito_domain) != bool(cognito_client_id):
            logger.warning(
                "Only one of COGNITO_DOMAIN / COGNITO_CLIENT_ID is set; "
                "falling back to the API /v1/config endpoint."
            )

        settings = cls(
            api_base_url=_api_base_url(),
            app_origin=(os.getenv("APP_ORIGIN") or "http://localhost:5173").rstrip("/"),
            session_secret=session_secret,
            token_storage=_token_storage(),
            token_storage_dir=(
                Path(storage_dir).expanduser()
                if storage_dir
                else Path.home() / ".image-gallery" / "sessions"
            ),
            cognito_domain=cognito_domain,
            cognito_client_id=cognito_client_id,
            config_cache_seconds=int(_float_env("CONFIG_CACHE_SECONDS", 300)),
            connect_timeout=_float_env("HTTP_CONNECT_TIMEOUT", 5.0),
            read_timeout=_float_env("HTTP_READ_TIMEOUT", 20.0),
            session_idle_seconds=int(_float_env("SESSION_IDLE_SECONDS", 8 * 3600)),
            https_only=_truthy(os.getenv("SECURE_COOKIES")),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )
        if settings.persistent:
            logger.info("Using persistent token storage in %s", settings.token_storage_dir)
        return settings
