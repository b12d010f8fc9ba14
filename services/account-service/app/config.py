from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os
from typing import Mapping


class ConfigurationError(RuntimeError):
    """Raised when the process environment cannot produce usable settings."""


def _split_origins(raw: str) -> tuple[str, ...]:
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration values exposed to FastAPI components."""

    database_url: str
    jwt_secret: str
    app_name: str = "account-service"
    version: str = "0.1.0"
    jwt_issuer: str = "account-service"
    api_prefix: str = "/api/auth"
    cors_origins: tuple[str, ...] = field(default=("http://localhost:3000",))
    http_host: str = "0.0.0.0"
    http_port: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        ``POSTGRES_URL`` and ``JWT_SECRET`` are mandatory; everything else has a
        development default.
        """
        env = os.environ if environ is None else environ
        missing = [name for name in ("POSTGRES_URL", "JWT_SECRET") if not env.get(name, "").strip()]
        if missing:
            raise ConfigurationError(f"missing required environment variables: {', '.join(missing)}")

        try:
            http_port = int(env.get("HTTP_PORT", "5000"))
        except ValueError as exc:
            raise ConfigurationError("HTTP_PORT must be an integer") from exc

        return cls(
            database_url=env["POSTGRES_URL"].strip(),
            jwt_secret=env["JWT_SECRET"],
            jwt_issuer=env.get("JWT_ISSUER", "account-service"),
            api_prefix=env.get("API_PREFIX", "/api/auth").rstrip("/"),
            cors_origins=_split_origins(env.get("CORS_ORIGINS", "http://localhost:3000")),
            http_host=env.get("HTTP_HOST", "0.0.0.0"),
            http_port=http_port,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings.from_env()
