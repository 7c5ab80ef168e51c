from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    public_base_url: str
    # Failed secret-key attempts before the signer is blocked
    rate_limit_max_attempts: int
    rate_limit_block_seconds: int
    # Argon2 time_cost for stored secret-key hashes
    secret_key_hash_time_cost: int

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
    log_json_raw = _getenv("LOG_JSON", "false").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw not in ("true", "false", "1", "0", "yes", "no"):
        raise ValueError(f"LOG_JSON must be a boolean (got {log_json_raw!r})")

    port = _getenv_int("PORT", 8000, minimum=1)

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    public_base_url = _getenv("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("true", "1", "yes"),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        public_base_url=public_base_url,
        rate_limit_max_attempts=_getenv_int("RATE_LIMIT_MAX_ATTEMPTS", 5, minimum=1),
        rate_limit_block_seconds=_getenv_int(
            "RATE_LIMIT_BLOCK_SECONDS", 900, minimum=1
        ),
        secret_key_hash_time_cost=_getenv_int(
            "SECRET_KEY_HASH_TIME_COST", 3, minimum=1
        ),
    )


SETTINGS = load_settings()
