"""Environment-driven settings, validated once at import.

  APP_ENV                dev | test | prod            (dev)
  LOG_LEVEL              debug | info | warning | error (info)
  LOG_JSON               true | false                 (false)
  PORT                   integer                      (8000)
  REDIS_URL              redis://...; unset = in-memory store
  STORE_KEY_PREFIX       prefix of the four store slots (lms:)
  STORE_REFRESH_SECONDS  refresh interval, 0 disables  (3)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUE = ("true", "1")
_FALSE = ("false", "0")


def _env(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _choice(name: str, default: str, allowed: tuple[str, ...], shown: str) -> str:
    value = _env(name, default).lower()
    if value not in allowed:
        raise ValueError(f"{name} must be {shown} (got {value!r})")
    return value


def _number(name: str, default: str, kind: type[int] | type[float], shown: str):
    raw = _env(name, default)
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{name} must be {shown} (got {raw!r})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    redis_url: str | None
    store_key_prefix: str
    store_refresh_seconds: float

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def refresh_enabled(self) -> bool:
        return self.store_refresh_seconds > 0


def load_settings() -> Settings:
    app_env = _choice("APP_ENV", "dev", ("dev", "test", "prod"), "dev|test|prod")
    log_level = _choice(
        "LOG_LEVEL",
        "info",
        ("debug", "info", "warning", "error"),
        "debug|info|warning|error",
    )
    log_json = _choice("LOG_JSON", "false", _TRUE + _FALSE, "true|false") in _TRUE
    port = _number("PORT", "8000", int, "an integer")

    refresh_seconds = _number("STORE_REFRESH_SECONDS", "3", float, "a number")
    if refresh_seconds < 0:
        raise ValueError(f"STORE_REFRESH_SECONDS must be >= 0 (got {refresh_seconds})")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level=log_level,
        log_json=log_json,
        port=port,
        redis_url=_env("REDIS_URL", "") or None,
        store_key_prefix=_env("STORE_KEY_PREFIX", "lms:"),
        store_refresh_seconds=refresh_seconds,
    )


SETTINGS = load_settings()
