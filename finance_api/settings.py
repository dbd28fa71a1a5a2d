import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    port: int = 5001
    rate_limit: int = 100
    rate_window_seconds: int = 60
    upstash_url: str | None = None
    upstash_token: str | None = None
    trust_forwarded_for: bool = False
    keepalive_enabled: bool = False
    keepalive_url: str | None = None
    keepalive_interval_seconds: int = 840
    log_level: str = "INFO"

    @property
    def rate_counter_configured(self) -> bool:
        return bool(self.upstash_url and self.upstash_token)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 1:
        raise ValueError(f"{name} must be positive")
    return value


def _bool_env(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _resolve_db_path(database_url: str | None) -> Path:
    if not database_url:
        return Path.cwd() / ".data" / "finance.sqlite"
    if database_url.startswith("sqlite:///"):
        return Path(database_url[len("sqlite:///") :])
    if "://" in database_url:
        raise ValueError("DATABASE_URL must be a sqlite:/// URL or a file path")
    return Path(database_url)


def _log_level_env() -> str:
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError("LOG_LEVEL must be a logging level name")
    return level


def get_settings() -> Settings:
    load_dotenv()
    db_path = _resolve_db_path(os.getenv("DATABASE_URL"))
    port = _int_env("PORT", 5001)
    return Settings(
        data_dir=db_path.parent,
        db_path=db_path,
        port=port,
        rate_limit=_int_env("RATE_LIMIT_REQUESTS", 100),
        rate_window_seconds=_int_env("RATE_LIMIT_WINDOW_SECONDS", 60),
        upstash_url=os.getenv("UPSTASH_REDIS_REST_URL") or None,
        upstash_token=os.getenv("UPSTASH_REDIS_REST_TOKEN") or None,
        trust_forwarded_for=_bool_env("TRUST_FORWARDED_FOR"),
        keepalive_enabled=os.getenv("APP_ENV", "").strip().lower() == "production",
        keepalive_url=os.getenv("API_URL") or None,
        keepalive_interval_seconds=_int_env("KEEPALIVE_INTERVAL_SECONDS", 840),
        log_level=_log_level_env(),
    )
