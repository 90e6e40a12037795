from __future__ import annotations

import os
from dataclasses import dataclass

_PREFIX = "BILLED_"
_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})
_FALSY = frozenset({"0", "false", "no", "n", "off"})


def _raw(name: str) -> str | None:
    # blank counts as unset
    value = os.environ.get(_PREFIX + name, "").strip()
    return value or None


def _str(name: str, default: str) -> str:
    return _raw(name) or default


def _int(name: str, default: int) -> int:
    value = _raw(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _bool(name: str, default: bool) -> bool:
    value = (_raw(name) or "").lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    log_level: str
    log_json: bool
    log_path: str | None
    log_rotation_mb: int
    log_retention_days: int
    max_upload_bytes: int
    db_path: str
    upload_dir: str
    public_base_url: str
    jwt_secret: str
    jwt_algorithm: str
    jwt_expire_minutes: int


def load_settings() -> Settings:
    """Snapshot of the ``BILLED_*`` environment; malformed values fall back to defaults."""
    upload_mb = _int("MAX_UPLOAD_MB", 10)
    return Settings(
        host=_str("HOST", "127.0.0.1"),
        port=_int("PORT", 5678),
        log_level=_str("LOG_LEVEL", "INFO").upper(),
        log_json=_bool("LOG_JSON", False),
        log_path=_raw("LOG_PATH"),
        log_rotation_mb=max(1, _int("LOG_ROTATION_MB", 20)),
        log_retention_days=max(1, _int("LOG_RETENTION_DAYS", 14)),
        max_upload_bytes=(upload_mb if upload_mb > 0 else 10) * 1024 * 1024,
        db_path=_str("DB_PATH", "data/billed.sqlite3"),
        upload_dir=_str("UPLOAD_DIR", "public"),
        public_base_url=_str("PUBLIC_BASE_URL", "http://localhost:5678/public").rstrip("/"),
        jwt_secret=_str("JWT_SECRET", "dev-change-me"),
        jwt_algorithm=_str("JWT_ALGORITHM", "HS256"),
        jwt_expire_minutes=_int("JWT_EXPIRE_MINUTES", 24 * 60),
    )
