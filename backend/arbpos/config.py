# backend/arbpos/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/arbpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///arbpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Licensing
    TOKEN_PREFIX = os.environ.get("TOKEN_PREFIX", "ARB")

    # Request serializer: bounded wait on the global lock
    LOCK_TIMEOUT_SECONDS = _env_int("LOCK_TIMEOUT_SECONDS", 10)

    # Operator account
    DEFAULT_ADMIN_USERNAME = os.environ.get("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "admin123")
    ADMIN_SESSION_TTL_HOURS = _env_int("ADMIN_SESSION_TTL_HOURS", 12)
    ADMIN_SESSION_IDLE_MINUTES = _env_int("ADMIN_SESSION_IDLE_MINUTES", 120)
    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Outbound notifications
    WEBHOOK_TIMEOUT_SECONDS = _env_int("WEBHOOK_TIMEOUT_SECONDS", 5)

    # Ledger
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "UTC")
    HISTORY_LIMIT = _env_int("HISTORY_LIMIT", 100)

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    }
