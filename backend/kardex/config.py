# backend/kardex/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///kardex.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds a transaction waits on a locked stock row before giving up.
    # SQLite receives it as the driver busy timeout; other backends should
    # set their own lock timeout (innodb_lock_wait_timeout, lock_timeout).
    LOCK_WAIT_TIMEOUT_SECONDS = float(os.environ.get("LOCK_WAIT_TIMEOUT_SECONDS", "10"))

    # Stock at or below this quantity is reported as critical
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "12"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    CORS_ALLOWED_ORIGINS = {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    }


def engine_options(database_uri: str, lock_wait_timeout: float) -> dict:
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": lock_wait_timeout, "check_same_thread": False}}
    return {"pool_pre_ping": True}
