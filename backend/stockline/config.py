# backend/stockline/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockline.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///stockline.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Session cookie carrying the opaque session token
    AUTH_COOKIE_NAME = os.environ.get("AUTH_COOKIE_NAME", "stockline_session")
    AUTH_COOKIE_SECURE = _env_bool("AUTH_COOKIE_SECURE", False)
    AUTH_COOKIE_SAMESITE = "Strict"

    SESSION_ABSOLUTE_HOURS = _env_int("SESSION_ABSOLUTE_HOURS", 24)
    SESSION_IDLE_MINUTES = _env_int("SESSION_IDLE_MINUTES", 120)

    # Per client address rate limits for sensitive endpoints
    LOGIN_RATE_LIMIT = _env_int("LOGIN_RATE_LIMIT", 5)
    LOGIN_RATE_WINDOW_SECONDS = _env_int("LOGIN_RATE_WINDOW_SECONDS", 60)
    REGISTER_RATE_LIMIT = _env_int("REGISTER_RATE_LIMIT", 3)
    REGISTER_RATE_WINDOW_SECONDS = _env_int("REGISTER_RATE_WINDOW_SECONDS", 300)

    # Honour X-Forwarded-For only behind a trusted reverse proxy
    TRUST_PROXY_HEADERS = _env_bool("TRUST_PROXY_HEADERS", False)

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    )

    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100
