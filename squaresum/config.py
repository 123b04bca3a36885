# squaresum/config.py
import os


def _optional_int(name):
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else None


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///squaresum.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    RATELIMIT_DEFAULT = "200 per hour; 50 per minute"

    # same seed -> same 60 levels (chip ids included); None picks one at startup
    SQUARESUM_CATALOG_SEED = _optional_int("SQUARESUM_CATALOG_SEED")
    SQUARESUM_PROGRESS_BACKEND = os.environ.get("SQUARESUM_PROGRESS_BACKEND", "memory")  # memory | sql
    SQUARESUM_WARMUP = True
