# backend/kaizen_pos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = "dev-secret-key-change-me"

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = "sqlite:///kaizen_pos.sqlite3"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # VAT in basis points (1200 = 12%)
    VAT_RATE_BPS = 1200

    STOCK_HISTORY_DEFAULT_LIMIT = 50
    STOCK_HISTORY_MAX_LIMIT = 200

    COMMIT_RETRY_ATTEMPTS = 3
    COMMIT_RETRY_BACKOFF = 0.1

    CORS_ALLOWED_ORIGINS = (
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    )

    @classmethod
    def from_env(cls) -> dict:
        """
        Resolve config values from the environment at app creation time.

        Reading os.environ here (and not at class definition) lets tests and
        scripts point DATABASE_URL somewhere else after the module is imported.
        """
        values = {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.isupper()
        }
        values["SECRET_KEY"] = os.environ.get("SECRET_KEY", cls.SECRET_KEY)
        values["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
            "DATABASE_URL",  # optional alternative location
            cls.SQLALCHEMY_DATABASE_URI,
        )
        if os.environ.get("VAT_RATE_BPS"):
            values["VAT_RATE_BPS"] = int(os.environ["VAT_RATE_BPS"])
        if os.environ.get("CORS_ALLOWED_ORIGINS"):
            values["CORS_ALLOWED_ORIGINS"] = tuple(
                origin.strip()
                for origin in os.environ["CORS_ALLOWED_ORIGINS"].split(",")
                if origin.strip()
            )
        return values
