from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retaildesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retaildesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Items without their own reorder level are flagged at or below this quantity
    LOW_STOCK_DEFAULT_THRESHOLD = int(os.environ.get("LOW_STOCK_DEFAULT_THRESHOLD", "10"))

    # Cancelling a pending online order credits its quantities back to the catalog
    RESTOCK_ON_ORDER_CANCEL = _env_bool("RESTOCK_ON_ORDER_CANCEL", True)

    SALE_NUMBER_PREFIX = os.environ.get("SALE_NUMBER_PREFIX", "SALE")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]

    # Shopping assistant (OpenAI-compatible chat completions gateway)
    ASSISTANT_GATEWAY_URL = os.environ.get(
        "ASSISTANT_GATEWAY_URL",
        "https://ai.gateway.lovable.dev/v1/chat/completions",
    )
    ASSISTANT_API_KEY = os.environ.get("ASSISTANT_API_KEY")
    ASSISTANT_MODEL = os.environ.get("ASSISTANT_MODEL", "google/gemini-2.5-flash")
    ASSISTANT_TIMEOUT_SECONDS = float(os.environ.get("ASSISTANT_TIMEOUT_SECONDS", "30"))
