# backend/backoffice/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///backoffice.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Alert trigger: fixed low-stock threshold, independent of Product.min_stock
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))
    ALERT_DEDUP_WINDOW_HOURS = int(os.environ.get("ALERT_DEDUP_WINDOW_HOURS", "24"))

    # "inline" runs the refresh after commit in the same request,
    # "thread" hands it to a worker thread with its own app context.
    ALERT_DISPATCH_MODE = os.environ.get("ALERT_DISPATCH_MODE", "inline")

    # Tenant id is injected by the upstream authentication layer
    TENANT_HEADER = os.environ.get("TENANT_HEADER", "X-Company-Id")

    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    # Browser origins allowed to call the API (comma-separated in env)
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    )
