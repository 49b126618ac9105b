# backend/kiosko/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/kiosko.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kiosko.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Percent applied to (subtotal - discount) when no business.tax_rate setting exists
    DEFAULT_TAX_RATE = os.environ.get("DEFAULT_TAX_RATE", "0")

    # Reject checkouts while the cash drawer is closed
    REQUIRE_OPEN_REGISTER = os.environ.get("REQUIRE_OPEN_REGISTER", "false").lower() == "true"

    RECEIPT_PREFIX = os.environ.get("RECEIPT_PREFIX", "R")

    # "database" survives restarts, "memory" lives as long as the process
    HELD_ORDER_BACKEND = os.environ.get("HELD_ORDER_BACKEND", "database")

    COMMIT_RETRY_ATTEMPTS = int(os.environ.get("COMMIT_RETRY_ATTEMPTS", "3"))
