# backend/kasir/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///kasir.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # bcrypt cost factor (tests use 4)
    BCRYPT_ROUNDS = int(os.environ.get("KASIR_BCRYPT_ROUNDS", "12"))

    # Outlet defaults (new outlets inherit these unless the request overrides them)
    DEFAULT_TIMEZONE = os.environ.get("KASIR_DEFAULT_TIMEZONE", "Asia/Jakarta")
    DEFAULT_CURRENCY = os.environ.get("KASIR_DEFAULT_CURRENCY", "IDR")
    DEFAULT_TAX_RATE = float(os.environ.get("KASIR_DEFAULT_TAX_RATE", "11.0"))

    # Maximum rows returned by GET /api/transactions
    TRANSACTION_LIST_LIMIT = int(os.environ.get("KASIR_TRANSACTION_LIST_LIMIT", "100"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "KASIR_CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]
