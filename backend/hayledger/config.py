# backend/hayledger/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file next to the instance by default; point DATABASE_URL at Postgres in production
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///hayledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identity is resolved upstream; these headers are trusted only behind the auth proxy
    IDENTITY_USER_HEADER = os.environ.get("IDENTITY_USER_HEADER", "X-User-Id")
    IDENTITY_ORG_HEADER = os.environ.get("IDENTITY_ORG_HEADER", "X-Org-Id")
    IDENTITY_ROLE_HEADER = os.environ.get("IDENTITY_ROLE_HEADER", "X-Org-Role")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
