# backend/kelontong/config.py
from __future__ import annotations
import os


class Config:
    # SQLite DB stored in backend/instance/kelontong.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kelontong.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Gemini advisor; API_KEY is accepted for parity with older deployments
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
    ADVISOR_MODEL = os.environ.get("ADVISOR_MODEL", "gemini-2.5-flash")
    ADVISOR_BASE_URL = os.environ.get(
        "ADVISOR_BASE_URL",
        "https://generativelanguage.googleapis.com/v1beta",
    )
    ADVISOR_TIMEOUT_SECONDS = float(os.environ.get("ADVISOR_TIMEOUT_SECONDS", "20"))

    # Products below this many units are reported as low stock
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
