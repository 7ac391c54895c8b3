# backend/storefront/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Orders are priced in this currency unless the store says otherwise
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "BWP")

    # Collection (pickup) codes
    COLLECTION_CODE_LENGTH = 6
    COLLECTION_CODE_TTL_SECONDS = int(os.environ.get("COLLECTION_CODE_TTL_SECONDS", "120"))
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "http://localhost:5000")

    # QR code images
    ASSET_STORE_DIR = os.environ.get("ASSET_STORE_DIR", "instance/assets")
    ASSET_BASE_URL = os.environ.get("ASSET_BASE_URL", "http://localhost:5000/assets")

    # Generic card / mobile money gateway
    PAYMENT_PROVIDER_URL = os.environ.get("PAYMENT_PROVIDER_URL")
    PAYMENT_PROVIDER_API_KEY = os.environ.get("PAYMENT_PROVIDER_API_KEY")
    PAYMENT_PROVIDER_TIMEOUT = float(os.environ.get("PAYMENT_PROVIDER_TIMEOUT", "15"))
    # Payment methods settled through the gateway (everything else is manual)
    PAYMENT_PROVIDER_METHODS = ("CARD", "MOBILE_MONEY")

    API_TOKEN_TTL_HOURS = int(os.environ.get("API_TOKEN_TTL_HOURS", "24"))
