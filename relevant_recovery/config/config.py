# relevant_recovery/config/config.py
# Settings come from the environment; each class only fills the gaps.

from __future__ import annotations

import os
from datetime import timedelta
from typing import Optional

DEFAULT_BACKEND_BASE_URL = "https://relevant-recovery-back-end.onrender.com"
DEV_SECRET_KEY = "dev-change-me"


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    """Environment value with blank treated as unset."""
    value = (os.getenv(name) or "").strip()
    return value or default


def env_flag(name: str, default: bool = False) -> bool:
    value = (env_str(name) or "").lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    return default


def env_int(name: str, default: int) -> int:
    try:
        return int(env_str(name) or default)
    except ValueError:
        return default


def base_url(value: Optional[str]) -> str:
    return (value or "").strip().rstrip("/")


class BaseConfig:
    ENV = (env_str("APP_ENV") or env_str("ENV") or "base").lower()
    DEBUG = env_flag("FLASK_DEBUG")
    TESTING = False

    BRAND_NAME = env_str("BRAND_NAME", "Relevant Recovery")

    SECRET_KEY = env_str("SECRET_KEY", DEV_SECRET_KEY)
    WTF_CSRF_ENABLED = True

    PUBLIC_BASE_URL = base_url(env_str("PUBLIC_BASE_URL", ""))
    PREFERRED_URL_SCHEME = env_str("PREFERRED_URL_SCHEME", "https")
    TRUST_PROXY = env_flag("TRUST_PROXY")

    # the admin's backend token rides in the signed session cookie
    SESSION_COOKIE_NAME = env_str("SESSION_COOKIE_NAME", "relevant_recovery")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = env_str("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE = True
    PERMANENT_SESSION_LIFETIME = timedelta(hours=env_int("SESSION_HOURS", 12))

    LOG_LEVEL = env_str("LOG_LEVEL", "INFO")
    WERKZEUG_LOG_LEVEL = env_str("WERKZEUG_LOG_LEVEL", "WARNING")

    BACKEND_BASE_URL = base_url(env_str("BACKEND_BASE_URL", DEFAULT_BACKEND_BASE_URL))
    BACKEND_TIMEOUT = env_int("BACKEND_TIMEOUT", 15)

    STRIPE_SECRET_KEY = env_str("STRIPE_SECRET_KEY", "")
    STRIPE_PUBLISHABLE_KEY = env_str("STRIPE_PUBLISHABLE_KEY", env_str("REACT_APP_STRIPE_PUBLISHABLE_KEY", ""))
    STRIPE_MAX_NETWORK_RETRIES = env_int("STRIPE_MAX_NETWORK_RETRIES", 0)

    ADMIN_PAGE_SIZE = env_int("ADMIN_PAGE_SIZE", 10)

    # a failing backend turns /health into a 503 instead of "degraded"
    HEALTH_STRICT = env_flag("HEALTH_STRICT")

    @classmethod
    def init_app(cls, app) -> None:
        """Runs in create_app() right after the class is loaded into app.config."""
        app.config["BACKEND_BASE_URL"] = base_url(app.config.get("BACKEND_BASE_URL")) or DEFAULT_BACKEND_BASE_URL


class DevelopmentConfig(BaseConfig):
    ENV = "development"
    DEBUG = True

    SESSION_COOKIE_SECURE = False
    PREFERRED_URL_SCHEME = env_str("PREFERRED_URL_SCHEME", "http")


class TestingConfig(BaseConfig):
    ENV = "testing"
    TESTING = True
    DEBUG = False

    SECRET_KEY = "testing-secret"
    WTF_CSRF_ENABLED = False
    SESSION_COOKIE_SECURE = False
    PREFERRED_URL_SCHEME = "http"
    TRUST_PROXY = False
    HEALTH_STRICT = False

    BACKEND_BASE_URL = "http://backend.test"
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_PUBLISHABLE_KEY = "pk_test_dummy"


class ProductionConfig(BaseConfig):
    ENV = "production"
    DEBUG = False

    SESSION_COOKIE_SECURE = True
    TRUST_PROXY = env_flag("TRUST_PROXY", True)

    @classmethod
    def init_app(cls, app) -> None:
        super().init_app(app)

        if app.config.get("SECRET_KEY") in (None, "", DEV_SECRET_KEY):
            raise RuntimeError("SECRET_KEY must be set to a strong random value in production.")
        if app.config["BACKEND_BASE_URL"].startswith("http://"):
            raise RuntimeError("BACKEND_BASE_URL must be https:// in production.")
        if env_flag("FLASK_DEBUG"):
            raise RuntimeError("FLASK_DEBUG must be 0 in production.")
