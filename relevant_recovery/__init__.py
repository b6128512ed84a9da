# relevant_recovery/__init__.py
# Flask app factory for the Relevant Recovery site.
# Pages render HTML; /api, /payments and the health probes answer JSON.

from __future__ import annotations

import logging
import os
import time
from importlib import import_module
from typing import Any, Dict, List, Optional, Tuple, Type, Union
from uuid import uuid4

from dotenv import load_dotenv
from flask import Flask, flash, g, jsonify, redirect, render_template, request, url_for
from markupsafe import Markup, escape
from werkzeug.exceptions import HTTPException, InternalServerError
from werkzeug.middleware.proxy_fix import ProxyFix

# real environment variables always win over .env
load_dotenv(override=False)

from relevant_recovery.config import CONFIG_BY_NAME  # noqa: E402
from relevant_recovery.extensions import init_all_extensions  # noqa: E402
from relevant_recovery.services.backend import BackendAuthError, BackendError  # noqa: E402

ConfigLike = Union[str, Type[Any]]

JSON_PREFIXES = ("/api/", "/payments/")
JSON_PATHS = {"/health", "/healthz", "/live"}
ENV_ALIASES = {"dev": "development", "prod": "production", "test": "testing"}

log = logging.getLogger(__name__)


def _env_name() -> str:
    for key in ("APP_ENV", "ENV", "FLASK_ENV"):
        value = (os.getenv(key) or "").strip().lower()
        if value:
            return ENV_ALIASES.get(value, value)
    return "development"


def _load_config(target: Optional[ConfigLike]) -> Any:
    """
    Accepts a config class, a dotted path ("relevant_recovery.config.TestingConfig")
    or an environment name ("production"). With nothing given, FLASK_CONFIG and
    then APP_ENV/ENV pick the class.
    """
    if target is None:
        target = (os.getenv("FLASK_CONFIG") or "").strip() or _env_name()
    if not isinstance(target, str):
        return target

    name = ENV_ALIASES.get(target.lower(), target.lower())
    if name in CONFIG_BY_NAME:
        return CONFIG_BY_NAME[name]

    module_name, _, attr = target.rpartition(".")
    if not module_name:
        raise RuntimeError(f"Unknown config: {target!r}")
    return getattr(import_module(module_name), attr)


def _request_id() -> str:
    return getattr(g, "request_id", "-")


def _json_error(message: str, status: int):
    resp = jsonify({"ok": False, "error": {"code": status, "message": message, "request_id": _request_id()}})
    resp.status_code = status
    return resp


def _wants_json_response() -> bool:
    path = request.path or ""
    if path.startswith(JSON_PREFIXES) or path in JSON_PATHS:
        return True
    accept = (request.headers.get("Accept") or "").lower()
    return request.is_json or ("application/json" in accept and "text/html" not in accept)


def _error_page(code: int, message: str):
    if _wants_json_response():
        return _json_error(message, code)
    return render_template("errors/error.html", code=code, message=message), code


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
class _RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            record.request_id = _request_id()
        except RuntimeError:
            # no app context
            record.request_id = "-"
        return True


def _configure_logging(app: Flask) -> None:
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s [rid=%(request_id)s]: %(message)s")
    root = logging.getLogger()
    if not root.handlers:
        root.addHandler(logging.StreamHandler())

    for handler in root.handlers:
        if not any(isinstance(f, _RequestIDFilter) for f in handler.filters):
            handler.addFilter(_RequestIDFilter())
        handler.setFormatter(fmt)

    root.setLevel(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    logging.getLogger("werkzeug").setLevel(str(app.config.get("WERKZEUG_LOG_LEVEL", "WARNING")).upper())


# -----------------------------------------------------------------------------
# Jinja helpers
# -----------------------------------------------------------------------------
def _register_jinja_helpers(app: Flask) -> None:
    def usd(v: Any) -> str:
        """Whole dollars, as shown on donation options and event prices."""
        try:
            return "${:,.0f}".format(float(v))
        except (TypeError, ValueError):
            return "$0"

    def cents(v: Any) -> str:
        """Stored donation amounts are cents."""
        try:
            return "${:,.2f}".format(int(v or 0) / 100)
        except (TypeError, ValueError):
            return "$0.00"

    def event_image_url(image: str) -> str:
        if not image:
            return ""
        if "://" in image or image.startswith("//"):
            return image
        return f"{app.config['BACKEND_BASE_URL'].rstrip('/')}/uploads/events/{image.lstrip('/')}"

    def field_error(errors: Optional[Dict[str, str]], name: str) -> Markup:
        message = (errors or {}).get(name)
        return Markup(f'<p class="field-error">{escape(message)}</p>') if message else Markup("")

    app.jinja_env.filters["usd"] = usd
    app.jinja_env.filters["cents"] = cents
    app.jinja_env.globals["event_image_url"] = event_image_url
    app.jinja_env.globals["field_error"] = field_error

    @app.context_processor
    def _brand():
        return {"BRAND_NAME": app.config.get("BRAND_NAME", "Relevant Recovery")}


# -----------------------------------------------------------------------------
# Blueprints
# -----------------------------------------------------------------------------
BLUEPRINTS: List[Tuple[str, str, Optional[str]]] = [
    ("relevant_recovery.routes.main", "main_bp", None),
    ("relevant_recovery.routes.events", "bp", None),
    ("relevant_recovery.routes.donations", "bp", None),
    ("relevant_recovery.routes.booking", "bp", None),
    ("relevant_recovery.admin.routes", "admin_bp", None),
    ("relevant_recovery.blueprints.payments", "bp", "/payments"),
    ("relevant_recovery.blueprints.health", "bp", None),
]


def _register_blueprints(app: Flask) -> None:
    for dotted, attr, prefix in BLUEPRINTS:
        blueprint = getattr(import_module(dotted), attr)
        app.register_blueprint(blueprint, url_prefix=prefix)
        log.debug("Registered blueprint %s at %s", blueprint.name, prefix or "/")


# -----------------------------------------------------------------------------
# Request lifecycle and errors
# -----------------------------------------------------------------------------
def _register_request_lifecycle(app: Flask) -> None:
    @app.before_request
    def _start_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        g.started = time.perf_counter()

    @app.after_request
    def _stamp_response(resp):
        resp.headers["X-Request-ID"] = _request_id()
        if "started" in g:
            resp.headers["X-Response-Time-ms"] = str(int((time.perf_counter() - g.started) * 1000))
        return resp


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        return _error_page(err.code or 500, err.description or err.name)

    @app.errorhandler(BackendAuthError)
    def _admin_token_rejected(err: BackendAuthError):
        from relevant_recovery.admin.auth import sign_out

        log.info("Backend rejected the admin token: %s", err.message)
        sign_out()
        if _wants_json_response():
            return _json_error(err.message, 401)
        flash(err.message, "warning")
        return redirect(url_for("admin.dashboard"))

    @app.errorhandler(BackendError)
    def _backend_unavailable(err: BackendError):
        log.warning("Unhandled backend error: %s (status=%s)", err.message, err.status)
        return _error_page(502, err.message)

    @app.errorhandler(Exception)
    def _uncaught(err: Exception):
        log.exception("Unhandled error")
        return _error_page(500, InternalServerError.description)


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app(config_class: Optional[ConfigLike] = None) -> Flask:
    app = Flask(__name__)

    cfg = _load_config(config_class)
    app.config.from_object(cfg)
    cfg.init_app(app)
    if app.config.get("ENV") in (None, "", "base"):
        app.config["ENV"] = _env_name()
    if app.config["ENV"] == "production":
        app.config["DEBUG"] = False

    app.url_map.strict_slashes = False

    if app.config.get("TRUST_PROXY"):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)

    _configure_logging(app)
    _register_jinja_helpers(app)
    init_all_extensions(app)
    _register_request_lifecycle(app)
    _register_error_handlers(app)
    _register_blueprints(app)

    from relevant_recovery.cli import relevant_recovery_cli

    app.cli.add_command(relevant_recovery_cli)

    log.info(
        "Relevant Recovery ready: env=%s backend=%s stripe=%s",
        app.config["ENV"],
        app.config["BACKEND_BASE_URL"],
        app.extensions["payments"].mode,
    )
    return app
