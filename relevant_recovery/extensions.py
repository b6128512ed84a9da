import logging
from typing import Any

from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

from relevant_recovery.services.backend import NO_TOKEN_MESSAGE, init_backend
from relevant_recovery.services.payments import init_payments

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Core singletons
# ─────────────────────────────────────────────────────────────
login_manager = LoginManager()
csrf = CSRFProtect()


# ─────────────────────────────────────────────────────────────
# Init all extensions
# ─────────────────────────────────────────────────────────────
def init_all_extensions(app: Any) -> None:
    """
    Order matters:
      - CSRF before blueprints so exemptions can be declared at registration
      - backend + Stripe clients are app-scoped and live in app.extensions
    """
    csrf.init_app(app)

    login_manager.init_app(app)
    login_manager.login_view = "admin.dashboard"
    login_manager.login_message = NO_TOKEN_MESSAGE
    login_manager.login_message_category = "warning"

    from relevant_recovery.admin.auth import load_admin

    login_manager.user_loader(load_admin)

    init_backend(app)
    init_payments(app)
    log.debug("Extensions initialized for %s", app.import_name)


__all__ = [
    "csrf",
    "init_all_extensions",
    "login_manager",
]
