#!/usr/bin/env python3
from __future__ import annotations

"""
Relevant Recovery dev launcher.

    ./run.py                      development server with reload
    ./run.py --env production     production config, no reload, preflight warnings
    ./run.py --routes             print the URL map and exit
    gunicorn "wsgi:app"           production serving

Dotenv files load as .env then .env.<env> then .env.local (dev/test only).
Variables already set in the OS environment are never replaced.
"""

import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import dotenv_values

log = logging.getLogger("relevant_recovery.run")

ENV_NAMES = {"dev": "development", "prod": "production", "test": "testing"}
CONFIGS = {
    "development": "relevant_recovery.config.DevelopmentConfig",
    "testing": "relevant_recovery.config.TestingConfig",
    "production": "relevant_recovery.config.ProductionConfig",
}
REQUIRED_IN_PROD = ("SECRET_KEY", "BACKEND_BASE_URL", "STRIPE_SECRET_KEY", "STRIPE_PUBLISHABLE_KEY")


def env_name(value: Optional[str]) -> str:
    v = (value or "").strip().lower()
    return ENV_NAMES.get(v, v or "development")


def load_env_files(env: str) -> List[Path]:
    """Apply the dotenv stack for ``env``; later files win over earlier ones."""
    names = [".env", f".env.{env}"]
    if env != "production":
        names.append(".env.local")

    protected = set(os.environ)
    loaded = []
    for path in map(Path, names):
        if not path.is_file():
            continue
        for key, value in dotenv_values(path).items():
            if value is not None and key not in protected:
                os.environ[key] = value
        loaded.append(path)
    return loaded


def production_warnings() -> List[str]:
    warnings = [f"{name} is not set." for name in REQUIRED_IN_PROD if not os.getenv(name)]

    if (os.getenv("STRIPE_SECRET_KEY") or "").startswith("sk_test_"):
        warnings.append("STRIPE_SECRET_KEY is a test key; donations and tickets will not be charged.")
    if (os.getenv("PUBLIC_BASE_URL") or "").startswith("http://"):
        warnings.append("PUBLIC_BASE_URL uses http://; Stripe return URLs should be https.")
    return warnings


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the Relevant Recovery site locally.")
    p.add_argument("--env", default=os.getenv("ENV") or os.getenv("APP_ENV"), help="development, testing or production")
    p.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    p.add_argument("--port", type=int, default=int(os.getenv("PORT", "5000")))
    p.add_argument("--no-reload", action="store_true", help="Disable the Werkzeug reloader.")
    p.add_argument("--routes", action="store_true", help="Print the URL map and exit.")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    env = env_name(args.env)
    if env not in CONFIGS:
        raise SystemExit(f"Unknown environment: {env}")

    loaded = load_env_files(env)
    os.environ["ENV"] = env

    from relevant_recovery import create_app

    app = create_app(os.getenv("FLASK_CONFIG") or CONFIGS[env])
    log.info("env=%s config=%s dotenv=%s", env, app.config.get("ENV"), [str(p) for p in loaded] or "-")
    log.info("backend=%s stripe=%s", app.config.get("BACKEND_BASE_URL"), app.extensions["payments"].mode)

    if env == "production":
        for message in production_warnings():
            log.warning(message)

    if args.routes:
        for rule in sorted(app.url_map.iter_rules(), key=str):
            methods = ",".join(sorted((rule.methods or set()) - {"HEAD", "OPTIONS"}))
            print(f"{rule}  ->  {rule.endpoint} [{methods}]")
        return 0

    debug = env != "production" and bool(app.config.get("DEBUG"))
    app.run(host=args.host, port=args.port, debug=debug, use_reloader=debug and not args.no_reload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
