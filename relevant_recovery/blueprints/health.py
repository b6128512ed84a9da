"""Health probes: /health reports the backend and Stripe, /healthz and /live only prove the process is up."""

from __future__ import annotations

import time
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify

from relevant_recovery.services.backend import BackendError
from relevant_recovery.services.payments import get_gateway

bp = Blueprint("health", __name__)

STARTED_AT = time.time()


def _backend_part() -> Dict[str, Any]:
    client = current_app.extensions["backend"]
    started = time.perf_counter()
    try:
        events = client.list_events()
    except BackendError as e:
        failed = "fail" if current_app.config.get("HEALTH_STRICT") else "degraded"
        return {"status": failed, "url": client.base, "error": e.message}
    return {
        "status": "ok",
        "url": client.base,
        "events": len(events),
        "latency_ms": int((time.perf_counter() - started) * 1000),
    }


def _stripe_part() -> Dict[str, Any]:
    gateway = get_gateway()
    if not gateway.secret_key:
        return {"status": "degraded", "reason": "no-secret-key"}
    if not gateway.publishable_key:
        return {"status": "degraded", "reason": "no-publishable-key", "mode": gateway.mode}
    return {"status": "ok", "mode": gateway.mode}


@bp.get("/health")
def health():
    parts = {"backend": _backend_part(), "stripe": _stripe_part()}
    states = {p["status"] for p in parts.values()}
    status = "fail" if "fail" in states else "degraded" if "degraded" in states else "ok"
    body = {"status": status, "uptime_s": int(time.time() - STARTED_AT), "parts": parts}
    return jsonify(body), 503 if status == "fail" else 200


@bp.get("/healthz")
def healthz():
    return jsonify({"status": "ok", "env": current_app.config.get("ENV")})


@bp.get("/live")
def live():
    return jsonify({"status": "ok", "uptime_s": int(time.time() - STARTED_AT)})
