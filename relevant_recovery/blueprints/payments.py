"""
Payments blueprint

Mount: /payments  (register blueprint with url_prefix="/payments")

Endpoints:
  GET  /payments/config    publishable key + mode for Stripe.js
  GET  /payments/intent/<payment_intent_id>
                           status of a PaymentIntent (used by the browser
                           after a redirect-less confirmPayment)

Contracts:
- API-style JSON: never caches; consistent ok/error shape.
- Never exposes the secret key.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, g, jsonify

from relevant_recovery.extensions import csrf
from relevant_recovery.services.payments import get_gateway

bp = Blueprint("payments", __name__)

# API-style JSON, read-only
csrf.exempt(bp)

CURRENCY = "usd"


def _json_response(payload: Dict[str, Any], status: int = 200):
    resp = jsonify(payload)
    resp.status_code = int(status)
    resp.headers.setdefault("Cache-Control", "no-store, no-cache, must-revalidate, max-age=0")
    resp.headers.setdefault("Pragma", "no-cache")
    resp.headers.setdefault("Expires", "0")
    return resp


def _json_ok(payload: Dict[str, Any], status: int = 200):
    payload.setdefault("ok", True)
    return _json_response(payload, status)


def _json_error(message: str, status: int, extra: Optional[Dict[str, Any]] = None):
    body: Dict[str, Any] = {
        "ok": False,
        "error": {"code": int(status), "message": message, "request_id": getattr(g, "request_id", "-")},
    }
    if extra:
        body["error"].update(extra)
    return _json_response(body, status)


@bp.get("/config")
def payments_config():
    gateway = get_gateway()
    return _json_ok(
        {
            "publishableKey": gateway.publishable_key,
            "mode": gateway.mode,
            "enabled": gateway.enabled,
            "currency": CURRENCY,
        }
    )


@bp.get("/intent/<payment_intent_id>")
def intent_status(payment_intent_id: str):
    gateway = get_gateway()
    if not gateway.enabled:
        return _json_error("Stripe is not configured", 503, extra={"mode": gateway.mode})

    result = gateway.retrieve_status(payment_intent_id)
    if result.error:
        return _json_error(result.error, 400, extra={"status": result.status})
    return _json_ok({"paymentIntentId": result.payment_intent_id, "status": result.status})
