# relevant_recovery/services/payments.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import stripe
from flask import current_app

log = logging.getLogger(__name__)

NOT_CONFIGURED = "Stripe is not configured on the server."


def guess_stripe_mode(key: Optional[str]) -> str:
    k = (key or "").strip()
    if not k:
        return "disabled"
    if k.startswith(("sk_live_", "pk_live_", "rk_live_")):
        return "live"
    if k.startswith(("sk_test_", "pk_test_", "rk_test_")):
        return "test"
    return "unknown"


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of looking up a PaymentIntent: a Stripe status, or the provider's error message."""

    status: str
    payment_intent_id: str = ""
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded" and not self.error


class PaymentGateway:
    """
    Server-side view of Stripe: keys, mode, and PaymentIntent lookups.

    Each gateway owns its own `stripe.StripeClient`; nothing is written to the
    module-level `stripe.api_key`. Lookups are not retried unless
    `max_network_retries` says so.
    """

    def __init__(
        self,
        secret_key: str,
        publishable_key: str,
        max_network_retries: int = 0,
        client: Optional[stripe.StripeClient] = None,
    ) -> None:
        self.secret_key = (secret_key or "").strip()
        self.publishable_key = (publishable_key or "").strip()
        self.max_network_retries = max(0, int(max_network_retries or 0))
        self._client = client

    @property
    def mode(self) -> str:
        return guess_stripe_mode(self.secret_key or self.publishable_key)

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key.startswith("sk_") and self.publishable_key.startswith("pk_"))

    @property
    def client(self) -> Optional[stripe.StripeClient]:
        if self._client is None and self.secret_key:
            self._client = stripe.StripeClient(self.secret_key, max_network_retries=self.max_network_retries)
        return self._client

    def retrieve_status(self, payment_intent_id: str) -> PaymentResult:
        pid = (payment_intent_id or "").strip()
        if not pid:
            return PaymentResult(status="missing", error="Missing payment reference.")
        client = self.client
        if client is None:
            return PaymentResult(status="error", payment_intent_id=pid, error=NOT_CONFIGURED)
        try:
            intent = client.payment_intents.retrieve(pid)
        except stripe.StripeError as exc:
            msg = getattr(exc, "user_message", None) or str(exc) or "Payment failed."
            log.warning("Stripe retrieve failed for %s: %s", pid, msg)
            return PaymentResult(status="error", payment_intent_id=pid, error=msg)

        status = str(getattr(intent, "status", "") or "unknown")
        return PaymentResult(status=status, payment_intent_id=pid)


def init_payments(app) -> PaymentGateway:
    gateway = PaymentGateway(
        app.config.get("STRIPE_SECRET_KEY") or "",
        app.config.get("STRIPE_PUBLISHABLE_KEY") or "",
        max_network_retries=app.config.get("STRIPE_MAX_NETWORK_RETRIES") or 0,
    )
    if gateway.enabled:
        app.logger.info("Stripe initialized (%s mode)", gateway.mode)
    else:
        app.logger.warning("Stripe payments disabled: STRIPE_SECRET_KEY and STRIPE_PUBLISHABLE_KEY are both required")
    app.extensions["payments"] = gateway
    return gateway


def get_gateway() -> PaymentGateway:
    return current_app.extensions["payments"]
