# relevant_recovery/booking/wizard.py
"""
Ticket booking wizard.

An explicit state machine over four steps:

    DETAILS -> INFO -> PAYMENT -> CONFIRMED

Moves are one step at a time in either direction (CONFIRMED is terminal).
Only two transitions touch the network:

  INFO -> PAYMENT     creates the booking on the backend and stores the Stripe
                      client secret + ticket id. If the wizard already holds a
                      booking for the same customer details and quantity, that
                      booking is reused instead of creating another one.
  PAYMENT -> CONFIRMED
                      after Stripe reports `succeeded`, asks the backend to
                      confirm the payment server-side.

All failures leave the wizard on its current step with the entered data intact;
the caller re-renders and the user retries by hand.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

from relevant_recovery.models import Event, InvalidStepError, clamp_quantity
from relevant_recovery.services.backend import BackendError, BackendValidationError
from relevant_recovery.services.payments import PaymentResult

log = logging.getLogger(__name__)

DEFAULT_COUNTRY = "United States"
CUSTOMER_FIELDS = ("name", "email", "phone", "city", "state", "country")

REQUIRED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("name", "Name is required"),
    ("email", "Email is required"),
    ("phone", "Phone is required"),
)

# backend validation keys -> local form fields
SERVER_FIELD_MAP = {
    "customerName": "name",
    "customerEmail": "email",
    "customerPhone": "phone",
    "customerCity": "city",
    "customerState": "state",
    "customerCountry": "country",
    "quantity": "quantity",
}

BOOKING_FAILED = "Failed to create booking. Please try again."
CONFIRMATION_FAILED = "Payment succeeded but confirmation failed. Please contact support."
REQUIRES_ACTION = "Payment requires additional verification. Please try again."
REQUIRES_PAYMENT_METHOD = "Payment method failed. Please try a different card."
INTENT_MISMATCH = "This payment does not belong to the current booking."


class Step(IntEnum):
    DETAILS = 0
    INFO = 1
    PAYMENT = 2
    CONFIRMED = 3


def map_server_errors(errors: Dict[str, str]) -> Tuple[Dict[str, str], str]:
    """Split a backend error map into (local field errors, first page-level message)."""
    fields: Dict[str, str] = {}
    page = ""
    for key, msg in errors.items():
        local = SERVER_FIELD_MAP.get(key)
        if local:
            fields[local] = msg
        elif not page:
            page = msg
    return fields, page


def intent_id_from_secret(client_secret: Optional[str]) -> str:
    s = client_secret or ""
    return s.split("_secret_", 1)[0] if "_secret_" in s else ""


def _blank_customer() -> Dict[str, str]:
    out = {k: "" for k in CUSTOMER_FIELDS}
    out["country"] = DEFAULT_COUNTRY
    return out


@dataclass
class WizardState:
    event_id: str
    step: Step = Step.DETAILS
    customer: Dict[str, str] = field(default_factory=_blank_customer)
    quantity: int = 1
    special_requests: str = ""
    client_secret: Optional[str] = None
    ticket_id: Optional[str] = None
    booked_for: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["step"] = int(self.step)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], event_id: str) -> "WizardState":
        if not isinstance(data, dict) or data.get("event_id") != event_id:
            return cls(event_id=event_id)
        customer = _blank_customer()
        customer.update({k: str(v) for k, v in (data.get("customer") or {}).items() if k in CUSTOMER_FIELDS})
        try:
            step = Step(int(data.get("step", 0)))
        except ValueError:
            step = Step.DETAILS
        return cls(
            event_id=event_id,
            step=step,
            customer=customer,
            quantity=clamp_quantity(data.get("quantity", 1)),
            special_requests=str(data.get("special_requests") or ""),
            client_secret=data.get("client_secret") or None,
            ticket_id=data.get("ticket_id") or None,
            booked_for=data.get("booked_for") or None,
            field_errors=dict(data.get("field_errors") or {}),
            error=str(data.get("error") or ""),
        )


class BookingWizard:
    def __init__(self, event: Event, backend: Any, state: Optional[WizardState] = None) -> None:
        self.event = event
        self.backend = backend
        self.state = state or WizardState(event_id=event.id)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def step(self) -> Step:
        return self.state.step

    @property
    def pay_label(self) -> str:
        return self.event.pay_label(self.state.quantity)

    @property
    def confirmation_path(self) -> str:
        return f"/booking-confirmation/{self.state.ticket_id}"

    def _clear_messages(self) -> None:
        self.state.field_errors = {}
        self.state.error = ""

    def _move(self, target: Step) -> None:
        if self.state.step == Step.CONFIRMED:
            raise InvalidStepError("Booking is already confirmed.")
        if abs(int(target) - int(self.state.step)) != 1:
            raise InvalidStepError(f"Cannot move from {self.state.step.name} to {target.name}.")
        self.state.step = target

    # ------------------------------------------------------------------
    # Form state
    # ------------------------------------------------------------------
    def set_quantity(self, value: Any) -> int:
        self.state.quantity = clamp_quantity(value)
        return self.state.quantity

    def increment(self) -> int:
        return self.set_quantity(self.state.quantity + 1)

    def decrement(self) -> int:
        return self.set_quantity(self.state.quantity - 1)

    def update_customer(self, **fields: Any) -> None:
        for key, val in fields.items():
            if key in CUSTOMER_FIELDS and val is not None:
                self.state.customer[key] = str(val).strip()
                self.state.field_errors.pop(key, None)
        if "special_requests" in fields and fields["special_requests"] is not None:
            self.state.special_requests = str(fields["special_requests"]).strip()

    def validate_customer(self) -> Dict[str, str]:
        return {name: msg for name, msg in REQUIRED_FIELDS if not self.state.customer.get(name, "").strip()}

    def _fingerprint(self) -> str:
        return json.dumps({"customer": self.state.customer, "quantity": self.state.quantity}, sort_keys=True)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def back(self) -> Step:
        if self.state.step == Step.DETAILS:
            raise InvalidStepError("Already on the first step.")
        self._clear_messages()
        self._move(Step(int(self.state.step) - 1))
        return self.state.step

    def continue_to_checkout(self) -> Step:
        """DETAILS -> INFO. No network call."""
        if self.state.step != Step.DETAILS:
            raise InvalidStepError("Checkout starts from the event details step.")
        self._clear_messages()
        self._move(Step.INFO)
        return self.state.step

    def continue_to_payment(self) -> bool:
        """INFO -> PAYMENT. Validates locally, then creates (or reuses) the backend booking."""
        if self.state.step != Step.INFO:
            raise InvalidStepError("Payment follows the customer information step.")
        self._clear_messages()

        missing = self.validate_customer()
        if missing:
            self.state.field_errors = missing
            return False

        fingerprint = self._fingerprint()
        if self.state.client_secret and self.state.ticket_id and self.state.booked_for == fingerprint:
            log.info("Reusing booking %s for event %s", self.state.ticket_id, self.event.id)
            self._move(Step.PAYMENT)
            return True

        try:
            client_secret, ticket_id = self.backend.create_booking(
                self.event.id,
                dict(self.state.customer),
                self.state.quantity,
                metadata={"specialRequests": self.state.special_requests},
            )
        except BackendValidationError as exc:
            fields, page = map_server_errors(exc.errors)
            self.state.field_errors = fields
            self.state.error = page or ("" if fields else (exc.message or BOOKING_FAILED))
            return False
        except BackendError as exc:
            log.warning("Booking creation failed for event %s: %s", self.event.id, exc.message)
            self.state.error = exc.message or BOOKING_FAILED
            return False

        if self.state.ticket_id and self.state.ticket_id != ticket_id:
            log.info("Customer details changed; booking %s replaces %s", ticket_id, self.state.ticket_id)
        self.state.client_secret = client_secret
        self.state.ticket_id = ticket_id
        self.state.booked_for = fingerprint
        self._move(Step.PAYMENT)
        return True

    def fail_payment(self, message: str) -> None:
        """Record a provider-side error reported by the browser; stays on PAYMENT."""
        self._clear_messages()
        self.state.error = message or "Payment failed"

    def complete_payment(self, result: PaymentResult) -> Optional[str]:
        """
        PAYMENT -> CONFIRMED when Stripe says `succeeded` and the backend confirms.
        Returns the confirmation path on success, otherwise None with `state.error` set.
        """
        if self.state.step != Step.PAYMENT:
            raise InvalidStepError("No payment is in progress.")
        self._clear_messages()

        expected = intent_id_from_secret(self.state.client_secret)
        if expected and result.payment_intent_id and result.payment_intent_id != expected:
            self.state.error = INTENT_MISMATCH
            return None

        if result.error:
            self.state.error = result.error
            return None

        if result.status == "succeeded":
            try:
                confirmed = self.backend.confirm_booking_payment(result.payment_intent_id, self.state.ticket_id)
            except BackendError as exc:
                log.error("Backend confirmation failed for ticket %s: %s", self.state.ticket_id, exc.message)
                confirmed = False
            if not confirmed:
                self.state.error = CONFIRMATION_FAILED
                return None
            self._move(Step.CONFIRMED)
            return self.confirmation_path

        if result.status == "requires_action":
            self.state.error = REQUIRES_ACTION
        elif result.status == "requires_payment_method":
            self.state.error = REQUIRES_PAYMENT_METHOD
        else:
            self.state.error = f"Payment status: {result.status}"
        return None
