"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, List, Optional, Tuple

import pytest
from faker import Faker

from relevant_recovery import create_app
from relevant_recovery.config import TestingConfig
from relevant_recovery.services.backend import BackendError, BackendNotFound
from relevant_recovery.services.payments import PaymentResult, guess_stripe_mode

FREE_EVENT = {
    "_id": "evt-free",
    "title": "Family Recovery Picnic",
    "date": "2026-06-01",
    "time": "11:00 AM",
    "place": "Riverside Park",
    "desc": "Food, games and fellowship.",
    "cost": "Free",
    "capacity": 120,
    "highlights": ["Lunch", "Kids corner"],
    "isActive": True,
}

PAID_EVENT = {
    "_id": "evt-paid",
    "title": "Hope Gala",
    "date": "2026-09-12",
    "time": "6:00 PM",
    "place": "Grand Hall",
    "desc": "Annual fundraising dinner.",
    "cost": "$25",
    "capacity": 200,
    "highlights": '["Dinner", "Live music"]',
    "specialGift": "Commemorative pin",
    "actionType": "Book Ticket",
    "isActive": True,
}

INACTIVE_EVENT = dict(PAID_EVENT, _id="evt-old", title="Last Year's Gala", isActive=False)


class FakeBackend:
    """
    Stand-in for BackendClient. Every call is recorded as (method, args);
    `fail` maps a method name to the BackendError it should raise.
    """

    def __init__(self) -> None:
        self.token: Optional[str] = None
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail: Dict[str, BackendError] = {}
        self.base = "http://backend.test"

        self.events: List[Dict[str, Any]] = [FREE_EVENT, PAID_EVENT, INACTIVE_EVENT]
        self.donations: List[Dict[str, Any]] = []
        self.registrations: List[Dict[str, Any]] = []
        self.bookings: List[Dict[str, Any]] = []
        self.options: List[Dict[str, Any]] = []
        self.booking_details: Dict[str, Dict[str, Any]] = {}

        self.client_secret = "pi_123_secret_abc"
        self.ticket_ids = iter(f"tkt-{n}" for n in range(1, 100))
        self.confirm_result = True
        self.login_result: Tuple[str, Dict[str, Any]] = ("tok-1", {"_id": "u1", "name": "Dana", "email": "dana@example.org"})

    def with_token(self, token: Optional[str]) -> "FakeBackend":
        self.token = token
        return self

    def _call(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail:
            raise self.fail[name]

    def called(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for method, args in self.calls if method == name]

    # public
    def list_events(self):
        self._call("list_events")
        return list(self.events)

    def get_event(self, event_id):
        self._call("get_event", event_id)
        for row in self.events:
            if row["_id"] == event_id:
                return row
        raise BackendNotFound("Event not found", status=404)

    def list_donation_options(self):
        self._call("list_donation_options")
        return list(self.options)

    def create_donation(self, payload):
        self._call("create_donation", payload)
        return "pi_don_secret_xyz"

    def create_registration(self, payload):
        self._call("create_registration", payload)
        return {"success": True}

    def create_booking(self, event_id, customer, quantity, metadata=None):
        self._call("create_booking", event_id, customer, quantity, metadata)
        return self.client_secret, next(self.ticket_ids)

    def confirm_booking_payment(self, payment_intent_id, ticket_id):
        self._call("confirm_booking_payment", payment_intent_id, ticket_id)
        return self.confirm_result

    def get_booking(self, ticket_id):
        self._call("get_booking", ticket_id)
        if ticket_id in self.booking_details:
            return self.booking_details[ticket_id]
        raise BackendNotFound("Booking not found. Please check the URL.", status=404)

    def send_contact(self, name, email, subject, message):
        self._call("send_contact", name, email, subject, message)

    def community_signup(self, name, email):
        self._call("community_signup", name, email)

    # admin
    def login(self, email, password):
        self._call("login", email, password)
        return self.login_result

    def me(self):
        self._call("me")
        return self.login_result[1]

    def list_admin_events(self):
        self._call("list_admin_events")
        return list(self.events)

    def create_event(self, fields, image=None):
        self._call("create_event", fields, image)
        return {"success": True}

    def update_event(self, event_id, fields, image=None):
        self._call("update_event", event_id, fields, image)
        return {"success": True}

    def delete_event(self, event_id):
        self._call("delete_event", event_id)

    def list_donations(self):
        self._call("list_donations")
        return list(self.donations)

    def delete_donation(self, donation_id):
        self._call("delete_donation", donation_id)

    def create_donation_option(self, payload):
        self._call("create_donation_option", payload)
        return payload

    def update_donation_option(self, option_id, payload):
        self._call("update_donation_option", option_id, payload)
        return payload

    def delete_donation_option(self, option_id):
        self._call("delete_donation_option", option_id)

    def list_registrations(self):
        self._call("list_registrations")
        return list(self.registrations)

    def delete_registration(self, registration_id):
        self._call("delete_registration", registration_id)

    def list_bookings(self):
        self._call("list_bookings")
        return list(self.bookings)

    def delete_booking(self, booking_id):
        self._call("delete_booking", booking_id)


class FakeGateway:
    """Stand-in for PaymentGateway; `results` maps a PaymentIntent id to its lookup result."""

    def __init__(self, secret_key: str = "sk_test_dummy", publishable_key: str = "pk_test_dummy") -> None:
        self.secret_key = secret_key
        self.publishable_key = publishable_key
        self.results: Dict[str, PaymentResult] = {}
        self.lookups: List[str] = []

    @property
    def mode(self) -> str:
        return guess_stripe_mode(self.secret_key or self.publishable_key)

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key.startswith("sk_") and self.publishable_key.startswith("pk_"))

    def retrieve_status(self, payment_intent_id: str) -> PaymentResult:
        self.lookups.append(payment_intent_id)
        return self.results.get(payment_intent_id, PaymentResult(status="succeeded", payment_intent_id=payment_intent_id))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def app(backend, gateway):
    app = create_app(TestingConfig)
    app.extensions["backend"] = backend
    app.extensions["payments"] = gateway
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client, backend):
    """A client already signed in to the admin area."""
    resp = client.post("/admin", data={"email": "dana@example.org", "password": "s3cret"})
    assert resp.status_code == 302
    backend.calls.clear()
    return client


@pytest.fixture
def fake() -> Faker:
    Faker.seed(1234)
    return Faker()
