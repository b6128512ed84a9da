# relevant_recovery/services/backend.py
"""
Client for the Relevant Recovery REST backend.

The backend owns every record (events, donations, registrations, ticket
bookings, donation options, admin users). This module is the only place that
speaks HTTP to it.

Error model:
  - BackendError            transport failure or non-2xx response
  - BackendValidationError  non-2xx carrying an `errors` field -> message map
  - BackendAuthError        401/403, or an admin call without a token
  - BackendNotFound         404
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from flask import current_app, g, session

log = logging.getLogger(__name__)

NO_TOKEN_MESSAGE = "No admin token found. Please login again."


class BackendError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload

    @property
    def is_network(self) -> bool:
        return self.status is None


class BackendValidationError(BackendError):
    def __init__(self, errors: Dict[str, str], message: str, status: Optional[int] = 400, payload: Any = None) -> None:
        super().__init__(message, status=status, payload=payload)
        self.errors = errors


class BackendAuthError(BackendError):
    pass


class BackendNotFound(BackendError):
    pass


def _message_from(body: Any, default: str) -> str:
    if isinstance(body, dict):
        for key in ("error", "message"):
            v = body.get(key)
            if isinstance(v, str) and v.strip():
                return v.strip()
            if isinstance(v, dict) and v.get("message"):
                return str(v["message"])
    return default


def _normalize_errors(raw: Any) -> Dict[str, str]:
    out: Dict[str, str] = {}
    if not isinstance(raw, dict):
        return out
    for key, val in raw.items():
        if isinstance(val, (list, tuple)):
            val = " ".join(str(v) for v in val if v)
        elif isinstance(val, dict):
            val = val.get("message") or val.get("msg") or ""
        if val:
            out[str(key)] = str(val)
    return out


def _unwrap(body: Any) -> Any:
    """Some endpoints answer `{success, data}`; others answer the payload directly."""
    if isinstance(body, dict) and "data" in body and ("success" in body or "ok" in body):
        return body["data"]
    return body


def _as_list(body: Any, *keys: str) -> List[Dict[str, Any]]:
    body = _unwrap(body)
    if isinstance(body, dict):
        for k in keys:
            if isinstance(body.get(k), list):
                body = body[k]
                break
    if not isinstance(body, list):
        return []
    return [row for row in body if isinstance(row, dict)]


class BackendClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.token = token or None
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, path: str) -> str:
        return self.base + (path if path.startswith("/") else "/" + path)

    def with_token(self, token: Optional[str]) -> "BackendClient":
        return BackendClient(self.base, token=token, timeout=self.timeout, session=self.session)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        auth: bool = False,
        default_error: str = "Request failed",
    ) -> Any:
        headers = {"Accept": "application/json"}
        if auth:
            if not self.token:
                raise BackendAuthError(NO_TOKEN_MESSAGE, status=401)
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            r = self.session.request(
                method,
                self.url(path),
                json=json,
                data=data,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.warning("Backend %s %s failed: %s", method, path, exc)
            raise BackendError(default_error) from exc

        try:
            body = r.json()
        except ValueError:
            body = {}

        if r.status_code in (401, 403):
            raise BackendAuthError(_message_from(body, default_error), status=r.status_code, payload=body)
        if r.status_code == 404:
            raise BackendNotFound(_message_from(body, default_error), status=404, payload=body)
        if not r.ok:
            errors = _normalize_errors(body.get("errors")) if isinstance(body, dict) else {}
            if errors:
                raise BackendValidationError(
                    errors, _message_from(body, default_error), status=r.status_code, payload=body
                )
            log.warning("Backend %s %s -> %s", method, path, r.status_code)
            raise BackendError(_message_from(body, default_error), status=r.status_code, payload=body)

        if isinstance(body, dict) and body.get("success") is False:
            errors = _normalize_errors(body.get("errors"))
            if errors:
                raise BackendValidationError(errors, _message_from(body, default_error), status=r.status_code, payload=body)
            raise BackendError(_message_from(body, default_error), status=r.status_code, payload=body)

        return body

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def list_events(self) -> List[Dict[str, Any]]:
        return _as_list(self._request("GET", "/api/events", default_error="Failed to load events"), "events")

    def get_event(self, event_id: str) -> Dict[str, Any]:
        try:
            body = _unwrap(self._request("GET", f"/api/events/{event_id}", default_error="Failed to load event"))
            if isinstance(body, dict) and body:
                return body
        except BackendError as exc:
            log.info("Single event fetch failed (%s), falling back to the full list", exc.message)

        for row in self.list_events():
            if str(row.get("_id") or row.get("id") or "") == str(event_id):
                return row
        raise BackendNotFound("Event not found", status=404)

    def list_admin_events(self) -> List[Dict[str, Any]]:
        body = self._request("GET", "/api/events/admin", auth=True, default_error="Failed to fetch events")
        return _as_list(body, "events")

    def create_event(self, fields: Dict[str, Any], image: Optional[Tuple[str, Any, str]] = None) -> Dict[str, Any]:
        files = {"image": image} if image else None
        return self._request("POST", "/api/events", data=fields, files=files, auth=True, default_error="Failed to save event")

    def update_event(self, event_id: str, fields: Dict[str, Any], image: Optional[Tuple[str, Any, str]] = None) -> Dict[str, Any]:
        files = {"image": image} if image else None
        return self._request(
            "PUT", f"/api/events/{event_id}", data=fields, files=files, auth=True, default_error="Failed to save event"
        )

    def delete_event(self, event_id: str) -> None:
        self._request("DELETE", f"/api/events/{event_id}", auth=True, default_error="Failed to delete event")

    # ------------------------------------------------------------------
    # Donations + options
    # ------------------------------------------------------------------
    def list_donations(self) -> List[Dict[str, Any]]:
        body = self._request("GET", "/api/donations", auth=True, default_error="Failed to fetch donations")
        return _as_list(body, "donations")

    def create_donation(self, payload: Dict[str, Any]) -> str:
        """Create a pending donation; returns the Stripe client secret for it."""
        body = self._request("POST", "/api/donations", json=payload, default_error="Failed to submit donation")
        body = body if isinstance(body, dict) else {}
        secret = body.get("stripeClientSecret") or (_unwrap(body) or {}).get("stripeClientSecret")
        if not secret:
            raise BackendError("Failed to submit donation", payload=body)
        return str(secret)

    def delete_donation(self, donation_id: str) -> None:
        self._request("DELETE", f"/api/donations/{donation_id}", auth=True, default_error="Failed to delete donation")

    def list_donation_options(self) -> List[Dict[str, Any]]:
        body = self._request("GET", "/api/donation-options", default_error="Failed to load donation options")
        return _as_list(body, "options")

    def create_donation_option(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/donation-options", json=payload, auth=True, default_error="Failed to save option")

    def update_donation_option(self, option_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request(
            "PUT", f"/api/donation-options/{option_id}", json=payload, auth=True, default_error="Failed to save option"
        )

    def delete_donation_option(self, option_id: str) -> None:
        self._request("DELETE", f"/api/donation-options/{option_id}", auth=True, default_error="Failed to delete option")

    # ------------------------------------------------------------------
    # Registrations
    # ------------------------------------------------------------------
    def create_registration(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/registration", json=payload, default_error="Registration failed")

    def list_registrations(self) -> List[Dict[str, Any]]:
        body = self._request("GET", "/api/registration/admin", auth=True, default_error="Failed to fetch registrations")
        return _as_list(body, "registrations")

    def delete_registration(self, registration_id: str) -> None:
        self._request(
            "DELETE", f"/api/registration/{registration_id}", auth=True, default_error="Failed to delete registration"
        )

    # ------------------------------------------------------------------
    # Ticket bookings
    # ------------------------------------------------------------------
    def create_booking(
        self, event_id: str, customer: Dict[str, Any], quantity: int, metadata: Optional[Dict[str, Any]] = None
    ) -> Tuple[str, str]:
        payload = {"eventId": event_id, "customer": customer, "quantity": quantity, "metadata": metadata or {}}
        body = self._request(
            "POST", "/api/event-ticket-booking", json=payload, default_error="Failed to create booking. Please try again."
        )
        data = _unwrap(body) if isinstance(body, dict) else {}
        data = data if isinstance(data, dict) else {}
        secret, ticket_id = data.get("clientSecret"), data.get("ticketId")
        if not secret or not ticket_id:
            raise BackendError(_message_from(body, "Booking failed"), payload=body)
        return str(secret), str(ticket_id)

    def confirm_booking_payment(self, payment_intent_id: str, ticket_id: str) -> bool:
        body = self._request(
            "POST",
            "/api/event-ticket-booking/confirm-payment",
            json={"paymentIntentId": payment_intent_id, "ticketId": ticket_id},
            default_error="Payment confirmation failed",
        )
        return bool(isinstance(body, dict) and body.get("success"))

    def get_booking(self, ticket_id: str) -> Dict[str, Any]:
        body = self._request(
            "GET", f"/api/event-ticket-booking/{ticket_id}", default_error="Failed to load booking details. Please try again."
        )
        data = _unwrap(body)
        if not isinstance(data, dict) or not data:
            raise BackendNotFound("Booking not found. Please check the URL.", status=404)
        return data

    def list_bookings(self) -> List[Dict[str, Any]]:
        body = self._request("GET", "/api/event-ticket-booking", auth=True, default_error="Failed to fetch ticket bookings")
        return _as_list(body, "bookings")

    def delete_booking(self, booking_id: str) -> None:
        self._request(
            "DELETE", f"/api/event-ticket-booking/{booking_id}", auth=True, default_error="Failed to delete booking"
        )

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def login(self, email: str, password: str) -> Tuple[str, Dict[str, Any]]:
        body = self._request("POST", "/api/auth/login", json={"email": email, "password": password}, default_error="Login failed")
        body = body if isinstance(body, dict) else {}
        token = body.get("token")
        if not token:
            raise BackendAuthError(_message_from(body, "Login failed"), status=401, payload=body)
        user = body.get("user") if isinstance(body.get("user"), dict) else {}
        return str(token), user

    def me(self) -> Dict[str, Any]:
        body = self._request("GET", "/api/auth/me", auth=True, default_error="Session expired")
        body = _unwrap(body)
        if isinstance(body, dict) and isinstance(body.get("user"), dict):
            return body["user"]
        return body if isinstance(body, dict) else {}

    # ------------------------------------------------------------------
    # Contact + community
    # ------------------------------------------------------------------
    def send_contact(self, name: str, email: str, subject: str, message: str) -> None:
        self._request(
            "POST",
            "/api/contact",
            json={"name": name, "email": email, "subject": subject, "message": message},
            default_error="Failed to send message",
        )

    def community_signup(self, name: str, email: str) -> None:
        self._request(
            "POST", "/api/community-signups", json={"name": name, "email": email}, default_error="Registration failed"
        )


# ---------------------------------------------------------------------------
# App wiring
# ---------------------------------------------------------------------------
def init_backend(app) -> None:
    app.extensions["backend"] = BackendClient(
        app.config.get("BACKEND_BASE_URL") or "",
        timeout=float(app.config.get("BACKEND_TIMEOUT") or 15),
    )


def get_backend() -> BackendClient:
    """Backend client for the current request, carrying the admin token when one is signed in."""
    if "backend_client" not in g:
        base: BackendClient = current_app.extensions["backend"]
        g.backend_client = base.with_token(session.get("adminToken"))
    return g.backend_client
