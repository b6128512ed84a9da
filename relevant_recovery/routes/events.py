from __future__ import annotations

import logging
from typing import Optional, Tuple

from flask import Blueprint, flash, redirect, render_template, request, url_for

from relevant_recovery.forms import CommunitySignupForm, RegistrationForm
from relevant_recovery.models import Event
from relevant_recovery.services.backend import (
    BackendError,
    BackendNotFound,
    BackendValidationError,
    get_backend,
)

log = logging.getLogger(__name__)

bp = Blueprint("events", __name__)

EVENT_NOT_FOUND = "Event not found. It may have been removed or is no longer available."
EVENT_SERVER_ERROR = "Server error. Please try again later."
EVENT_NETWORK_ERROR = "Network error. Please check your internet connection."
EVENT_LOAD_FAILED = "Failed to load event details. Please try again."
REGISTERED = "Registration successful!"
REGISTRATION_FAILED = "Server error. Please try again."


def event_load_error(exc: BackendError) -> Tuple[str, int]:
    """User-facing message + HTTP status for a failed event fetch."""
    if isinstance(exc, BackendNotFound) or exc.status == 404:
        return EVENT_NOT_FOUND, 404
    if exc.is_network:
        return EVENT_NETWORK_ERROR, 502
    if exc.status is not None and exc.status >= 500:
        return EVENT_SERVER_ERROR, 502
    return EVENT_LOAD_FAILED, 502


def fetch_event(event_id: str) -> Tuple[Optional[Event], str, int]:
    try:
        return Event.from_api(get_backend().get_event(event_id)), "", 200
    except BackendError as exc:
        log.info("Event %s could not be loaded: %s", event_id, exc.message)
        message, status = event_load_error(exc)
        return None, message, status


@bp.get("/events")
def events():
    error = ""
    rows = []
    try:
        rows = get_backend().list_events()
    except BackendError as exc:
        error = exc.message or "Failed to fetch events"

    items = [Event.from_api(r) for r in rows]
    return render_template(
        "events/list.html",
        events=[e for e in items if e.is_active],
        error=error,
        signup_form=CommunitySignupForm(),
    )


@bp.route("/events/<event_id>/register", methods=["GET", "POST"])
def register(event_id: str):
    event, error, status = fetch_event(event_id)
    if event is None:
        return render_template("events/not_found.html", message=error), status
    if not event.is_free:
        return redirect(url_for("booking.book_event", event_id=event.id))

    form = RegistrationForm()
    if not form.validate_on_submit():
        return render_template("events/register.html", event=event, form=form), (
            400 if request.method == "POST" else 200
        )

    try:
        get_backend().create_registration(form.payload(event.id))
    except BackendValidationError as exc:
        for msg in form.apply_server_errors(exc.errors):
            flash(msg, "error")
        return render_template("events/register.html", event=event, form=form), 400
    except BackendError as exc:
        log.warning("Registration for event %s failed: %s", event.id, exc.message)
        flash(REGISTRATION_FAILED, "error")
        return render_template("events/register.html", event=event, form=form), 502

    flash(REGISTERED, "success")
    return redirect(url_for("events.events"))
