from __future__ import annotations

import logging
from typing import List, Optional

from flask import Blueprint, flash, redirect, render_template, request, url_for

from relevant_recovery.forms import CommunitySignupForm, ContactForm
from relevant_recovery.models import Event
from relevant_recovery.services.backend import BackendError, BackendValidationError, get_backend

log = logging.getLogger(__name__)

main_bp = Blueprint("main", __name__)

CONTACT_SENT = "Message sent! We will get back to you soon."
SIGNUP_OK = "Registration successful!"
HOME_EVENT_COUNT = 3


def _upcoming_events(limit: int) -> List[Event]:
    """Best effort: the home page still renders when the backend is down."""
    try:
        rows = get_backend().list_events()
    except BackendError as exc:
        log.warning("Home page events unavailable: %s", exc.message)
        return []
    events = [Event.from_api(r) for r in rows]
    return [e for e in events if e.is_active][:limit]


def _safe_next(target: Optional[str]) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("events.events")


@main_bp.get("/")
def home():
    return render_template(
        "pages/home.html",
        events=_upcoming_events(HOME_EVENT_COUNT),
        signup_form=CommunitySignupForm(),
    )


@main_bp.get("/about")
def about():
    return render_template("pages/about.html")


@main_bp.get("/services")
def services():
    return render_template("pages/services.html")


@main_bp.route("/contact", methods=["GET", "POST"])
def contact():
    form = ContactForm()
    if not form.validate_on_submit():
        return render_template("pages/contact.html", form=form), (400 if request.method == "POST" else 200)

    try:
        get_backend().send_contact(form.name.data, form.email.data, form.subject.data, form.message.data)
    except BackendValidationError as exc:
        for msg in form.apply_server_errors(exc.errors):
            flash(msg, "error")
        return render_template("pages/contact.html", form=form), 400
    except BackendError as exc:
        flash(exc.message, "error")
        return render_template("pages/contact.html", form=form), 502

    flash(CONTACT_SENT, "success")
    return redirect(url_for("main.contact"))


@main_bp.post("/community-signup")
def community_signup():
    form = CommunitySignupForm()
    back = _safe_next(request.form.get("next"))
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for msg in errors:
                flash(msg, "error")
        return redirect(back)

    try:
        get_backend().community_signup(form.name.data, form.email.data)
    except BackendError as exc:
        flash(exc.message, "error")
        return redirect(back)

    flash(SIGNUP_OK, "success")
    return redirect(back)
