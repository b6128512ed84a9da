"""
Ticket booking pages.

  GET  /book-event/<id>                  render the wizard at its current step
  POST /book-event/<id>                  apply one step action (next, back, quantity, info, pay)
  GET  /book-event/<id>/payment-return   Stripe return_url for redirect-based payment methods
  GET  /booking-confirmation/<ticket_id> final ticket summary

Every POST redirects back to the GET page; the wizard state (including any
errors to show) lives in the session between the two.
"""

from __future__ import annotations

import logging

from flask import Blueprint, flash, redirect, render_template, request, url_for

from relevant_recovery.booking import BookingWizard, Step, clear_wizard, load_wizard, save_wizard
from relevant_recovery.forms import CustomerInfoForm
from relevant_recovery.models import InvalidStepError, TicketBooking
from relevant_recovery.routes.events import fetch_event
from relevant_recovery.services.backend import BackendError, BackendNotFound, get_backend
from relevant_recovery.services.payments import get_gateway

log = logging.getLogger(__name__)

bp = Blueprint("booking", __name__)

BOOKING_NOT_FOUND = "Booking not found. Please check the URL."
BOOKING_LOAD_FAILED = "Failed to load booking details. Please try again."
UNKNOWN_ACTION = "Unknown booking action."


def _customer_form(wizard: BookingWizard) -> CustomerInfoForm:
    data = dict(wizard.state.customer)
    data["special_requests"] = wizard.state.special_requests
    return CustomerInfoForm(data=data)


def _settle_payment(wizard: BookingWizard, payment_intent_id: str):
    result = get_gateway().retrieve_status(payment_intent_id)
    path = wizard.complete_payment(result)
    if path:
        log.info("Ticket %s confirmed for event %s", wizard.state.ticket_id, wizard.event.id)
        clear_wizard(wizard.event.id)
        return redirect(path)
    save_wizard(wizard)
    return redirect(url_for("booking.book_event", event_id=wizard.event.id))


def _apply_action(wizard: BookingWizard, action: str):
    if action == "next":
        if "quantity" in request.form:
            wizard.set_quantity(request.form.get("quantity"))
        wizard.continue_to_checkout()
    elif action == "back":
        wizard.back()
    elif action == "quantity":
        op = request.form.get("op")
        if op == "inc":
            wizard.increment()
        elif op == "dec":
            wizard.decrement()
        else:
            wizard.set_quantity(request.form.get("quantity"))
    elif action == "info":
        form = CustomerInfoForm()
        wizard.update_customer(**{name: field.data for name, field in form._fields.items() if name != "csrf_token"})
        if not form.validate():
            wizard.state.field_errors = {k: v[0] for k, v in form.errors.items() if v and k != "csrf_token"}
            if wizard.state.field_errors:
                return None
        wizard.continue_to_payment()
    elif action == "pay":
        stripe_error = (request.form.get("stripe_error") or "").strip()
        if stripe_error:
            wizard.fail_payment(stripe_error)
        else:
            return _settle_payment(wizard, request.form.get("payment_intent") or "")
    else:
        flash(UNKNOWN_ACTION, "error")
    return None


@bp.route("/book-event/<event_id>", methods=["GET", "POST"])
def book_event(event_id: str):
    event, error, status = fetch_event(event_id)
    if event is None:
        return render_template("booking/error.html", message=error), status
    if event.is_free:
        return redirect(url_for("events.register", event_id=event.id))

    wizard = load_wizard(event, get_backend())

    if request.method == "POST":
        try:
            response = _apply_action(wizard, (request.form.get("action") or "").strip())
        except InvalidStepError as exc:
            log.info("Rejected booking step for event %s: %s", event.id, exc.message)
            flash(exc.message, "warning")
            response = None
        if response is not None:
            return response
        save_wizard(wizard)
        return redirect(url_for("booking.book_event", event_id=event.id))

    if wizard.step == Step.CONFIRMED and wizard.state.ticket_id:
        return redirect(wizard.confirmation_path)

    gateway = get_gateway()
    return render_template(
        "booking/book.html",
        event=event,
        wizard=wizard,
        state=wizard.state,
        Step=Step,
        form=_customer_form(wizard),
        publishable_key=gateway.publishable_key if gateway.enabled else "",
        return_url=url_for("booking.payment_return", event_id=event.id, _external=True),
    )


@bp.get("/book-event/<event_id>/payment-return")
def payment_return(event_id: str):
    event, error, status = fetch_event(event_id)
    if event is None:
        return render_template("booking/error.html", message=error), status

    wizard = load_wizard(event, get_backend())
    try:
        return _settle_payment(wizard, request.args.get("payment_intent") or "")
    except InvalidStepError as exc:
        flash(exc.message, "warning")
        return redirect(url_for("booking.book_event", event_id=event.id))


@bp.get("/booking-confirmation/<ticket_id>")
def confirmation(ticket_id: str):
    try:
        data = get_backend().get_booking(ticket_id)
    except BackendNotFound:
        return render_template("booking/error.html", message=BOOKING_NOT_FOUND), 404
    except BackendError as exc:
        log.warning("Booking %s could not be loaded: %s", ticket_id, exc.message)
        return render_template("booking/error.html", message=BOOKING_LOAD_FAILED), 502

    booking = TicketBooking.from_api(data)
    return render_template("booking/confirmation.html", booking=booking)
