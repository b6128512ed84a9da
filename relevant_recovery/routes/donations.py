"""
Donation flow
-------------
GET  /donation          donation options + donor form
POST /donation          creates a pending donation on the backend, then renders
                        the Stripe Payment Element with the returned client secret
GET  /donation-success  Stripe return_url; reports the PaymentIntent outcome
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from flask import Blueprint, current_app, flash, render_template, request, url_for
from werkzeug.datastructures import MultiDict

from relevant_recovery.forms import DonationForm
from relevant_recovery.models import DonationOption, group_donation_options, options_from_api
from relevant_recovery.services.backend import BackendError, BackendValidationError, get_backend
from relevant_recovery.services.payments import get_gateway

log = logging.getLogger(__name__)

bp = Blueprint("donations", __name__)

FIX_ERRORS = "Please fix the errors below."
SUBMIT_FAILED = "Failed to submit donation"
PAYMENTS_UNAVAILABLE = "Online payments are currently unavailable. Please try again later."


def _load_options() -> List[DonationOption]:
    try:
        rows = get_backend().list_donation_options()
    except BackendError as exc:
        log.warning("Donation options unavailable: %s", exc.message)
        return []
    options = options_from_api(rows)
    if len(options) < len(rows):
        log.info("Skipped %d donation option(s) with an unknown type", len(rows) - len(options))
    return options


def _with_option_amount(options: List[DonationOption]) -> Optional[MultiDict]:
    """A picked option with no typed amount donates the option's amount."""
    if request.method != "POST" or (request.form.get("amount") or "").strip():
        return None
    chosen = next((o for o in options if o.id == request.form.get("option_id")), None)
    if chosen is None:
        return None
    formdata = request.form.copy()
    formdata["amount"] = str(chosen.amount)
    return formdata


def _render_form(form: DonationForm, options: List[DonationOption], status: int = 200):
    grouped: Dict[str, List[DonationOption]] = group_donation_options(options)
    return render_template("donations/donate.html", form=form, grouped=grouped), status


@bp.route("/donation", methods=["GET", "POST"])
def donation():
    options = _load_options()
    formdata = _with_option_amount(options)
    form = DonationForm(formdata=formdata) if formdata is not None else DonationForm()

    if not form.validate_on_submit():
        if request.method == "POST":
            flash(FIX_ERRORS, "error")
            return _render_form(form, options, 400)
        return _render_form(form, options)

    gateway = get_gateway()
    if not gateway.enabled:
        flash(PAYMENTS_UNAVAILABLE, "error")
        return _render_form(form, options, 503)

    try:
        client_secret = get_backend().create_donation(form.payload())
    except BackendValidationError as exc:
        for msg in form.apply_server_errors(exc.errors):
            flash(msg, "error")
        flash(FIX_ERRORS, "error")
        return _render_form(form, options, 400)
    except BackendError as exc:
        flash(exc.message or SUBMIT_FAILED, "error")
        return _render_form(form, options, 502)

    current_app.logger.info("Donation intent created ($%s)", form.amount.data)
    return render_template(
        "donations/checkout.html",
        client_secret=client_secret,
        publishable_key=gateway.publishable_key,
        amount=form.amount.data,
        return_url=url_for("donations.success", _external=True),
    )


@bp.get("/donation-success")
def success():
    """
    Stripe redirects here with:
      - payment_intent
      - payment_intent_client_secret
      - redirect_status
    """
    pid = (request.args.get("payment_intent") or "").strip()
    if not pid:
        return render_template("donations/success.html", result=None)

    result = get_gateway().retrieve_status(pid)
    if result.succeeded or result.status == "processing":
        return render_template("donations/success.html", result=result)

    message = result.error or f"Payment status: {result.status}"
    return render_template("donations/failed.html", result=result, message=message)
