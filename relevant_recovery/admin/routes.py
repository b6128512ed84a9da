"""
Relevant Recovery admin
────────────────────────────────────────────────────────────
• /admin                     → sign-in form, or the dashboard once signed in
• /admin/logout              → drop the backend token
• /adminevent[...]           → events table + create / edit / delete
• /admindonation[...]        → donation option CRUD
• /admindonation-records     → donations table, delete, JSON/CSV export
• /adminregistrations        → registrations table, delete, JSON/CSV export
• /adminticket-bookings      → ticket bookings table, delete, JSON/CSV export

Every list is fetched whole from the backend and searched / filtered / sorted /
paged here (see admin.tables). A rejected token anywhere signs the admin out
and lands back on /admin.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from flask import Blueprint, Response, abort, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from relevant_recovery.admin.auth import sign_in, sign_out
from relevant_recovery.admin.tables import (
    AMOUNT_BUCKETS,
    DONATIONS,
    EVENTS,
    PAGE_SIZES,
    TICKET_BOOKINGS,
    TableQuery,
    TableSpec,
    event_stats,
    export_csv,
    export_filename,
    export_json,
    filter_rows,
    registrations_spec,
    run_query,
)
from relevant_recovery.forms import AdminLoginForm, DonationOptionForm, EventForm
from relevant_recovery.models import (
    OPTION_GROUPS,
    Donation,
    DonationOption,
    Event,
    Registration,
    TicketBooking,
    options_from_api,
)
from relevant_recovery.services.backend import (
    BackendAuthError,
    BackendError,
    BackendValidationError,
    get_backend,
)

log = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)

EXPORT_FORMATS = ("json", "csv")

DONATION_COLUMNS: Sequence[Tuple[str, Callable[[Donation], Any]]] = (
    ("Name", lambda d: d.display_name),
    ("Email", lambda d: d.email or ""),
    ("Amount", lambda d: f"{(d.amount or 0) / 100:.2f}"),
    ("Status", lambda d: d.status),
    ("Anonymous", lambda d: "yes" if d.anonymous else "no"),
    ("Message", lambda d: d.message),
    ("Payment Intent", lambda d: d.payment_intent_id),
    ("Date", lambda d: d.created_at),
)

REGISTRATION_COLUMNS: Sequence[Tuple[str, Callable[[Registration], Any]]] = (
    ("Name", lambda r: r.name),
    ("Email", lambda r: r.email),
    ("Phone", lambda r: r.phone),
    ("City", lambda r: r.city),
    ("State", lambda r: r.state),
    ("Country", lambda r: r.country),
    ("Event", lambda r: r.event.title or r.event.id),
    ("Date", lambda r: r.created_at),
)

BOOKING_COLUMNS: Sequence[Tuple[str, Callable[[TicketBooking], Any]]] = (
    ("Reference", lambda b: b.reference_number),
    ("Name", lambda b: b.customer.name),
    ("Email", lambda b: b.customer.email),
    ("Phone", lambda b: b.customer.phone),
    ("Event", lambda b: b.event.title or b.event.id),
    ("Quantity", lambda b: b.quantity),
    ("Total", lambda b: f"{(b.total_amount or 0) / 100:.2f}"),
    ("Status", lambda b: b.status),
    ("Payment Status", lambda b: b.payment_status),
    ("Payment Intent", lambda b: b.payment_intent_id),
    ("Date", lambda b: b.created_at),
)


# ───────────────────────────────
# Helpers
# ───────────────────────────────
def _query() -> TableQuery:
    return TableQuery.from_args(request.args, int(current_app.config.get("ADMIN_PAGE_SIZE") or 10))


def _render_table(template: str, spec: TableSpec, rows: Sequence[Any], **ctx: Any):
    query = _query()
    page = run_query(rows, spec, query)
    return render_template(
        template,
        page=page,
        query=query,
        spec=spec,
        total_all=len(rows),
        page_sizes=PAGE_SIZES,
        amount_buckets=AMOUNT_BUCKETS,
        **ctx,
    )


def _export(spec: TableSpec, rows: Sequence[Any], fmt: str, columns: Sequence[Tuple[str, Callable]]) -> Response:
    """Download what the table currently shows (search/filter/sort applied, every page)."""
    if fmt not in EXPORT_FORMATS:
        abort(404)
    shown = filter_rows(rows, spec, _query())
    if fmt == "json":
        body, mimetype = export_json(shown), "application/json"
    else:
        body, mimetype = export_csv(shown, columns), "text/csv; charset=utf-8"
    log.info("Exported %d %s row(s) as %s", len(shown), spec.name, fmt)
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={export_filename(spec, fmt)}"},
    )


def _delete(action: Callable[[str], None], record_id: str, ok: str, failed: str, endpoint: str):
    try:
        action(record_id)
        flash(ok, "success")
    except BackendAuthError:
        raise
    except BackendError as exc:
        log.warning("%s (%s): %s", failed, record_id, exc.message)
        flash(failed, "error")
    return redirect(url_for(endpoint, **_query().to_args()))


def _safe_next(target: Optional[str]) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("admin.dashboard")


def _load_rows(fetch: Callable[[], List[Dict[str, Any]]], parse: Callable[[Dict[str, Any]], Any]) -> List[Any]:
    try:
        return [parse(r) for r in fetch()]
    except BackendAuthError:
        raise
    except BackendError as exc:
        flash(exc.message, "error")
        return []


def _admin_event(event_id: str) -> Event:
    for row in get_backend().list_admin_events():
        if str(row.get("_id") or row.get("id") or "") == event_id:
            return Event.from_api(row)
    abort(404, description="Event not found")


def _image_upload(form: EventForm) -> Optional[Tuple[str, Any, str]]:
    upload = form.image.data
    if not upload or not getattr(upload, "filename", ""):
        return None
    return upload.filename, upload.stream, upload.mimetype or "application/octet-stream"


# ───────────────────────────────
# Sign-in + dashboard
# ───────────────────────────────
@admin_bp.route("/admin", methods=["GET", "POST"])
def dashboard():
    if current_user.is_authenticated:
        backend = get_backend()
        try:
            backend.me()
        except BackendAuthError:
            raise
        except BackendError as exc:
            flash(f"Could not verify your session: {exc.message}", "warning")

        events = _load_rows(backend.list_admin_events, Event.from_api)
        return render_template("admin/dashboard.html", stats=event_stats(events), events=events[:5])

    form = AdminLoginForm()
    if not form.validate_on_submit():
        return render_template("admin/login.html", form=form), (400 if request.method == "POST" else 200)

    try:
        token, user = get_backend().login(form.email.data, form.password.data)
    except BackendError as exc:
        log.info("Admin login rejected for %s", form.email.data)
        flash(exc.message or "Login failed", "error")
        return render_template("admin/login.html", form=form), 401

    admin = sign_in(token, user)
    flash(f"Welcome back, {admin.name}!", "success")
    return redirect(_safe_next(request.args.get("next")))


@admin_bp.route("/admin/logout", methods=["GET", "POST"])
def logout():
    sign_out()
    flash("You have been signed out.", "info")
    return redirect(url_for("admin.dashboard"))


# ───────────────────────────────
# Events
# ───────────────────────────────
@admin_bp.get("/adminevent")
@login_required
def events():
    rows = _load_rows(get_backend().list_admin_events, Event.from_api)
    return _render_table("admin/events.html", EVENTS, rows, stats=event_stats(rows))


def _save_event(form: EventForm, event: Optional[Event]):
    backend = get_backend()
    try:
        if event is None:
            backend.create_event(form.payload(), _image_upload(form))
            flash("Event created successfully!", "success")
        else:
            backend.update_event(event.id, form.payload(), _image_upload(form))
            flash("Event updated successfully!", "success")
    except BackendValidationError as exc:
        for msg in form.apply_server_errors(exc.errors):
            flash(msg, "error")
        return None
    except BackendAuthError:
        raise
    except BackendError as exc:
        flash(exc.message, "error")
        return None
    return redirect(url_for("admin.events"))


@admin_bp.route("/adminevent/new", methods=["GET", "POST"])
@login_required
def event_new():
    form = EventForm()
    if form.validate_on_submit():
        done = _save_event(form, None)
        if done is not None:
            return done
    return render_template("admin/event_form.html", form=form, event=None), (400 if request.method == "POST" else 200)


@admin_bp.route("/adminevent/<event_id>/edit", methods=["GET", "POST"])
@login_required
def event_edit(event_id: str):
    event = _admin_event(event_id)
    if request.method == "GET":
        form = EventForm(
            data={
                "title": event.title,
                "date": event.date[:10],
                "time": event.time,
                "place": event.place,
                "cost": event.cost,
                "capacity": event.capacity,
                "desc": event.description,
                "highlights": "\n".join(event.highlights),
                "special_gift": event.special_gift,
                "action_type": event.action_type,
                "free": event.free,
            }
        )
        return render_template("admin/event_form.html", form=form, event=event)

    form = EventForm()
    if form.validate_on_submit():
        done = _save_event(form, event)
        if done is not None:
            return done
    return render_template("admin/event_form.html", form=form, event=event), 400


@admin_bp.post("/adminevent/<event_id>/delete")
@login_required
def event_delete(event_id: str):
    return _delete(
        get_backend().delete_event, event_id, "Event deleted successfully!", "Failed to delete event", "admin.events"
    )


# ───────────────────────────────
# Donation options
# ───────────────────────────────
def _all_options() -> List[DonationOption]:
    try:
        return sorted(options_from_api(get_backend().list_donation_options()), key=lambda o: (o.type, o.order))
    except BackendError as exc:
        flash("Failed to fetch donation options", "error")
        log.warning("Donation options unavailable: %s", exc.message)
        return []


def _save_option(form: DonationOptionForm, option_id: Optional[str]):
    backend = get_backend()
    try:
        if option_id is None:
            backend.create_donation_option(form.payload())
            flash("Donation option created successfully!", "success")
        else:
            backend.update_donation_option(option_id, form.payload())
            flash("Donation option updated successfully!", "success")
    except BackendValidationError as exc:
        for msg in form.apply_server_errors(exc.errors):
            flash(msg, "error")
        return None
    except BackendAuthError:
        raise
    except BackendError as exc:
        log.warning("Saving donation option failed: %s", exc.message)
        flash("Failed to save donation option", "error")
        return None
    return redirect(url_for("admin.donation_options"))


@admin_bp.route("/admindonation", methods=["GET", "POST"])
@login_required
def donation_options():
    form = DonationOptionForm()
    if form.validate_on_submit():
        done = _save_option(form, None)
        if done is not None:
            return done
    status = 400 if request.method == "POST" else 200
    return render_template(
        "admin/donation_options.html", form=form, options=_all_options(), groups=OPTION_GROUPS, editing=None
    ), status


@admin_bp.route("/admindonation/<option_id>/edit", methods=["GET", "POST"])
@login_required
def donation_option_edit(option_id: str):
    options = _all_options()
    option = next((o for o in options if o.id == option_id), None)
    if option is None:
        abort(404, description="Donation option not found")

    if request.method == "GET":
        form = DonationOptionForm(data=option.as_payload())
    else:
        form = DonationOptionForm()
        if form.validate_on_submit():
            done = _save_option(form, option.id)
            if done is not None:
                return done
    status = 400 if request.method == "POST" else 200
    return render_template(
        "admin/donation_options.html", form=form, options=options, groups=OPTION_GROUPS, editing=option
    ), status


@admin_bp.post("/admindonation/<option_id>/delete")
@login_required
def donation_option_delete(option_id: str):
    return _delete(
        get_backend().delete_donation_option,
        option_id,
        "Donation option deleted successfully!",
        "Failed to delete option",
        "admin.donation_options",
    )


# ───────────────────────────────
# Donations
# ───────────────────────────────
@admin_bp.get("/admindonation-records")
@login_required
def donations():
    rows = _load_rows(get_backend().list_donations, Donation.from_api)
    return _render_table("admin/donations.html", DONATIONS, rows)


@admin_bp.get("/admindonation-records/export.<fmt>")
@login_required
def donations_export(fmt: str):
    rows = [Donation.from_api(r) for r in get_backend().list_donations()]
    return _export(DONATIONS, rows, fmt, DONATION_COLUMNS)


@admin_bp.post("/admindonation-records/<donation_id>/delete")
@login_required
def donation_delete(donation_id: str):
    return _delete(
        get_backend().delete_donation,
        donation_id,
        "Donation deleted successfully!",
        "Failed to delete donation",
        "admin.donations",
    )


# ───────────────────────────────
# Registrations
# ───────────────────────────────
def _event_titles() -> Dict[str, str]:
    try:
        rows = get_backend().list_admin_events()
    except BackendAuthError:
        raise
    except BackendError as exc:
        log.info("Event titles unavailable for registration filters: %s", exc.message)
        return {}
    return {e.id: e.title for e in (Event.from_api(r) for r in rows) if e.id}


@admin_bp.get("/adminregistrations")
@login_required
def registrations():
    titles = _event_titles()
    rows = _load_rows(get_backend().list_registrations, Registration.from_api)
    return _render_table("admin/registrations.html", registrations_spec(list(titles)), rows, event_titles=titles)


@admin_bp.get("/adminregistrations/export.<fmt>")
@login_required
def registrations_export(fmt: str):
    titles = _event_titles()
    rows = [Registration.from_api(r) for r in get_backend().list_registrations()]
    return _export(registrations_spec(list(titles)), rows, fmt, REGISTRATION_COLUMNS)


@admin_bp.post("/adminregistrations/<registration_id>/delete")
@login_required
def registration_delete(registration_id: str):
    return _delete(
        get_backend().delete_registration,
        registration_id,
        "Registration deleted successfully!",
        "Failed to delete registration",
        "admin.registrations",
    )


# ───────────────────────────────
# Ticket bookings
# ───────────────────────────────
@admin_bp.get("/adminticket-bookings")
@login_required
def ticket_bookings():
    rows = _load_rows(get_backend().list_bookings, TicketBooking.from_api)
    return _render_table("admin/ticket_bookings.html", TICKET_BOOKINGS, rows)


@admin_bp.get("/adminticket-bookings/export.<fmt>")
@login_required
def ticket_bookings_export(fmt: str):
    rows = [TicketBooking.from_api(r) for r in get_backend().list_bookings()]
    return _export(TICKET_BOOKINGS, rows, fmt, BOOKING_COLUMNS)


@admin_bp.post("/adminticket-bookings/<booking_id>/delete")
@login_required
def ticket_booking_delete(booking_id: str):
    return _delete(
        get_backend().delete_booking,
        booking_id,
        "Booking deleted successfully!",
        "Failed to delete booking",
        "admin.ticket_bookings",
    )
