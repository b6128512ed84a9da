# relevant_recovery/forms/admin_forms.py
from __future__ import annotations

import json
from typing import Any, Dict, List

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField
from wtforms import BooleanField, IntegerField, PasswordField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional, ValidationError

from relevant_recovery.models import (
    ACTION_TYPES,
    OPTION_GROUPS,
    OPTION_TYPES,
    InvalidEventError,
    InvalidOptionError,
    action_for_cost,
    check_action,
    check_option_group,
    parse_highlights,
)

from .public_forms import BackendForm

OPTION_TYPE_CHOICES = [(t, t.capitalize()) for t in OPTION_TYPES]
OPTION_GROUP_CHOICES = [(g, g) for t in OPTION_TYPES for g in OPTION_GROUPS[t]]


class AdminLoginForm(FlaskForm):
    email = StringField(
        "Email",
        validators=[DataRequired(message="Email is required."), Email(message="Please enter a valid email.")],
        render_kw={"placeholder": "admin@example.com", "autocomplete": "username"},
    )
    password = PasswordField(
        "Password",
        validators=[DataRequired(message="Password is required.")],
        render_kw={"autocomplete": "current-password"},
    )


class EventForm(BackendForm):
    """Create/edit an event. Sent to the backend as multipart form data."""

    SERVER_KEYS = {"specialGift": "special_gift", "actionType": "action_type"}

    title = StringField("Event Title", validators=[DataRequired(message="Title is required."), Length(max=200)])
    date = StringField("Date", validators=[DataRequired(message="Date is required.")], render_kw={"type": "date"})
    time = StringField("Time", validators=[Optional(), Length(max=40)], render_kw={"placeholder": "6:00 PM"})
    place = StringField("Event Place", validators=[DataRequired(message="Place is required."), Length(max=200)])
    cost = StringField(
        "Cost",
        validators=[DataRequired(message="Cost is required."), Length(max=40)],
        render_kw={"placeholder": "Free or $25"},
    )
    capacity = IntegerField("Capacity", validators=[Optional(), NumberRange(min=0)])
    desc = TextAreaField("Description", validators=[Optional(), Length(max=5000)])
    image = FileField(
        "Image",
        validators=[Optional(), FileAllowed(["jpg", "jpeg", "png", "gif", "webp"], "Image must be JPG, PNG, GIF, or WEBP.")],
    )
    highlights = TextAreaField(
        "Highlights",
        validators=[Optional()],
        render_kw={"placeholder": "One per line, or comma separated"},
    )
    special_gift = StringField("Special Gift (optional)", validators=[Optional(), Length(max=200)])
    action_type = SelectField(
        "Action Type",
        choices=[("", "Auto (from cost)")] + [(a, a) for a in ACTION_TYPES],
    )
    free = BooleanField("Free Event")

    def validate_action_type(self, field) -> None:
        cost = (self.cost.data or "").strip()
        if not cost:
            return
        try:
            check_action(cost, field.data or action_for_cost(cost))
        except InvalidEventError as exc:
            raise ValidationError(exc.message) from exc

    def highlight_list(self) -> List[str]:
        raw = self.highlights.data or ""
        if "\n" in raw:
            raw = raw.splitlines()
        return parse_highlights(raw)

    def payload(self) -> Dict[str, Any]:
        cost = (self.cost.data or "").strip()
        return {
            "title": self.title.data,
            "date": self.date.data,
            "time": self.time.data or "",
            "place": self.place.data,
            "cost": cost,
            "capacity": "" if self.capacity.data is None else str(self.capacity.data),
            "desc": self.desc.data or "",
            "highlights": json.dumps(self.highlight_list()),
            "specialGift": self.special_gift.data or "",
            "actionType": self.action_type.data or action_for_cost(cost),
            "free": "true" if self.free.data else "false",
        }


class DonationOptionForm(BackendForm):
    type = SelectField("Type", choices=OPTION_TYPE_CHOICES, validators=[DataRequired()])
    group = SelectField("Group", choices=OPTION_GROUP_CHOICES, validators=[DataRequired()])
    label = StringField("Label", validators=[DataRequired(message="Label is required."), Length(max=120)])
    amount = IntegerField(
        "Amount (USD)",
        validators=[DataRequired(message="Amount is required."), NumberRange(min=1, message="Minimum amount is $1.")],
    )
    order = IntegerField("Order", validators=[Optional()], default=0)
    active = BooleanField("Active", default=True)

    def validate_group(self, field) -> None:
        try:
            check_option_group(self.type.data, field.data)
        except InvalidOptionError as exc:
            raise ValidationError(exc.message) from exc

    def payload(self) -> Dict[str, Any]:
        return {
            "type": self.type.data,
            "group": self.group.data,
            "label": self.label.data,
            "amount": int(self.amount.data or 0),
            "order": int(self.order.data or 0),
            "active": bool(self.active.data),
        }
