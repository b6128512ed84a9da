# relevant_recovery/forms/public_forms.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from flask_wtf import FlaskForm
from wtforms import BooleanField, DecimalField, HiddenField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional


class BackendForm(FlaskForm):
    """Form whose submission is validated again by the backend."""

    # backend key -> form attribute, for keys that differ
    SERVER_KEYS: Mapping[str, str] = {}

    def apply_server_errors(self, errors: Mapping[str, str]) -> List[str]:
        """Attach backend field errors to fields; returns messages that match no field."""
        leftover: List[str] = []
        for key, msg in errors.items():
            attr = self.SERVER_KEYS.get(key, key)
            field = self._fields.get(attr)
            if field is None:
                leftover.append(msg)
                continue
            field.errors = list(field.errors or []) + [msg]
        return leftover


class ContactForm(BackendForm):
    name = StringField(
        "Full Name",
        validators=[DataRequired(message="Name is required."), Length(max=120)],
        render_kw={"placeholder": "Jane Doe"},
    )
    email = StringField(
        "Email Address",
        validators=[
            DataRequired(message="Email is required."),
            Email(message="Please enter a valid email."),
            Length(max=255),
        ],
        render_kw={"placeholder": "you@example.com"},
    )
    subject = StringField(
        "Subject",
        validators=[DataRequired(message="Subject is required."), Length(max=200)],
    )
    message = TextAreaField(
        "Message",
        validators=[DataRequired(message="Message is required."), Length(max=5000)],
        render_kw={"rows": 6},
    )


class CommunitySignupForm(FlaskForm):
    name = StringField(
        "Name",
        validators=[DataRequired(message="Name is required."), Length(max=120)],
    )
    email = StringField(
        "Email",
        validators=[DataRequired(message="Email is required."), Email(message="Please enter a valid email.")],
    )


class RegistrationForm(BackendForm):
    """Free-event registration; the backend validates too and answers with an `errors` map."""

    name = StringField("Name", validators=[DataRequired(message="Name is required."), Length(max=120)])
    email = StringField(
        "Email",
        validators=[DataRequired(message="Email is required."), Email(message="Please enter a valid email.")],
    )
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    city = StringField("City", validators=[Optional(), Length(max=80)])
    state = StringField("State", validators=[Optional(), Length(max=80)])
    country = StringField("Country", validators=[Optional(), Length(max=80)], default="United States")

    def payload(self, event_id: str) -> Dict[str, Any]:
        return {
            "name": self.name.data,
            "email": self.email.data,
            "phone": self.phone.data or "",
            "city": self.city.data or "",
            "state": self.state.data or "",
            "country": self.country.data or "",
            "event": event_id,
        }


class CustomerInfoForm(FlaskForm):
    """
    Booking step 2. Required-field checks live in the booking wizard so that
    a missing name/email/phone never reaches the backend.
    """

    name = StringField("Full Name", validators=[Length(max=120)])
    email = StringField("Email", validators=[Length(max=255)], render_kw={"type": "email"})
    phone = StringField("Phone", validators=[Length(max=40)])
    city = StringField("City", validators=[Length(max=80)])
    state = StringField("State", validators=[Length(max=80)])
    country = StringField("Country", validators=[Length(max=80)], default="United States")
    special_requests = TextAreaField("Special Requests", validators=[Length(max=1000)])


class DonationForm(BackendForm):
    amount = DecimalField(
        "Amount (USD)",
        places=2,
        validators=[
            DataRequired(message="Please choose or enter an amount."),
            NumberRange(min=1, message="Minimum donation is $1."),
        ],
        render_kw={"placeholder": "50.00"},
    )
    option_id = HiddenField()

    first_name = StringField("First Name", validators=[DataRequired(message="First name is required."), Length(max=80)])
    last_name = StringField("Last Name", validators=[DataRequired(message="Last name is required."), Length(max=80)])
    org = StringField("Organization", validators=[Optional(), Length(max=120)])
    title = StringField("Title", validators=[Optional(), Length(max=120)])
    address = StringField("Address", validators=[Optional(), Length(max=200)])
    city = StringField("City", validators=[Optional(), Length(max=80)])
    state = StringField("State", validators=[Optional(), Length(max=80)])
    zip = StringField("Zip", validators=[Optional(), Length(max=20)])
    country = StringField("Country", validators=[Optional(), Length(max=80)], default="US")
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    email = StringField(
        "Email",
        validators=[DataRequired(message="Email is required."), Email(message="Please enter a valid email.")],
    )
    email_work = StringField("Work Email", validators=[Optional(), Email(message="Please enter a valid email.")])
    volunteer = BooleanField("I'd like to volunteer")
    family_services = BooleanField("I'm interested in family services")

    # backend field names
    FIELD_MAP = {
        "first_name": "firstName",
        "last_name": "lastName",
        "org": "org",
        "title": "title",
        "address": "address",
        "city": "city",
        "state": "state",
        "zip": "zip",
        "country": "country",
        "phone": "phone",
        "email": "email",
        "email_work": "emailWork",
        "volunteer": "volunteer",
        "family_services": "familyServices",
    }
    SERVER_KEYS = {v: k for k, v in FIELD_MAP.items()}

    def payload(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for attr, key in self.FIELD_MAP.items():
            val = getattr(self, attr).data
            out[key] = val if isinstance(val, bool) else (val or "")
        out["amount"] = float(self.amount.data or 0)
        out["paymentMethod"] = "stripe"
        return out

