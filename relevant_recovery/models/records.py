"""Backend records shown in the donation flow and the admin tables."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .errors import InvalidOptionError
from .events import _id_of, _truthy

DONATION_STATUSES = ("succeeded", "processing", "failed")
BOOKING_STATUSES = ("confirmed", "reserved", "cancelled", "used")

OPTION_TYPES = ("contribution", "membership", "sponsorship")
OPTION_GROUPS: Dict[str, List[str]] = {
    "contribution": ["Friend", "Supporter", "Sustainer"],
    "membership": ["Family Membership", "Organizational Membership"],
    "sponsorship": [
        "Class/Workshop Sponsorship",
        "Program Sponsorship",
        "Special Events Sponsorship",
    ],
}


def _int_or(v: Any, default: int = 0) -> int:
    try:
        return int(float(v))
    except (TypeError, ValueError):
        return default


def _str(v: Any) -> str:
    return "" if v is None else str(v)


@dataclass(frozen=True)
class EventRef:
    """An event as embedded in a booking or registration: either an id or a populated object."""

    id: str = ""
    title: str = ""

    @classmethod
    def from_api(cls, raw: Any) -> "EventRef":
        if isinstance(raw, dict):
            return cls(id=_id_of(raw), title=_str(raw.get("title")))
        return cls(id=_str(raw))


@dataclass(frozen=True)
class Customer:
    name: str = ""
    email: str = ""
    phone: str = ""
    city: str = ""
    state: str = ""
    country: str = "United States"

    @classmethod
    def from_api(cls, raw: Any) -> "Customer":
        raw = raw if isinstance(raw, dict) else {}
        return cls(
            name=_str(raw.get("name")),
            email=_str(raw.get("email")),
            phone=_str(raw.get("phone")),
            city=_str(raw.get("city")),
            state=_str(raw.get("state")),
            country=_str(raw.get("country")) or "United States",
        )

    def as_payload(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class Donation:
    id: str
    name: Optional[str]
    email: Optional[str]
    amount: int
    status: str
    anonymous: bool = False
    message: str = ""
    payment_intent_id: str = ""
    created_at: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Donation":
        anonymous = _truthy(data.get("anonymous"))
        return cls(
            id=_id_of(data),
            name=data.get("name") or None,
            email=data.get("email") or None,
            amount=_int_or(data.get("amount")),
            status=_str(data.get("status")),
            anonymous=anonymous,
            message=_str(data.get("message")),
            payment_intent_id=_str(data.get("paymentIntentId")),
            created_at=_str(data.get("createdAt")),
        )

    @property
    def display_name(self) -> str:
        return "Anonymous" if self.anonymous else (self.name or "")


@dataclass(frozen=True)
class TicketBooking:
    id: str
    customer: Customer
    event: EventRef
    quantity: int
    unit_price: int
    total_amount: int
    status: str
    payment_status: str = ""
    payment_intent_id: str = ""
    reference_number: str = ""
    created_at: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TicketBooking":
        return cls(
            id=_id_of(data),
            customer=Customer.from_api(data.get("customer")),
            event=EventRef.from_api(data.get("event") or data.get("eventId")),
            quantity=_int_or(data.get("quantity"), 1),
            unit_price=_int_or(data.get("unitPrice")),
            total_amount=_int_or(data.get("totalAmount")),
            status=_str(data.get("status")),
            payment_status=_str(data.get("paymentStatus")),
            payment_intent_id=_str(data.get("paymentIntentId")),
            reference_number=_str(data.get("referenceNumber")),
            created_at=_str(data.get("createdAt")),
        )


@dataclass(frozen=True)
class Registration:
    id: str
    name: str
    email: str
    phone: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    event: EventRef = field(default_factory=EventRef)
    created_at: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Registration":
        return cls(
            id=_id_of(data),
            name=_str(data.get("name")),
            email=_str(data.get("email")),
            phone=_str(data.get("phone")),
            city=_str(data.get("city")),
            state=_str(data.get("state")),
            country=_str(data.get("country")),
            event=EventRef.from_api(data.get("event")),
            created_at=_str(data.get("createdAt")),
        )


@dataclass(frozen=True)
class DonationOption:
    id: str
    type: str
    group: str
    label: str
    amount: int
    order: int = 0
    active: bool = True

    def __post_init__(self) -> None:
        if self.type not in OPTION_TYPES:
            raise InvalidOptionError(f"Unknown donation option type: {self.type!r}")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DonationOption":
        return cls(
            id=_id_of(data),
            type=_str(data.get("type")),
            group=_str(data.get("group")),
            label=_str(data.get("label")),
            amount=_int_or(data.get("amount")),
            order=_int_or(data.get("order")),
            active=_truthy(data.get("active", True)),
        )

    def as_payload(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "group": self.group,
            "label": self.label,
            "amount": self.amount,
            "order": self.order,
            "active": self.active,
        }


def check_option_group(option_type: str, group: str) -> None:
    if option_type not in OPTION_TYPES:
        raise InvalidOptionError(f"Unknown donation option type: {option_type!r}")
    if group not in OPTION_GROUPS[option_type]:
        raise InvalidOptionError(f"'{group}' is not a {option_type} group.")


def group_donation_options(options: Iterable[DonationOption]) -> Dict[str, List[DonationOption]]:
    """Active options bucketed by type (in display order), each bucket sorted by `order`."""
    grouped: Dict[str, List[DonationOption]] = {t: [] for t in OPTION_TYPES}
    for opt in options:
        if opt.active:
            grouped[opt.type].append(opt)
    for bucket in grouped.values():
        bucket.sort(key=lambda o: o.order)
    return grouped


def options_from_api(rows: Iterable[Dict[str, Any]]) -> List[DonationOption]:
    """Parse backend rows, dropping any whose type is not one we offer."""
    out: List[DonationOption] = []
    for row in rows:
        try:
            out.append(DonationOption.from_api(row))
        except InvalidOptionError:
            continue
    return out
