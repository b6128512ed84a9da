"""Events as served by the backend, plus the booking rules tied to them."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from .errors import InvalidEventError

FREE_COST = "Free"
REGISTER_NOW = "Register Now"
BOOK_TICKET = "Book Ticket"
ACTION_TYPES = (REGISTER_NOW, BOOK_TICKET)

MIN_TICKETS = 1
MAX_TICKETS = 10

_NON_PRICE = re.compile(r"[^0-9.]")


def action_for_cost(cost: Any) -> str:
    """Call-to-action for an event: free events register, everything else books."""
    return REGISTER_NOW if cost == FREE_COST else BOOK_TICKET


def ticket_unit_price(cost: Any) -> Optional[Decimal]:
    """Parse a dollar string like "$25" or "25.00 USD"; None when there is no usable price."""
    if cost is None or cost == FREE_COST:
        return None
    digits = _NON_PRICE.sub("", str(cost))
    if not digits:
        return None
    try:
        price = Decimal(digits)
    except InvalidOperation:
        return None
    return price if price > 0 else None


def check_action(cost: Any, action_type: str) -> None:
    if action_type not in ACTION_TYPES:
        raise InvalidEventError(f"Unknown action type: {action_type!r}")
    if cost == FREE_COST and action_type != REGISTER_NOW:
        raise InvalidEventError("A free event must use 'Register Now'.")
    if action_type == BOOK_TICKET and ticket_unit_price(cost) is None:
        raise InvalidEventError("'Book Ticket' needs a numeric ticket cost.")


def clamp_quantity(value: Any) -> int:
    try:
        q = int(value)
    except (TypeError, ValueError):
        q = MIN_TICKETS
    return max(MIN_TICKETS, min(MAX_TICKETS, q))


def parse_highlights(raw: Any) -> List[str]:
    """
    Accepts what the admin form or the backend may hand us:
      - a list of strings
      - a JSON-encoded list
      - comma separated text
    Blank entries are dropped.
    """
    if raw is None:
        return []
    items: Any = raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        try:
            items = json.loads(text)
        except ValueError:
            items = text.split(",")
        if isinstance(items, str):
            items = [items]
    if not isinstance(items, (list, tuple)):
        return []
    return [str(h).strip() for h in items if h is not None and str(h).strip()]


def _id_of(data: Dict[str, Any]) -> str:
    return str(data.get("_id") or data.get("id") or "")


def _truthy(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    return str(v or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    date: str = ""
    time: str = ""
    place: str = ""
    description: str = ""
    capacity: Optional[int] = None
    cost: str = FREE_COST
    image: str = ""
    highlights: Tuple[str, ...] = field(default_factory=tuple)
    special_gift: str = ""
    action_type: str = ""
    is_active: bool = True
    free: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Event":
        capacity = data.get("capacity")
        try:
            capacity = int(capacity) if capacity not in (None, "") else None
        except (TypeError, ValueError):
            capacity = None
        cost = str(data.get("cost") or FREE_COST).strip()
        return cls(
            id=_id_of(data),
            title=str(data.get("title") or ""),
            date=str(data.get("date") or ""),
            time=str(data.get("time") or ""),
            place=str(data.get("place") or data.get("location") or ""),
            description=str(data.get("desc") or data.get("description") or ""),
            capacity=capacity,
            cost=cost,
            image=str(data.get("image") or ""),
            highlights=tuple(parse_highlights(data.get("highlights"))),
            special_gift=str(data.get("specialGift") or ""),
            action_type=str(data.get("actionType") or ""),
            is_active=_truthy(data.get("isActive", True)),
            free=_truthy(data.get("free")),
        )

    @property
    def is_free(self) -> bool:
        return self.cost == FREE_COST

    @property
    def cta(self) -> str:
        return action_for_cost(self.cost)

    @property
    def unit_price(self) -> Optional[Decimal]:
        return ticket_unit_price(self.cost)

    def total_for(self, quantity: Any) -> Decimal:
        price = self.unit_price or Decimal("0")
        return (price * clamp_quantity(quantity)).quantize(Decimal("0.01"))

    def pay_label(self, quantity: Any) -> str:
        return f"Pay ${self.total_for(quantity)}"
