from .errors import DomainError, ErrorCode, InvalidEventError, InvalidOptionError, InvalidStepError
from .events import (
    ACTION_TYPES,
    BOOK_TICKET,
    FREE_COST,
    MAX_TICKETS,
    MIN_TICKETS,
    REGISTER_NOW,
    Event,
    action_for_cost,
    check_action,
    clamp_quantity,
    parse_highlights,
    ticket_unit_price,
)
from .records import (
    BOOKING_STATUSES,
    DONATION_STATUSES,
    OPTION_GROUPS,
    OPTION_TYPES,
    Customer,
    Donation,
    DonationOption,
    EventRef,
    Registration,
    TicketBooking,
    check_option_group,
    group_donation_options,
    options_from_api,
)

__all__ = [
    "ACTION_TYPES",
    "BOOK_TICKET",
    "BOOKING_STATUSES",
    "DONATION_STATUSES",
    "FREE_COST",
    "MAX_TICKETS",
    "MIN_TICKETS",
    "OPTION_GROUPS",
    "OPTION_TYPES",
    "REGISTER_NOW",
    "Customer",
    "DomainError",
    "Donation",
    "DonationOption",
    "ErrorCode",
    "Event",
    "EventRef",
    "InvalidEventError",
    "InvalidOptionError",
    "InvalidStepError",
    "Registration",
    "TicketBooking",
    "action_for_cost",
    "check_action",
    "check_option_group",
    "clamp_quantity",
    "group_donation_options",
    "options_from_api",
    "parse_highlights",
    "ticket_unit_price",
]
