"""Unit tests for the domain records and event rules.

Run with: pytest tests/test_models.py -v
"""

from decimal import Decimal

import pytest

from relevant_recovery.models import (
    BOOK_TICKET,
    REGISTER_NOW,
    Customer,
    Donation,
    DonationOption,
    Event,
    EventRef,
    InvalidEventError,
    InvalidOptionError,
    TicketBooking,
    action_for_cost,
    check_action,
    check_option_group,
    clamp_quantity,
    group_donation_options,
    options_from_api,
    parse_highlights,
    ticket_unit_price,
)

from .conftest import FREE_EVENT, INACTIVE_EVENT, PAID_EVENT


class TestCallToAction:
    """Tests for the cost -> call-to-action rule."""

    def test_exact_free_registers(self):
        """Only the exact string "Free" maps to Register Now."""
        assert action_for_cost("Free") == REGISTER_NOW

    @pytest.mark.parametrize("cost", ["free", "FREE", " Free", "$0", "", None, "$25"])
    def test_anything_else_books(self, cost):
        """Every cost other than exactly "Free" books a ticket."""
        assert action_for_cost(cost) == BOOK_TICKET

    def test_free_event_must_register(self):
        """A free event paired with Book Ticket is rejected."""
        with pytest.raises(InvalidEventError):
            check_action("Free", BOOK_TICKET)

    def test_book_ticket_needs_price(self):
        """Book Ticket without a parsable price is rejected."""
        with pytest.raises(InvalidEventError):
            check_action("TBD", BOOK_TICKET)

    def test_unknown_action_rejected(self):
        """Only the two known action types are accepted."""
        with pytest.raises(InvalidEventError):
            check_action("$10", "Buy Now")

    def test_valid_pairs_pass(self):
        """Consistent cost/action pairs raise nothing."""
        check_action("Free", REGISTER_NOW)
        check_action("$25", BOOK_TICKET)


class TestPricing:
    """Tests for ticket price parsing and quantity bounds."""

    @pytest.mark.parametrize(
        "cost, expected",
        [("$25", Decimal("25")), ("25.50 USD", Decimal("25.50")), ("$1,000", Decimal("1000"))],
    )
    def test_unit_price_parses_dollar_strings(self, cost, expected):
        """Dollar strings parse to a Decimal unit price."""
        assert ticket_unit_price(cost) == expected

    @pytest.mark.parametrize("cost", ["Free", "TBD", "$0", None])
    def test_unit_price_none_without_usable_price(self, cost):
        """Free, non-numeric and zero costs have no unit price."""
        assert ticket_unit_price(cost) is None

    @pytest.mark.parametrize("raw, expected", [(0, 1), (1, 1), (5, 5), (10, 10), (11, 10), ("3", 3), ("x", 1), (None, 1)])
    def test_clamp_quantity(self, raw, expected):
        """Quantity always lands in 1..10."""
        assert clamp_quantity(raw) == expected

    def test_total_and_pay_label(self):
        """Total is unit price times clamped quantity."""
        event = Event.from_api(PAID_EVENT)
        assert event.total_for(3) == Decimal("75.00")
        assert event.total_for(50) == Decimal("250.00")
        assert event.pay_label(2) == "Pay $50.00"


class TestHighlights:
    """Tests for highlight parsing."""

    def test_list_passes_through_without_blanks(self):
        """Lists are stripped and blank entries dropped."""
        assert parse_highlights([" Dinner ", "", None, "Music"]) == ["Dinner", "Music"]

    def test_json_encoded_list(self):
        """A JSON-encoded list decodes."""
        assert parse_highlights('["Dinner", "Live music"]') == ["Dinner", "Live music"]

    def test_comma_separated_text(self):
        """Plain text splits on commas."""
        assert parse_highlights("Dinner, Music,  ,Raffle") == ["Dinner", "Music", "Raffle"]

    @pytest.mark.parametrize("raw", [None, "", "   ", 42])
    def test_empty_inputs(self, raw):
        """Missing or unusable values give no highlights."""
        assert parse_highlights(raw) == []


class TestEventFromApi:
    """Tests for building Event from backend rows."""

    def test_free_event(self):
        """A free event exposes Register Now and no unit price."""
        event = Event.from_api(FREE_EVENT)
        assert event.id == "evt-free"
        assert event.is_free
        assert event.cta == REGISTER_NOW
        assert event.unit_price is None
        assert event.highlights == ("Lunch", "Kids corner")

    def test_paid_event(self):
        """A paid event maps backend keys to attributes."""
        event = Event.from_api(PAID_EVENT)
        assert event.cta == BOOK_TICKET
        assert event.special_gift == "Commemorative pin"
        assert event.description == "Annual fundraising dinner."
        assert event.capacity == 200

    def test_is_active_defaults_true(self):
        """Rows without isActive are treated as active."""
        row = dict(PAID_EVENT)
        row.pop("isActive")
        assert Event.from_api(row).is_active is True

    def test_inactive_flag(self):
        """isActive false is honored."""
        assert Event.from_api(INACTIVE_EVENT).is_active is False

    def test_missing_cost_is_free(self):
        """A row without a cost is a free event."""
        assert Event.from_api({"_id": "x", "title": "Walk"}).is_free

    def test_bad_capacity_is_none(self):
        """Unparsable capacity becomes None."""
        assert Event.from_api({"_id": "x", "capacity": "lots"}).capacity is None


class TestRecords:
    """Tests for donation and booking records."""

    def test_anonymous_donation_hides_name(self, fake):
        """Anonymous donations display as Anonymous."""
        donation = Donation.from_api({"_id": "d1", "name": fake.name(), "amount": 5000, "anonymous": True})
        assert donation.display_name == "Anonymous"
        assert donation.amount == 5000

    def test_booking_with_populated_event(self):
        """A populated event object yields both id and title."""
        booking = TicketBooking.from_api(
            {
                "_id": "b1",
                "customer": {"name": "Sam", "email": "sam@example.org"},
                "event": {"_id": "evt-paid", "title": "Hope Gala"},
                "quantity": 2,
                "unitPrice": 2500,
                "totalAmount": 5000,
                "status": "confirmed",
            }
        )
        assert booking.event == EventRef(id="evt-paid", title="Hope Gala")
        assert booking.customer.country == "United States"
        assert booking.total_amount == 5000

    def test_booking_with_event_id_only(self):
        """A bare event id is kept without a title."""
        booking = TicketBooking.from_api({"_id": "b2", "eventId": "evt-9"})
        assert booking.event == EventRef(id="evt-9")
        assert booking.quantity == 1

    def test_customer_payload(self):
        """Customer serializes every field."""
        assert set(Customer(name="A").as_payload()) == {"name", "email", "phone", "city", "state", "country"}


class TestDonationOptions:
    """Tests for donation option groups."""

    def test_unknown_type_rejected(self):
        """Options must use one of the three types."""
        with pytest.raises(InvalidOptionError):
            DonationOption(id="o1", type="gift", group="Friend", label="Friend", amount=10)

    def test_group_must_match_type(self):
        """A group from another type is rejected."""
        with pytest.raises(InvalidOptionError):
            check_option_group("contribution", "Family Membership")
        check_option_group("membership", "Family Membership")

    def test_grouping_orders_and_drops_inactive(self):
        """Active options bucket by type, sorted by order."""
        options = [
            DonationOption(id="a", type="contribution", group="Sustainer", label="Sustainer", amount=250, order=2),
            DonationOption(id="b", type="contribution", group="Friend", label="Friend", amount=50, order=0),
            DonationOption(id="c", type="membership", group="Family Membership", label="Family", amount=75, active=False),
        ]
        grouped = group_donation_options(options)
        assert list(grouped) == ["contribution", "membership", "sponsorship"]
        assert [o.id for o in grouped["contribution"]] == ["b", "a"]
        assert grouped["membership"] == []

    def test_options_from_api_skips_unknown_types(self):
        """Rows with an unknown type are dropped."""
        rows = [
            {"_id": "1", "type": "contribution", "group": "Friend", "label": "Friend", "amount": "50"},
            {"_id": "2", "type": "raffle", "group": "x", "label": "x", "amount": 5},
        ]
        options = options_from_api(rows)
        assert [o.id for o in options] == ["1"]
        assert options[0].amount == 50
