"""Unit tests for the ticket booking wizard.

These exercise step transitions, local validation and how backend and
Stripe outcomes land in wizard state.
Run with: pytest tests/test_wizard.py -v
"""

import pytest

from relevant_recovery.booking import BookingWizard, Step, WizardState, map_server_errors
from relevant_recovery.booking.wizard import (
    CONFIRMATION_FAILED,
    INTENT_MISMATCH,
    REQUIRES_ACTION,
    REQUIRES_PAYMENT_METHOD,
    intent_id_from_secret,
)
from relevant_recovery.models import Event, InvalidStepError
from relevant_recovery.services.backend import BackendError, BackendValidationError
from relevant_recovery.services.payments import PaymentResult

from .conftest import PAID_EVENT


@pytest.fixture
def wizard(backend):
    return BookingWizard(Event.from_api(PAID_EVENT), backend)


def _fill(wizard, fake):
    wizard.update_customer(name=fake.name(), email=fake.email(), phone=fake.phone_number())


def _at_payment(wizard, fake):
    wizard.continue_to_checkout()
    _fill(wizard, fake)
    assert wizard.continue_to_payment() is True
    return wizard


class TestSteps:
    """Tests for one-step-at-a-time movement."""

    def test_starts_on_details(self, wizard):
        """A fresh wizard starts on the details step with quantity 1."""
        assert wizard.step == Step.DETAILS
        assert wizard.state.quantity == 1
        assert wizard.state.customer["country"] == "United States"

    def test_checkout_moves_forward_without_network(self, wizard, backend):
        """Details -> info makes no backend call."""
        wizard.continue_to_checkout()
        assert wizard.step == Step.INFO
        assert backend.calls == []

    def test_back_from_details_rejected(self, wizard):
        """There is no step before details."""
        with pytest.raises(InvalidStepError):
            wizard.back()

    def test_cannot_skip_to_payment(self, wizard):
        """Payment cannot be reached from details."""
        with pytest.raises(InvalidStepError):
            wizard.continue_to_payment()

    def test_back_keeps_entered_data(self, wizard, fake):
        """Going back keeps customer data and quantity."""
        wizard.set_quantity(4)
        wizard.continue_to_checkout()
        _fill(wizard, fake)
        name = wizard.state.customer["name"]
        wizard.back()
        assert wizard.step == Step.DETAILS
        assert wizard.state.quantity == 4
        assert wizard.state.customer["name"] == name

    def test_quantity_controls_clamp(self, wizard):
        """Increment and decrement stay within 1..10."""
        wizard.decrement()
        assert wizard.state.quantity == 1
        wizard.set_quantity(10)
        wizard.increment()
        assert wizard.state.quantity == 10
        assert wizard.pay_label == "Pay $250.00"


class TestCustomerInfo:
    """Tests for the info -> payment transition."""

    def test_missing_fields_block_without_backend_call(self, wizard, backend):
        """Missing name/email/phone sets field errors and never calls the backend."""
        wizard.continue_to_checkout()
        wizard.update_customer(name="  ")
        assert wizard.continue_to_payment() is False
        assert set(wizard.state.field_errors) == {"name", "email", "phone"}
        assert wizard.step == Step.INFO
        assert backend.called("create_booking") == []

    def test_creates_booking_and_stores_secret(self, wizard, backend, fake):
        """A complete form creates the booking and moves to payment."""
        wizard.set_quantity(2)
        _at_payment(wizard, fake)
        assert wizard.step == Step.PAYMENT
        assert wizard.state.client_secret == "pi_123_secret_abc"
        assert wizard.state.ticket_id == "tkt-1"
        (event_id, customer, quantity, metadata), = backend.called("create_booking")
        assert event_id == "evt-paid"
        assert quantity == 2
        assert customer["country"] == "United States"
        assert metadata == {"specialRequests": ""}

    def test_same_details_reuse_booking(self, wizard, backend, fake):
        """Back then forward with unchanged details reuses the booking."""
        _at_payment(wizard, fake)
        wizard.back()
        assert wizard.continue_to_payment() is True
        assert len(backend.called("create_booking")) == 1
        assert wizard.state.ticket_id == "tkt-1"

    def test_changed_details_create_new_booking(self, wizard, backend, fake):
        """Changing quantity after going back creates a fresh booking."""
        _at_payment(wizard, fake)
        wizard.back()
        wizard.back()
        wizard.set_quantity(3)
        wizard.continue_to_checkout()
        assert wizard.continue_to_payment() is True
        assert len(backend.called("create_booking")) == 2
        assert wizard.state.ticket_id == "tkt-2"

    def test_server_validation_maps_to_fields(self, wizard, backend, fake):
        """Backend field errors land on local fields; others become the page error."""
        backend.fail["create_booking"] = BackendValidationError(
            {"customerEmail": "Email already used", "eventId": "Event is sold out"}, "Validation failed"
        )
        wizard.continue_to_checkout()
        _fill(wizard, fake)
        assert wizard.continue_to_payment() is False
        assert wizard.state.field_errors == {"email": "Email already used"}
        assert wizard.state.error == "Event is sold out"
        assert wizard.step == Step.INFO

    def test_network_failure_shows_message(self, wizard, backend, fake):
        """A transport error keeps the user on info with the message."""
        backend.fail["create_booking"] = BackendError("Failed to create booking. Please try again.")
        wizard.continue_to_checkout()
        _fill(wizard, fake)
        assert wizard.continue_to_payment() is False
        assert wizard.state.error == "Failed to create booking. Please try again."


class TestPayment:
    """Tests for completing a payment."""

    def test_succeeded_confirms_booking(self, wizard, backend, fake):
        """A succeeded intent confirms server-side and returns the confirmation path."""
        _at_payment(wizard, fake)
        path = wizard.complete_payment(PaymentResult(status="succeeded", payment_intent_id="pi_123"))
        assert path == "/booking-confirmation/tkt-1"
        assert wizard.step == Step.CONFIRMED
        assert backend.called("confirm_booking_payment") == [("pi_123", "tkt-1")]

    def test_confirmation_failure_stays_on_payment(self, wizard, backend, fake):
        """A failed backend confirmation keeps the user on payment."""
        backend.confirm_result = False
        _at_payment(wizard, fake)
        assert wizard.complete_payment(PaymentResult(status="succeeded", payment_intent_id="pi_123")) is None
        assert wizard.step == Step.PAYMENT
        assert wizard.state.error == CONFIRMATION_FAILED

    def test_declined_card_message(self, wizard, fake):
        """requires_payment_method asks for another card."""
        _at_payment(wizard, fake)
        wizard.complete_payment(PaymentResult(status="requires_payment_method", payment_intent_id="pi_123"))
        assert wizard.state.error == REQUIRES_PAYMENT_METHOD

    def test_requires_action_message(self, wizard, backend, fake):
        """requires_action asks the customer to retry the verification."""
        _at_payment(wizard, fake)
        assert wizard.complete_payment(PaymentResult(status="requires_action", payment_intent_id="pi_123")) is None
        assert wizard.step == Step.PAYMENT
        assert wizard.state.error == REQUIRES_ACTION
        assert backend.called("confirm_booking_payment") == []

    def test_other_status_is_reported(self, wizard, backend, fake):
        """Any other status is shown to the customer and nothing is confirmed."""
        _at_payment(wizard, fake)
        assert wizard.complete_payment(PaymentResult(status="canceled", payment_intent_id="pi_123")) is None
        assert wizard.state.error == "Payment status: canceled"
        assert backend.called("confirm_booking_payment") == []

    def test_provider_error_shown_verbatim(self, wizard, backend, fake):
        """A Stripe error message is shown as-is and nothing is confirmed."""
        _at_payment(wizard, fake)
        wizard.complete_payment(PaymentResult(status="error", payment_intent_id="pi_123", error="Your card was declined."))
        assert wizard.state.error == "Your card was declined."
        assert backend.called("confirm_booking_payment") == []

    def test_foreign_intent_rejected(self, wizard, backend, fake):
        """An intent that does not match the booking's client secret is refused."""
        _at_payment(wizard, fake)
        wizard.complete_payment(PaymentResult(status="succeeded", payment_intent_id="pi_other"))
        assert wizard.state.error == INTENT_MISMATCH
        assert backend.called("confirm_booking_payment") == []

    def test_confirmed_is_terminal(self, wizard, fake):
        """No step moves out of confirmed."""
        _at_payment(wizard, fake)
        wizard.complete_payment(PaymentResult(status="succeeded", payment_intent_id="pi_123"))
        with pytest.raises(InvalidStepError):
            wizard.back()

    def test_fail_payment_records_message(self, wizard, fake):
        """Browser-reported errors stay on payment."""
        _at_payment(wizard, fake)
        wizard.fail_payment("Your card has insufficient funds.")
        assert wizard.step == Step.PAYMENT
        assert wizard.state.error == "Your card has insufficient funds."


class TestState:
    """Tests for session round-tripping and helpers."""

    def test_state_survives_dict_round_trip(self, wizard, fake):
        """to_dict/from_dict restores step, customer and booking."""
        _at_payment(wizard, fake)
        restored = WizardState.from_dict(wizard.state.to_dict(), "evt-paid")
        assert restored.step == Step.PAYMENT
        assert restored.ticket_id == "tkt-1"
        assert restored.customer == wizard.state.customer

    def test_state_for_other_event_is_fresh(self, wizard, fake):
        """Saved state for another event is ignored."""
        _at_payment(wizard, fake)
        restored = WizardState.from_dict(wizard.state.to_dict(), "evt-other")
        assert restored.step == Step.DETAILS
        assert restored.ticket_id is None

    def test_intent_id_from_secret(self):
        """The PaymentIntent id is the client secret's prefix."""
        assert intent_id_from_secret("pi_123_secret_abc") == "pi_123"
        assert intent_id_from_secret(None) == ""

    def test_map_server_errors_first_unmapped_wins(self):
        """Only the first unmapped message becomes the page error."""
        fields, page = map_server_errors({"quantity": "Too many", "a": "first", "b": "second"})
        assert fields == {"quantity": "Too many"}
        assert page == "first"
