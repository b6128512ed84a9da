from __future__ import annotations

from flask import session

from relevant_recovery.models import Event

from .wizard import BookingWizard, Step, WizardState, map_server_errors

_SESSION_PREFIX = "booking:"


def load_wizard(event: Event, backend) -> BookingWizard:
    """Restore the wizard for this event from the session (fresh one if none)."""
    state = WizardState.from_dict(session.get(_SESSION_PREFIX + event.id), event.id)
    return BookingWizard(event, backend, state)


def save_wizard(wizard: BookingWizard) -> None:
    session[_SESSION_PREFIX + wizard.event.id] = wizard.state.to_dict()
    session.modified = True


def clear_wizard(event_id: str) -> None:
    session.pop(_SESSION_PREFIX + event_id, None)


__all__ = [
    "BookingWizard",
    "Step",
    "WizardState",
    "clear_wizard",
    "load_wizard",
    "map_server_errors",
    "save_wizard",
]
