# relevant_recovery/cli.py
# =============================================================================
# Operator CLI
#   flask --app wsgi relevant-recovery check-backend
#   flask --app wsgi relevant-recovery stripe-mode
#   flask --app wsgi relevant-recovery seed-donation-options --email admin@...
# =============================================================================

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import click
from flask import current_app
from flask.cli import AppGroup

from relevant_recovery.models import OPTION_GROUPS, DonationOption, options_from_api
from relevant_recovery.services.backend import BackendError

relevant_recovery_cli = AppGroup("relevant-recovery", help="Relevant Recovery operator tools.")

# default amounts in dollars, in display order per type
DEFAULT_OPTION_AMOUNTS: Dict[str, List[int]] = {
    "contribution": [50, 100, 250],
    "membership": [75, 250],
    "sponsorship": [500, 1000, 2500],
}


def standard_options() -> List[DonationOption]:
    """One active option per standard group; the label is the group name."""
    out: List[DonationOption] = []
    for option_type, groups in OPTION_GROUPS.items():
        for order, (group, amount) in enumerate(zip(groups, DEFAULT_OPTION_AMOUNTS[option_type])):
            out.append(DonationOption(id="", type=option_type, group=group, label=group, amount=amount, order=order))
    return out


@relevant_recovery_cli.command("check-backend")
def check_backend() -> None:
    """🔌 Fetch the public events list and report how many came back."""
    client = current_app.extensions["backend"]
    try:
        events = client.list_events()
    except BackendError as e:
        click.secho(f"❌ Backend unreachable at {client.base}: {e.message}", fg="red", bold=True)
        raise SystemExit(1)
    click.secho(f"✅ {client.base} is up ({len(events)} events)", fg="bright_green", bold=True)


@relevant_recovery_cli.command("stripe-mode")
def stripe_mode() -> None:
    """💳 Print the Stripe mode detected from the configured keys."""
    gateway = current_app.extensions["payments"]
    color = {"live": "red", "test": "green"}.get(gateway.mode, "yellow")
    click.secho(f"Stripe mode: {gateway.mode}", fg=color, bold=True)
    if not gateway.enabled:
        click.echo("  ↳ set STRIPE_SECRET_KEY and STRIPE_PUBLISHABLE_KEY to enable payments")


@relevant_recovery_cli.command("seed-donation-options")
@click.option("--email", help="Admin account email (prompted when needed).")
@click.option("--password", help="Admin account password (prompted when needed).")
@click.option("--dry-run", is_flag=True, help="List what would be created without calling the backend.")
def seed_donation_options(email: Optional[str], password: Optional[str], dry_run: bool) -> None:
    """🌱 Create the standard donation options that are not there yet."""
    client = current_app.extensions["backend"]
    try:
        existing = {(o.type, o.group) for o in options_from_api(client.list_donation_options())}
    except BackendError as e:
        click.secho(f"❌ Could not load donation options: {e.message}", fg="red", bold=True)
        raise SystemExit(1)

    missing = [o for o in standard_options() if (o.type, o.group) not in existing]
    if not missing:
        click.secho("✅ All standard donation options already exist.", fg="bright_green")
        return

    if dry_run:
        for o in missing:
            click.echo(f"  ↳ would create {o.type}: {o.label} (${o.amount})")
        return

    email = email or click.prompt("Email")
    password = password or click.prompt("Password", hide_input=True)
    try:
        token, _user = client.login(email, password)
    except BackendError as e:
        click.secho(f"❌ Login failed: {e.message}", fg="red", bold=True)
        raise SystemExit(1)

    admin = client.with_token(token)
    failures: List[Tuple[DonationOption, str]] = []
    for o in missing:
        try:
            admin.create_donation_option(o.as_payload())
            click.secho(f"  ↳ created {o.type}: {o.label} (${o.amount})", fg="green")
        except BackendError as e:
            failures.append((o, e.message))
            click.secho(f"  ↳ failed {o.type}: {o.label}: {e.message}", fg="red")

    if failures:
        raise SystemExit(1)
    click.secho(f"✅ Seeded {len(missing)} donation option(s).", fg="bright_green", bold=True)
