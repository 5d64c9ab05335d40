import typing as t
from datetime import timedelta
from decimal import Decimal

import pytest
import stripe
from django.utils import timezone

from accounts.models import CampusUser
from events.models import Event, SettlementAccount, TicketType


def stripe_object(cls: t.Any, data: dict[str, t.Any]) -> t.Any:
    """Build a Stripe object the way the client library does from an API response."""
    return cls.construct_from(data, "sk_test_dummy")


def live_account(account_id: str = "acct_organiser", **overrides: t.Any) -> stripe.Account:
    """A fully onboarded connected account."""
    data: dict[str, t.Any] = {
        "id": account_id,
        "object": "account",
        "details_submitted": True,
        "payouts_enabled": True,
        "capabilities": {"card_payments": "active", "transfers": "active"},
        "requirements": {"currently_due": [], "past_due": [], "disabled_reason": None},
    }
    data.update(overrides)
    return t.cast(stripe.Account, stripe_object(stripe.Account, data))


@pytest.fixture
def settlement_account(organiser: CampusUser) -> SettlementAccount:
    """The organiser's connected account, with cached flags that allow payments."""
    return SettlementAccount.objects.create(
        organiser=organiser,
        stripe_account_id="acct_organiser",
        card_payments_enabled=True,
        transfers_enabled=True,
        payouts_enabled=True,
        onboarding_complete=True,
    )


@pytest.fixture
def paid_ticket(paid_event: Event) -> TicketType:
    """A £25 ticket with a Stripe price, on release now."""
    return TicketType.objects.create(
        event=paid_event,
        name="Standard",
        price_id="price_standard",
        price=Decimal("25.00"),
        quantity=5,
        release_starts_at=timezone.now() - timedelta(days=1),
    )


@pytest.fixture
def free_ticket(event: Event) -> TicketType:
    """A free ticket on release now."""
    return TicketType.objects.create(
        event=event,
        name="General admission",
        quantity=2,
        release_starts_at=timezone.now() - timedelta(days=1),
    )
