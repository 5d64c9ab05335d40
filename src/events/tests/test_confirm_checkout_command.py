import uuid
from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from django.core.management import CommandError, call_command

from accounts.models import CampusUser
from events.models import Event, Registration, TicketType
from events.service.stripe_service import CheckoutSessionState, CheckoutStatus

pytestmark = pytest.mark.django_db


def _state(status: CheckoutStatus, event: Event, ticket: TicketType, user: CampusUser) -> CheckoutSessionState:
    return CheckoutSessionState(
        session_id="cs_test_1",
        status=status,
        amount=2500,
        currency="gbp",
        event_id=str(event.pk),
        ticket_id=str(ticket.pk),
        user_id=str(user.pk),
    )


def _run(user: CampusUser, *extra: str) -> str:
    out = StringIO()
    call_command(
        "confirm_checkout", "cs_test_1", str(user.pk), "--interval", "0", "--max-attempts", "3", *extra, stdout=out
    )
    return out.getvalue()


@patch("events.service.stripe_service.get_checkout_status")
def test_registers_once_paid(
    mock_status: MagicMock, paid_event: Event, paid_ticket: TicketType, attendee: CampusUser
) -> None:
    mock_status.side_effect = [
        _state(CheckoutStatus.OPEN, paid_event, paid_ticket, attendee),
        _state(CheckoutStatus.PAID, paid_event, paid_ticket, attendee),
    ]

    output = _run(attendee)

    assert "Registration: registered" in output
    assert "Paid after 2 attempt(s)." in output
    registration = Registration.objects.get(event=paid_event, user=attendee)
    assert registration.checkout_session_id == "cs_test_1"


@patch("events.service.stripe_service.get_checkout_status")
def test_timeout_leaves_room_for_a_recheck(
    mock_status: MagicMock, paid_event: Event, paid_ticket: TicketType, attendee: CampusUser
) -> None:
    mock_status.return_value = _state(CheckoutStatus.OPEN, paid_event, paid_ticket, attendee)

    output = _run(attendee)

    assert "Payment not confirmed yet" in output
    assert mock_status.call_count == 3
    assert not Registration.objects.exists()


@patch("events.service.stripe_service.get_checkout_status")
def test_expired_session_fails(
    mock_status: MagicMock, paid_event: Event, paid_ticket: TicketType, attendee: CampusUser
) -> None:
    mock_status.return_value = _state(CheckoutStatus.EXPIRED, paid_event, paid_ticket, attendee)

    with pytest.raises(CommandError, match="expired"):
        _run(attendee)


def test_unknown_user() -> None:
    with pytest.raises(CommandError, match="does not exist"):
        call_command("confirm_checkout", "cs_test_1", str(uuid.uuid4()))
