"""Per-event ticket releases."""

from datetime import datetime
from uuid import UUID

from django.utils import timezone

from events.exceptions import TicketNotPurchasableError
from events.models import TicketType


def current_ticket(event_id: UUID, now: datetime | None = None) -> TicketType | None:
    """Return the ticket type currently on release for the event.

    Among ticket types whose release window contains ``now`` (a missing bound is open), the lowest
    ``release_order`` wins and ties go to the lowest price. No active release is a normal ``None``.
    """
    now = now or timezone.now()
    return TicketType.objects.filter(event_id=event_id).released_at(now).in_release_order().first()


def price_for(ticket_id: UUID) -> str:
    """Return the Stripe price reference used to open a checkout for this ticket type."""
    price_id = TicketType.objects.values_list("price_id", flat=True).get(pk=ticket_id)
    if not price_id:
        raise TicketNotPurchasableError(f"Ticket type {ticket_id} has no price reference.")
    return price_id
