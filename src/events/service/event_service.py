"""Organiser-side event management."""

import structlog
from django.db import transaction
from django.utils import timezone

from accounts.models import CampusUser
from events.models import Event, TicketType
from events.schema import EventCreateSchema, EventEditSchema, TicketTypeCreateSchema
from events.service.stripe_service import describe_price

logger = structlog.get_logger(__name__)


def create_event(organiser: CampusUser, payload: EventCreateSchema) -> Event:
    """Publish a new event owned by the organiser."""
    event = Event.objects.create(organiser=organiser, **payload.model_dump())
    logger.info("event_created", event_id=str(event.pk), organiser_id=str(organiser.pk))
    return event


@transaction.atomic
def update_event(event: Event, payload: EventEditSchema) -> Event:
    """Apply the fields set in the payload.

    Takes the same row lock as registration, so a frozen-field change cannot slip in while a first
    registration is being committed. Model validation rejects frozen fields once registrations exist.
    """
    event = Event.objects.select_for_update().get(pk=event.pk)
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(event, field, value)
    event.save()
    logger.info("event_updated", event_id=str(event.pk), fields=sorted(changes))
    return event


def delete_event(event: Event) -> None:
    """Soft delete. Registrations are kept and pending reminders skip the event."""
    Event.objects.filter(pk=event.pk).update(is_deleted=True, updated_at=timezone.now())
    logger.info("event_deleted", event_id=str(event.pk))


def create_ticket_type(event: Event, payload: TicketTypeCreateSchema) -> TicketType:
    """Add a ticket type; a referenced Stripe price fills in the cached amount and currency."""
    data = payload.model_dump()
    if payload.price_id:
        data["price"], data["currency"] = describe_price(payload.price_id)
    ticket = TicketType.objects.create(event=event, **data)
    logger.info("ticket_type_created", event_id=str(event.pk), ticket_type_id=str(ticket.pk))
    return ticket
