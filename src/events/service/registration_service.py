"""Registration ledger.

Registrations are serialized per event: the event row is locked with ``select_for_update`` for the
whole count-and-insert, and a partial unique index on active (event, user) backs it up.
"""

import typing as t
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q, Sum
from django.db.models.functions import Coalesce
from django.template.loader import render_to_string
from django.utils import timezone

from accounts.models import CampusUser
from common.tasks import send_email
from events.models import Event, Registration, TicketType
from events.service import capacity_service, ticket_catalog
from notifications.service import reminder_service

logger = structlog.get_logger(__name__)


class RegistrationStatus(StrEnum):
    REGISTERED = "registered"
    ALREADY_REGISTERED = "already_registered"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    REJECTED = "rejected"


class DeregistrationStatus(StrEnum):
    OK = "ok"
    NOT_REGISTERED = "not_registered"


@dataclass(frozen=True)
class AttendeeInfo:
    """Name and email to snapshot on the registration. Falls back to the user's own."""

    name: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class PaymentDetails:
    payment_intent_id: str = ""
    amount: int | None = None
    currency: str = ""


@dataclass(frozen=True)
class RegistrationOutcome:
    status: RegistrationStatus
    registration: Registration | None = None
    reason: str | None = None

    @property
    def is_registered(self) -> bool:
        """Whether the user holds an active registration after this call."""
        return self.status in (RegistrationStatus.REGISTERED, RegistrationStatus.ALREADY_REGISTERED)


@dataclass(frozen=True)
class DeregistrationOutcome:
    status: DeregistrationStatus


@dataclass
class RegistrationStats:
    registrations: list[Registration] = field(default_factory=list)
    active: int = 0
    internal: int = 0
    external: int = 0
    cancelled: int = 0
    revenue: int = 0
    refunded: int = 0


def is_external(registrant: CampusUser, organiser: CampusUser) -> bool:
    """Whether the registrant comes from a different institution than the organiser.

    A registrant without an institution counts as external.
    """
    institution = registrant.normalised_institution()
    if not institution:
        return True
    return institution != organiser.normalised_institution()


def register(
    event_id: UUID,
    user: CampusUser,
    attendee: AttendeeInfo | None = None,
    *,
    ticket_type_id: UUID | None = None,
    checkout_session_id: str | None = None,
    payment: PaymentDetails | None = None,
) -> RegistrationOutcome:
    """Register a user for an event.

    Paid events only accept registrations backed by a paid checkout session. The caller is
    responsible for having confirmed the payment; its details are kept for refunds.
    """
    attendee = attendee or AttendeeInfo()
    payment = payment or PaymentDetails()
    event = Event.objects.live().select_related("organiser").filter(pk=event_id).first()
    if event is None:
        return RegistrationOutcome(RegistrationStatus.REJECTED, reason="event_not_found")
    existing = Registration.objects.active().filter(event=event, user=user).first()
    if existing is not None:
        return RegistrationOutcome(RegistrationStatus.ALREADY_REGISTERED, registration=existing)
    if event.is_paid and not checkout_session_id:
        return RegistrationOutcome(RegistrationStatus.REJECTED, reason="payment_required")

    email = attendee.email or user.email
    if not email:
        return RegistrationOutcome(RegistrationStatus.REJECTED, reason="email_required")

    if ticket_type_id is None and not event.is_paid and event.ticket_types.exists():
        ticket = ticket_catalog.current_ticket(event.pk)
        if ticket is None:
            return RegistrationOutcome(RegistrationStatus.REJECTED, reason="no_active_release")
        ticket_type_id = ticket.pk

    try:
        with transaction.atomic():
            locked_event = Event.objects.select_for_update().get(pk=event.pk)
            existing = Registration.objects.active().filter(event=locked_event, user=user).first()
            if existing is not None:
                return RegistrationOutcome(RegistrationStatus.ALREADY_REGISTERED, registration=existing)
            if checkout_session_id and Registration.objects.filter(checkout_session_id=checkout_session_id).exists():
                return RegistrationOutcome(RegistrationStatus.REJECTED, reason="checkout_session_used")
            if capacity_service.is_full(locked_event):
                logger.info("registration_capacity_exceeded", event_id=str(event.pk), user_id=str(user.pk))
                return RegistrationOutcome(RegistrationStatus.CAPACITY_EXCEEDED, reason="event_full")

            ticket_type = None
            if ticket_type_id is not None:
                ticket_type = TicketType.objects.select_for_update().filter(pk=ticket_type_id, event=event).first()
                if ticket_type is None:
                    return RegistrationOutcome(RegistrationStatus.REJECTED, reason="ticket_not_found")
                if ticket_type.is_sold_out:
                    return RegistrationOutcome(RegistrationStatus.CAPACITY_EXCEEDED, reason="sold_out")

            registration = Registration.objects.create(
                event=locked_event,
                user=user,
                name=attendee.name or user.get_display_name(),
                email=email,
                external=is_external(user, event.organiser),
                ticket_type=ticket_type,
                checkout_session_id=checkout_session_id,
                payment_intent_id=payment.payment_intent_id,
                amount_paid=payment.amount,
                currency=payment.currency,
            )
            if ticket_type is not None:
                TicketType.objects.filter(pk=ticket_type.pk).update(quantity_sold=F("quantity_sold") + 1)
            transaction.on_commit(lambda: _on_registered(registration.pk))
    except IntegrityError:
        # A racing request inserted the same active (event, user) or the same checkout session first.
        logger.info("registration_race_lost", event_id=str(event.pk), user_id=str(user.pk))
        existing = Registration.objects.active().filter(event=event, user=user).first()
        if existing is None:
            return RegistrationOutcome(RegistrationStatus.REJECTED, reason="checkout_session_used")
        return RegistrationOutcome(RegistrationStatus.ALREADY_REGISTERED, registration=existing)

    logger.info(
        "registration_created",
        event_id=str(event.pk),
        user_id=str(user.pk),
        registration_id=str(registration.pk),
        external=registration.external,
    )
    return RegistrationOutcome(RegistrationStatus.REGISTERED, registration=registration)


@transaction.atomic
def deregister(event_id: UUID, user: CampusUser) -> DeregistrationOutcome:
    """Cancel the user's active registration.

    Releases the ticket and cancels the pending reminder. Never refunds.
    """
    registration = Registration.objects.active().select_for_update().filter(event_id=event_id, user=user).first()
    if registration is None:
        return DeregistrationOutcome(DeregistrationStatus.NOT_REGISTERED)

    registration.cancelled = True
    registration.cancelled_at = timezone.now()
    registration.save(update_fields=["cancelled", "cancelled_at", "updated_at"])
    if registration.ticket_type_id is not None:
        TicketType.objects.filter(pk=registration.ticket_type_id, quantity_sold__gt=0).update(
            quantity_sold=F("quantity_sold") - 1
        )
    reminder_service.cancel_reminders(user=user, event_id=event_id)
    logger.info(
        "registration_cancelled",
        event_id=str(event_id),
        user_id=str(user.pk),
        registration_id=str(registration.pk),
    )
    return DeregistrationOutcome(DeregistrationStatus.OK)


def registrations_for(event_id: UUID, include_cancelled: bool = False) -> RegistrationStats:
    """Registrations of an event with organiser-facing totals."""
    qs = Registration.objects.filter(event_id=event_id)
    totals = qs.aggregate(
        active=Count("id", filter=Q(cancelled=False)),
        internal=Count("id", filter=Q(cancelled=False, external=False)),
        external=Count("id", filter=Q(cancelled=False, external=True)),
        cancelled=Count("id", filter=Q(cancelled=True)),
        revenue=Coalesce(Sum("amount_paid"), 0),
        refunded=Coalesce(Sum("amount_refunded"), 0),
    )
    listed = qs if include_cancelled else qs.active()
    return RegistrationStats(registrations=list(listed.with_user().order_by("created_at")), **totals)


def _on_registered(registration_id: UUID) -> None:
    registration = Registration.objects.select_related("event", "event__organiser", "user").get(pk=registration_id)
    reminder_service.schedule_for_registration(registration)
    _send_registration_emails(registration)


def _send_registration_emails(registration: Registration) -> None:
    event = registration.event
    context: dict[str, t.Any] = {
        "registration": registration,
        "event": event,
        "site_name": settings.SITE_NAME,
    }
    send_email.delay(
        to=registration.email,
        subject=f"You're registered for {event.name}",
        body=render_to_string("events/emails/registration_confirmation.txt", context),
    )
    organiser = event.organiser
    if organiser.email:
        send_email.delay(
            to=organiser.email,
            subject=f"New registration for {event.name}",
            body=render_to_string("events/emails/organiser_new_registration.txt", context),
        )
