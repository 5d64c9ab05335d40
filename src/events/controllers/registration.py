import typing as t
from uuid import UUID

from ninja.errors import HttpError
from ninja_extra import api_controller, route

from common.authentication import CampusJWTAuth, OptionalAuth
from common.controllers import UserAwareController
from common.throttling import CheckoutThrottle, RegistrationThrottle, WriteThrottle
from events import models, schema
from events.controllers.permissions import IsEventOrganiser
from events.service import capacity_service, registration_service, stripe_service, ticket_catalog
from events.service.registration_service import (
    AttendeeInfo,
    DeregistrationStatus,
    RegistrationOutcome,
    RegistrationStatus,
)


def outcome_response(outcome: RegistrationOutcome) -> tuple[int, schema.RegisterResponse]:
    """Map a ledger outcome onto the register response.

    ``registered`` is true when the user was already registered and the call was a no-op.
    """
    match outcome.status:
        case RegistrationStatus.REGISTERED:
            return 200, schema.RegisterResponse(success=True, registered=False)
        case RegistrationStatus.ALREADY_REGISTERED:
            return 200, schema.RegisterResponse(success=True, registered=True)
        case RegistrationStatus.CAPACITY_EXCEEDED:
            return 409, schema.RegisterResponse(success=False, error=outcome.reason or "capacity_exceeded")
        case _:
            return 400, schema.RegisterResponse(success=False, error=outcome.reason or "rejected")


@api_controller("/events", auth=OptionalAuth(), tags=["Registration"])
class EventRegistrationController(UserAwareController):
    """Capacity, current ticket, and the attendee's registration."""

    def get_one(self, event_id: UUID) -> models.Event:
        """A live event or 404."""
        return t.cast(models.Event, self.get_object_or_exception(models.Event.objects.live(), pk=event_id))

    @route.get("/{uuid:event_id}/capacity", url_name="event_capacity", response={200: schema.CapacitySchema})
    def capacity(self, event_id: UUID) -> schema.CapacitySchema:
        """Whether the event still has a free slot.

        Advisory only: the slot is not reserved, and registration re-checks it.
        """
        result = capacity_service.has_capacity(event_id)
        return schema.CapacitySchema(available=result.available)

    @route.get(
        "/{uuid:event_id}/tickets/current",
        url_name="current_ticket",
        response={200: schema.TicketTypeSchema},
    )
    def current_ticket(self, event_id: UUID) -> models.TicketType:
        """The ticket type currently on release.

        Returns 404 when no release is active, which simply means sales are closed right now.
        """
        event = self.get_one(event_id)
        ticket = ticket_catalog.current_ticket(event.pk)
        if ticket is None:
            raise HttpError(404, "No ticket release is currently active.")
        return ticket

    @route.post(
        "/{uuid:event_id}/register",
        url_name="event_register",
        response={200: schema.RegisterResponse, 400: schema.RegisterResponse, 409: schema.RegisterResponse},
        auth=CampusJWTAuth(),
        throttle=RegistrationThrottle(),
    )
    def register(self, event_id: UUID, payload: schema.RegisterPayload) -> tuple[int, schema.RegisterResponse]:
        """Register for a free event.

        Registering twice is not an error: the second call answers `registered: true`. A full event
        answers 409. Paid events are registered through checkout instead.
        """
        event = self.get_one(event_id)
        attendee = AttendeeInfo(name=payload.name, email=payload.email)
        outcome = registration_service.register(event.pk, self.user(), attendee)
        return outcome_response(outcome)

    @route.post(
        "/{uuid:event_id}/deregister",
        url_name="event_deregister",
        response={200: schema.DeregisterResponse, 404: schema.DeregisterResponse},
        auth=CampusJWTAuth(),
        throttle=WriteThrottle(),
    )
    def deregister(self, event_id: UUID) -> tuple[int, schema.DeregisterResponse]:
        """Cancel your registration. Payments are not refunded automatically."""
        event = self.get_one(event_id)
        outcome = registration_service.deregister(event.pk, self.user())
        if outcome.status == DeregistrationStatus.NOT_REGISTERED:
            return 404, schema.DeregisterResponse(success=False, error="not_registered")
        return 200, schema.DeregisterResponse(success=True, message="You are no longer registered for this event.")

    @route.post(
        "/{uuid:event_id}/checkout",
        url_name="event_checkout",
        response={200: schema.CheckoutSessionResponse},
        auth=CampusJWTAuth(),
        throttle=CheckoutThrottle(),
    )
    def checkout(self, event_id: UUID, payload: schema.CheckoutPayload) -> schema.CheckoutSessionResponse:
        """Open an embedded Stripe checkout for a ticket of this event.

        The revenue goes to the event organiser's connected account. Registration happens once the
        payment is confirmed, via `/checkout/{session_id}/confirm`.
        """
        event = self.get_one(event_id)
        ticket = t.cast(
            models.TicketType,
            self.get_object_or_exception(models.TicketType.objects.filter(event=event), pk=payload.ticket_id),
        )
        session_id, client_secret = stripe_service.create_checkout_session(
            event, ticket, self.user(), organiser_account_id=payload.organiser_account_id
        )
        return schema.CheckoutSessionResponse(session_id=session_id, client_secret=client_secret)

    @route.get(
        "/{uuid:event_id}/registrations",
        url_name="event_registrations",
        response={200: schema.RegistrationListResponse},
        auth=CampusJWTAuth(),
        permissions=[IsEventOrganiser()],
    )
    def registrations(self, event_id: UUID, include_cancelled: bool = False) -> dict[str, t.Any]:
        """Registrations with active, internal, external and cancelled totals. Organiser only."""
        event = self.get_one(event_id)
        stats = registration_service.registrations_for(event.pk, include_cancelled=include_cancelled)
        return {
            "success": True,
            "registrations": stats.registrations,
            "totals": {
                "active": stats.active,
                "internal": stats.internal,
                "external": stats.external,
                "cancelled": stats.cancelled,
                "revenue": stats.revenue,
                "refunded": stats.refunded,
            },
        }

    @route.post(
        "/{uuid:event_id}/registrations/{uuid:registration_id}/refund",
        url_name="refund_registration",
        response={200: schema.RefundResponse},
        auth=CampusJWTAuth(),
        permissions=[IsEventOrganiser()],
        throttle=WriteThrottle(),
    )
    def refund(self, event_id: UUID, registration_id: UUID, payload: schema.RefundPayload) -> schema.RefundResponse:
        """Refund a paid registration, fully or in part. Organiser only.

        The registration stays active; refunding never deregisters the attendee.
        """
        event = self.get_one(event_id)
        registration = t.cast(
            models.Registration,
            self.get_object_or_exception(models.Registration.objects.filter(event=event), pk=registration_id),
        )
        result = stripe_service.refund_registration(registration, amount=payload.amount, reason=payload.reason or "")
        return schema.RefundResponse(
            refund_id=result.refund_id,
            amount=result.amount,
            currency=result.currency,
            is_full_refund=result.is_full_refund,
            status=result.status,
        )
