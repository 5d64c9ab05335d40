import typing as t
from uuid import UUID

from ninja_extra import api_controller, route

from common.authentication import CampusJWTAuth
from common.controllers import UserAwareController
from common.schema import ResponseMessage, ValidationErrorResponse
from common.throttling import WriteThrottle
from events import models, schema
from events.controllers.permissions import IsEventOrganiser, IsOrganiser
from events.service import event_service


@api_controller("/events", auth=CampusJWTAuth(), tags=["Event Admin"], throttle=WriteThrottle())
class EventOrganiserController(UserAwareController):
    def get_one(self, event_id: UUID) -> models.Event:
        """A live event the caller organises."""
        return t.cast(models.Event, self.get_object_or_exception(models.Event.objects.live(), pk=event_id))

    @route.post("", url_name="create_event", response={201: schema.EventSchema}, permissions=[IsOrganiser()])
    def create_event(self, payload: schema.EventCreateSchema) -> tuple[int, models.Event]:
        """Publish a new event."""
        return 201, event_service.create_event(self.user(), payload)

    @route.patch(
        "/{uuid:event_id}",
        url_name="edit_event",
        response={200: schema.EventSchema, 400: ValidationErrorResponse},
        permissions=[IsEventOrganiser()],
    )
    def edit_event(self, event_id: UUID, payload: schema.EventEditSchema) -> models.Event:
        """Edit an event.

        Capacity, start, end, paid flag and organiser are frozen once the event has active registrations.
        """
        return event_service.update_event(self.get_one(event_id), payload)

    @route.delete(
        "/{uuid:event_id}", url_name="delete_event", response={200: ResponseMessage}, permissions=[IsEventOrganiser()]
    )
    def delete_event(self, event_id: UUID) -> ResponseMessage:
        """Hide the event. Registrations are kept; pending reminders will skip it."""
        event_service.delete_event(self.get_one(event_id))
        return ResponseMessage(message="Event deleted.")

    @route.get(
        "/{uuid:event_id}/ticket-types",
        url_name="list_ticket_types",
        response={200: list[schema.TicketTypeSchema]},
        permissions=[IsEventOrganiser()],
    )
    def list_ticket_types(self, event_id: UUID) -> list[models.TicketType]:
        """All ticket types of the event in release order."""
        event = self.get_one(event_id)
        return list(event.ticket_types.in_release_order())  # type: ignore[attr-defined]

    @route.post(
        "/{uuid:event_id}/ticket-types",
        url_name="create_ticket_type",
        response={201: schema.TicketTypeSchema},
        permissions=[IsEventOrganiser()],
    )
    def create_ticket_type(
        self, event_id: UUID, payload: schema.TicketTypeCreateSchema
    ) -> tuple[int, models.TicketType]:
        """Add a ticket type.

        When a Stripe price is referenced, the displayed amount and currency are read from it.
        """
        return 201, event_service.create_ticket_type(self.get_one(event_id), payload)
