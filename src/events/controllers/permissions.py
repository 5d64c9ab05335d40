from django.http import HttpRequest
from ninja_extra import ControllerBase
from ninja_extra.permissions import BasePermission

from events import models


class IsOrganiser(BasePermission):
    """Only users flagged as organisers may publish events or onboard for payouts."""

    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Check the organiser flag."""
        user = request.user
        return bool(user and user.is_authenticated and user.is_organiser)


class IsEventOrganiser(BasePermission):
    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Must implement abstract method. This is due to an error in Ninja Extra.

        This Method will be ignored, only has_object_permission will be called.
        """
        return True

    def has_object_permission(
        self, request: HttpRequest, controller: ControllerBase, obj: models.Event | models.Registration
    ) -> bool:
        """Only the event's organiser, for the event or one of its registrations."""
        event = obj.event if isinstance(obj, models.Registration) else obj
        return bool(event.organiser_id == request.user.id)
