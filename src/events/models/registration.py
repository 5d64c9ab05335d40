import typing as t

from django.conf import settings
from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel

from .event import Event
from .ticket import TicketType


class RegistrationQuerySet(models.QuerySet["Registration"]):
    def active(self) -> t.Self:
        """Registrations that have not been cancelled."""
        return self.filter(cancelled=False)

    def with_user(self) -> t.Self:
        """Select the registrant."""
        return self.select_related("user")


class Registration(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="registrations")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="registrations")
    name = models.CharField(max_length=255)
    email = models.EmailField()
    external = models.BooleanField(
        default=False,
        help_text="The registrant belongs to a different institution than the organiser",
    )
    ticket_type = models.ForeignKey(
        TicketType, on_delete=models.SET_NULL, null=True, blank=True, related_name="registrations"
    )
    checkout_session_id = models.CharField(max_length=255, null=True, blank=True, unique=True)
    payment_intent_id = models.CharField(max_length=255, blank=True)
    amount_paid = models.PositiveIntegerField(null=True, blank=True, help_text="In minor units")
    amount_refunded = models.PositiveIntegerField(default=0, help_text="In minor units")
    currency = models.CharField(max_length=3, blank=True)
    cancelled = models.BooleanField(default=False, db_index=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = RegistrationQuerySet.as_manager()

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "user"],
                condition=Q(cancelled=False),
                name="unique_active_registration_per_event_user",
            ),
        ]
        indexes = [
            models.Index(fields=["event", "cancelled"], name="ix_registration_event_cancel"),
        ]

    def __str__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"{self.name} @ {self.event_id} ({state})"

    @property
    def refundable_amount(self) -> int:
        """What is left to refund of the payment, in minor units."""
        if not self.payment_intent_id or self.amount_paid is None:
            return 0
        return max(self.amount_paid - self.amount_refunded, 0)
