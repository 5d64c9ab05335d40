import typing as t
from datetime import datetime

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel

from .event import Event


class TicketTypeQuerySet(models.QuerySet["TicketType"]):
    def released_at(self, moment: datetime) -> t.Self:
        """Ticket types whose release window contains the given moment.

        A missing bound is open on that side.
        """
        return self.filter(
            Q(release_starts_at__isnull=True) | Q(release_starts_at__lte=moment),
            Q(release_ends_at__isnull=True) | Q(release_ends_at__gt=moment),
        )

    def in_release_order(self) -> t.Self:
        """Lowest release order first, cheapest first on ties."""
        return self.order_by("release_order", "price", "created_at")


class TicketType(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_types")
    name = models.CharField(max_length=255)
    price_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Stripe price identifier. Required for paid events.",
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
        help_text="Cached unit amount, used for ordering and display",
    )
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    quantity = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Number of tickets available. Leave empty for unlimited.",
    )
    quantity_sold = models.PositiveIntegerField(default=0, editable=False)
    release_starts_at = models.DateTimeField(null=True, blank=True)
    release_ends_at = models.DateTimeField(null=True, blank=True)
    release_order = models.IntegerField(default=0, db_index=True)

    objects = TicketTypeQuerySet.as_manager()

    class Meta:
        ordering = ["release_order", "price"]
        constraints = [
            models.UniqueConstraint(fields=["event", "name"], name="unique_ticket_type_name_per_event"),
        ]

    def __str__(self) -> str:
        return f"{self.event.name} - {self.name}"

    def clean(self) -> None:
        """Validate the release window and the price reference."""
        super().clean()
        if self.release_starts_at and self.release_ends_at and self.release_starts_at >= self.release_ends_at:
            raise DjangoValidationError({"release_ends_at": "Release must end after it starts."})
        if self.event_id and self.event.is_paid and not self.price_id:
            raise DjangoValidationError({"price_id": "A price reference is required for paid events."})

    @property
    def is_sold_out(self) -> bool:
        """Whether every ticket of this type is sold."""
        return self.quantity is not None and self.quantity_sold >= self.quantity

    @property
    def remaining(self) -> int | None:
        """Tickets left, or None when unlimited."""
        if self.quantity is None:
            return None
        return max(self.quantity - self.quantity_sold, 0)
