import typing as t

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel
from events.exceptions import EventImmutableError

# Once an event has active registrations these can no longer change.
FROZEN_FIELDS = ("capacity", "start", "end", "is_paid", "organiser_id")


class EventQuerySet(models.QuerySet["Event"]):
    def live(self) -> t.Self:
        """Events that have not been soft-deleted."""
        return self.filter(is_deleted=False)


class EventManager(models.Manager["Event"]):
    def get_queryset(self) -> EventQuerySet:
        """Get the base queryset."""
        return EventQuerySet(self.model, using=self._db)

    def live(self) -> EventQuerySet:
        """Events that have not been soft-deleted."""
        return self.get_queryset().live()


class Event(TimeStampedModel):
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    organiser = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="organised_events")
    capacity = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Maximum number of active registrations. Leave empty for unlimited.",
    )
    start = models.DateTimeField(db_index=True)
    end = models.DateTimeField(null=True, blank=True)
    is_paid = models.BooleanField(default=False, help_text="Attendees must pay through checkout to register")
    is_deleted = models.BooleanField(default=False, db_index=True)

    objects = EventManager()

    class Meta:
        ordering = ["start"]
        indexes = [
            models.Index(fields=["is_deleted", "start"], name="ix_event_deleted_start"),
        ]

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        """Validate the event window and frozen fields."""
        super().clean()
        if self.end and self.start and self.end < self.start:
            raise DjangoValidationError({"end": "End must not be before start."})
        self._check_frozen_fields()

    def _check_frozen_fields(self) -> None:
        if self._state.adding:
            return
        previous = Event.objects.filter(pk=self.pk).values(*FROZEN_FIELDS).first()
        if previous is None:
            return
        changed = [field for field in FROZEN_FIELDS if previous[field] != getattr(self, field)]
        if not changed:
            return
        if self.registrations.active().exists():
            raise EventImmutableError(
                {field.removesuffix("_id"): "Cannot be changed once the event has registrations." for field in changed}
            )

    @property
    def has_started(self) -> bool:
        """Whether the event start is in the past."""
        return self.start <= timezone.now()
