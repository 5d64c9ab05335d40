import typing as t

from django.conf import settings
from django.db import models

from common.models import TimeStampedModel
from events.models import Event
from notifications.enums import ReminderKind, ReminderStatus


class ReminderJobQuerySet(models.QuerySet["ReminderJob"]):
    def pending(self) -> t.Self:
        """Jobs still waiting for a delivery attempt."""
        return self.filter(status=ReminderStatus.PENDING)


class ReminderJob(TimeStampedModel):
    """One reminder obligation for a (user, event, kind).

    The Celery message carries the attempt number it was scheduled for. The row is the source of
    truth: a message whose attempt does not match, or that arrives after the job reached a
    terminal state, is dropped.
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reminder_jobs")
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="reminder_jobs")
    kind = models.CharField(max_length=32, choices=ReminderKind.choices, default=ReminderKind.ATTENDEE_REMINDER)
    status = models.CharField(
        max_length=16, choices=ReminderStatus.choices, default=ReminderStatus.PENDING, db_index=True
    )
    attempts = models.PositiveIntegerField(default=0, help_text="Failed delivery attempts so far")
    fire_at = models.DateTimeField(db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True)

    objects = ReminderJobQuerySet.as_manager()

    class Meta:
        ordering = ["fire_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "event", "kind"], name="unique_reminder_job_per_user_event_kind"),
        ]

    def __str__(self) -> str:
        return f"{self.kind} for {self.user_id} @ {self.event_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        """Whether the job reached a final state."""
        return self.status in ReminderStatus.terminal()
