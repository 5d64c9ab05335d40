"""Enums for reminder jobs."""

from django.db.models import TextChoices


class ReminderKind(TextChoices):
    ATTENDEE_REMINDER = "attendee_reminder", "Attendee reminder"
    ORGANISER_SUMMARY = "organiser_summary", "Organiser summary"


class ReminderStatus(TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    ABANDONED = "abandoned", "Abandoned"
    CANCELLED = "cancelled", "Cancelled"

    @classmethod
    def terminal(cls) -> tuple[str, ...]:
        """States a job never leaves on its own."""
        return (cls.COMPLETED, cls.ABANDONED, cls.CANCELLED)
