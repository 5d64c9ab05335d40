"""Scheduling of reminder jobs."""

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.models import CampusUser
from events.models import Event, Registration
from notifications.enums import ReminderKind, ReminderStatus
from notifications.models import ReminderJob
from notifications.tasks import deliver_reminder

logger = structlog.get_logger(__name__)


def attendee_fire_at(event: Event) -> datetime | None:
    """When an attendee reminder should fire, or ``None`` once the event has started.

    If the lead time already passed the reminder fires right away.
    """
    now = timezone.now()
    if event.start <= now:
        return None
    return max(event.start - timedelta(hours=settings.REMINDER_LEAD_TIME_HOURS), now)


def organiser_fire_at(event: Event) -> datetime | None:
    """When the organiser summary should fire, or ``None`` once the event has started."""
    now = timezone.now()
    if event.start <= now:
        return None
    return max(event.start - timedelta(hours=settings.ORGANISER_SUMMARY_LEAD_TIME_HOURS), now)


@transaction.atomic
def enqueue_reminder(
    user: CampusUser, event: Event, fire_at: datetime, kind: ReminderKind = ReminderKind.ATTENDEE_REMINDER
) -> ReminderJob:
    """Create or re-arm the reminder job and queue its first attempt.

    Only a cancelled job is re-armed; pending, completed and abandoned jobs are returned as they
    are. The broker message is published after commit.
    """
    job, created = ReminderJob.objects.select_for_update().get_or_create(
        user=user, event=event, kind=kind, defaults={"fire_at": fire_at}
    )
    if not created:
        if job.status != ReminderStatus.CANCELLED:
            return job
        job.status = ReminderStatus.PENDING
        job.attempts = 0
        job.fire_at = fire_at
        job.completed_at = None
        job.last_error = ""
        job.save(update_fields=["status", "attempts", "fire_at", "completed_at", "last_error", "updated_at"])

    payload = {"job_id": str(job.pk), "user_id": str(user.pk), "event_id": str(event.pk), "attempts": job.attempts}
    transaction.on_commit(lambda: deliver_reminder.apply_async(kwargs=payload, eta=fire_at))
    logger.info("reminder_enqueued", kind=kind, fire_at=fire_at.isoformat(), **payload)
    return job


def schedule_for_registration(registration: Registration) -> ReminderJob | None:
    """Queue the attendee reminder for a new registration and make sure the organiser summary exists."""
    event = registration.event
    fire_at = attendee_fire_at(event)
    if fire_at is None:
        return None
    job = enqueue_reminder(registration.user, event, fire_at, ReminderKind.ATTENDEE_REMINDER)
    schedule_organiser_summary(event)
    return job


def schedule_organiser_summary(event: Event) -> ReminderJob | None:
    """Queue the organiser's pre-event summary."""
    fire_at = organiser_fire_at(event)
    if fire_at is None:
        return None
    return enqueue_reminder(event.organiser, event, fire_at, ReminderKind.ORGANISER_SUMMARY)


def cancel_reminders(*, user: CampusUser, event_id: UUID) -> int:
    """Cancel the user's pending attendee reminder for the event.

    Messages already on the queue find the job cancelled and do nothing.
    """
    cancelled = ReminderJob.objects.pending().filter(
        user=user, event_id=event_id, kind=ReminderKind.ATTENDEE_REMINDER
    ).update(status=ReminderStatus.CANCELLED, updated_at=timezone.now())
    if cancelled:
        logger.info("reminder_cancelled", user_id=str(user.pk), event_id=str(event_id))
    return cancelled


def ensure_upcoming_reminders(window_start_hours: int, window_end_hours: int) -> int:
    """Make sure every upcoming event in the window has its reminder jobs.

    Idempotent: pending and completed jobs are left as they are.
    """
    now = timezone.now()
    events = Event.objects.live().filter(
        start__gte=now + timedelta(hours=window_start_hours),
        start__lte=now + timedelta(hours=window_end_hours),
    )
    scheduled = 0
    for event in events.select_related("organiser"):
        fire_at = attendee_fire_at(event)
        if fire_at is None:
            continue
        registrations = Registration.objects.active().filter(event=event).with_user()
        for registration in registrations:
            enqueue_reminder(registration.user, event, fire_at, ReminderKind.ATTENDEE_REMINDER)
            scheduled += 1
        if schedule_organiser_summary(event) is not None:
            scheduled += 1
    return scheduled
