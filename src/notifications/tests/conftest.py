from datetime import timedelta

import pytest

from accounts.models import CampusUser
from events.models import Event, Registration
from notifications.enums import ReminderKind
from notifications.models import ReminderJob


@pytest.fixture
def registration(event: Event, attendee: CampusUser) -> Registration:
    return Registration.objects.create(event=event, user=attendee, name="Sam Student", email="sam@uni.test")


@pytest.fixture
def reminder_job(registration: Registration) -> ReminderJob:
    """A pending attendee reminder for the registration."""
    return ReminderJob.objects.create(
        user=registration.user,
        event=registration.event,
        kind=ReminderKind.ATTENDEE_REMINDER,
        fire_at=registration.event.start - timedelta(hours=3),
    )
