"""Concurrent registrations against the real database."""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from django.db import connection

from accounts.models import CampusUser
from conftest import CampusUserFactory
from events.models import Event, Registration
from events.service import registration_service
from events.service.registration_service import RegistrationOutcome, RegistrationStatus

pytestmark = pytest.mark.django_db(transaction=True)


def _race(event: Event, users: list[CampusUser]) -> list[RegistrationOutcome]:
    barrier = threading.Barrier(len(users))

    def attempt(user: CampusUser) -> RegistrationOutcome:
        try:
            barrier.wait()
            return registration_service.register(event.pk, user)
        finally:
            connection.close()

    with ThreadPoolExecutor(max_workers=len(users)) as pool:
        return list(pool.map(attempt, users))


@patch("notifications.tasks.deliver_reminder.apply_async")
@patch("events.service.registration_service._send_registration_emails")
def test_last_slot_goes_to_exactly_one(
    mock_emails: object, mock_apply_async: object, event: Event, campus_user_factory: CampusUserFactory
) -> None:
    event.capacity = 1
    event.save()
    users = [campus_user_factory() for _ in range(5)]

    outcomes = _race(event, users)

    statuses = sorted(outcome.status for outcome in outcomes)
    assert statuses.count(RegistrationStatus.REGISTERED) == 1
    assert statuses.count(RegistrationStatus.CAPACITY_EXCEEDED) == 4
    assert Registration.objects.active().filter(event=event).count() == 1


@patch("notifications.tasks.deliver_reminder.apply_async")
@patch("events.service.registration_service._send_registration_emails")
def test_same_user_racing_registers_once(
    mock_emails: object, mock_apply_async: object, event: Event, attendee: CampusUser
) -> None:
    outcomes = _race(event, [attendee, attendee, attendee])

    statuses = [outcome.status for outcome in outcomes]
    assert statuses.count(RegistrationStatus.REGISTERED) == 1
    assert statuses.count(RegistrationStatus.ALREADY_REGISTERED) == 2
    assert Registration.objects.filter(event=event, user=attendee).count() == 1
