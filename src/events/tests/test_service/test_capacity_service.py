import uuid
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from accounts.models import CampusUser
from conftest import CampusUserFactory
from events.models import Event, Registration
from events.service import capacity_service

pytestmark = pytest.mark.django_db


def _fill(event: Event, users: list[CampusUser]) -> None:
    for user in users:
        Registration.objects.create(event=event, user=user, name=user.username, email=user.email)


def test_has_capacity_with_free_slots(event: Event) -> None:
    assert capacity_service.has_capacity(event.pk).available is True


def test_has_capacity_when_full(event: Event, campus_user_factory: CampusUserFactory) -> None:
    event.capacity = 2
    event.save()
    _fill(event, [campus_user_factory(), campus_user_factory()])

    assert capacity_service.has_capacity(event.pk).available is False


def test_cancelled_registrations_free_their_slot(event: Event, campus_user_factory: CampusUserFactory) -> None:
    event.capacity = 1
    event.save()
    user = campus_user_factory()
    _fill(event, [user])
    Registration.objects.filter(event=event, user=user).update(cancelled=True)

    assert capacity_service.has_capacity(event.pk).available is True


def test_unlimited_capacity(event: Event, campus_user_factory: CampusUserFactory) -> None:
    event.capacity = None
    event.save()
    _fill(event, [campus_user_factory() for _ in range(3)])

    assert capacity_service.has_capacity(event.pk).available is True


def test_deleted_or_missing_event_has_no_capacity(event: Event) -> None:
    Event.objects.filter(pk=event.pk).update(is_deleted=True)

    assert capacity_service.has_capacity(event.pk).available is False
    assert capacity_service.has_capacity(uuid.uuid4()).available is False


def test_datastore_failure_fails_closed(event: Event) -> None:
    """When the count cannot be read the event is reported as full, and the failure is logged."""
    with (
        patch("events.service.capacity_service.Registration.objects.active", side_effect=DatabaseError("boom")),
        patch("events.service.capacity_service.logger") as mock_logger,
    ):
        result = capacity_service.has_capacity(event.pk)

    assert result.available is False
    mock_logger.exception.assert_called_once_with("capacity_check_failed", event_id=str(event.pk))


def test_is_full_matches_capacity(event: Event, attendee: CampusUser) -> None:
    event.capacity = 1
    event.save()
    assert capacity_service.is_full(event) is False

    _fill(event, [attendee])

    assert capacity_service.is_full(event) is True
