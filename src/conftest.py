import secrets
import string
import typing as t
from datetime import datetime, time, timedelta

import faker
import pytest
from django.core.cache import cache
from django.test.client import Client
from django.utils import timezone
from ninja_jwt.tokens import RefreshToken

from accounts.models import CampusUser
from events.models import Event


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously.

    Eager mode ignores ``eta`` and ``countdown``: tests that care about scheduling patch ``apply_async``.
    """
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


@pytest.fixture(autouse=True)
def clear_cache() -> None:
    """Throttle counters live in the cache; start every test with a clean slate."""
    cache.clear()


class CampusUserFactory:
    """Factory for creating CampusUser instances for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> CampusUser:
        username = kwargs.pop("username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(8)))
        email = kwargs.pop("email", f"{username}@campus.test")
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        institution = kwargs.pop("institution", "University of Testing")
        return CampusUser.objects.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            institution=institution,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> CampusUser:
        return self.create_user(**kwargs)


@pytest.fixture
def campus_user_factory() -> CampusUserFactory:
    return CampusUserFactory()


@pytest.fixture
def organiser(campus_user_factory: CampusUserFactory) -> CampusUser:
    """An organiser at the default institution."""
    return campus_user_factory(username="organiser", is_organiser=True)


@pytest.fixture
def attendee(campus_user_factory: CampusUserFactory) -> CampusUser:
    """A student at the organiser's institution."""
    return campus_user_factory(username="attendee")


@pytest.fixture
def outsider(campus_user_factory: CampusUserFactory) -> CampusUser:
    """A student from another institution."""
    return campus_user_factory(username="outsider", institution="Other College")


@pytest.fixture
def next_week() -> datetime:
    today = timezone.now()
    same_time_next_week = today + timedelta(days=7)
    noon = time(hour=12, minute=0)
    return timezone.make_aware(
        datetime.combine(same_time_next_week.date(), noon),
        timezone.get_current_timezone(),
    )


@pytest.fixture
def event(organiser: CampusUser, next_week: datetime) -> Event:
    """A free event next week with room for ten."""
    return Event.objects.create(
        organiser=organiser,
        name="Freshers Social",
        location="Student Union",
        capacity=10,
        start=next_week,
        end=next_week + timedelta(hours=3),
    )


@pytest.fixture
def paid_event(organiser: CampusUser, next_week: datetime) -> Event:
    """A paid event next week with room for ten."""
    return Event.objects.create(
        organiser=organiser,
        name="Winter Ball",
        capacity=10,
        start=next_week,
        end=next_week + timedelta(hours=5),
        is_paid=True,
    )


def client_for(user: CampusUser) -> Client:
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def organiser_client(organiser: CampusUser) -> Client:
    """API client for the organiser."""
    return client_for(organiser)


@pytest.fixture
def attendee_client(attendee: CampusUser) -> Client:
    """API client for the attendee."""
    return client_for(attendee)


@pytest.fixture
def outsider_client(outsider: CampusUser) -> Client:
    """API client for the outsider."""
    return client_for(outsider)
