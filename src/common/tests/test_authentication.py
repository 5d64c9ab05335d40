import pytest
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory
from ninja_jwt.tokens import RefreshToken

from accounts.models import CampusUser
from common.authentication import OptionalAuth

pytestmark = pytest.mark.django_db


def test_optional_auth_without_header_is_anonymous(rf: RequestFactory) -> None:
    request = rf.get("/")

    user = OptionalAuth()(request)

    assert isinstance(user, AnonymousUser)
    assert isinstance(request.user, AnonymousUser)


def test_optional_auth_with_token(rf: RequestFactory, attendee: CampusUser) -> None:
    token = RefreshToken.for_user(attendee).access_token  # type: ignore[attr-defined]
    request = rf.get("/", HTTP_AUTHORIZATION=f"Bearer {token}")

    user = OptionalAuth()(request)

    assert user == attendee
    assert request.user == attendee


def test_optional_auth_wrong_scheme(rf: RequestFactory) -> None:
    request = rf.get("/", HTTP_AUTHORIZATION="Basic abc")

    assert OptionalAuth()(request) is None
