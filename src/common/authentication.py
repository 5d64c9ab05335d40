import logging
import typing as t

import structlog
from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from django.http import HttpRequest
from ninja_jwt.authentication import JWTAuth

logger = logging.getLogger(__name__)


class CampusJWTAuth(JWTAuth):
    """Bearer JWT authentication.

    Tokens are issued by the identity service; the API only consumes the
    authenticated user they carry.
    """

    def authenticate(self, request: HttpRequest, token: str) -> t.Any:
        """Authenticate, expose the user on the request and add it to the log context."""
        user = super().authenticate(request, token)
        if user is not None:
            request.user = user
            structlog.contextvars.bind_contextvars(user_id=str(user.pk))
        return user


class OptionalAuth(CampusJWTAuth):
    """Authenticates a bearer token when one is sent, and lets anonymous requests through.

    Used by public endpoints (capacity, current ticket) that work with or without a user.
    A malformed Authorization header is still refused.
    """

    def __call__(self, request: HttpRequest) -> t.Any | None:
        auth_value = request.headers.get(self.header)
        if not auth_value:
            request.user = AnonymousUser()
            return request.user
        scheme, _, token = auth_value.partition(" ")
        if scheme.lower() != self.openapi_scheme:
            if settings.DEBUG:
                logger.error("Unexpected auth scheme %r", scheme)
            return None
        return self.authenticate(request, token)
