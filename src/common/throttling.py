"""API throttles.

Counters live in the Django cache (Redis in deployment), keyed by client identity and
window, so every API instance enforces the same limits.
"""

from django.conf import settings
from ninja_extra.throttling import AnonRateThrottle, UserRateThrottle


class AnonDefaultThrottle(AnonRateThrottle):
    rate = "60/min"


class UserDefaultThrottle(UserRateThrottle):
    rate = "100/min"


class WriteThrottle(UserRateThrottle):
    rate = "100/min"


class RegistrationThrottle(UserRateThrottle):
    scope = "registration"
    rate = settings.REGISTRATION_RATE


class CheckoutThrottle(UserRateThrottle):
    scope = "checkout"
    rate = settings.CHECKOUT_RATE
