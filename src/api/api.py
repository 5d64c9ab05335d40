from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI

from common.schema import ResponseOk, VersionResponse
from common.throttling import AnonDefaultThrottle, UserDefaultThrottle
from events.controllers import EVENT_CONTROLLERS
from events.exceptions import (
    CheckoutSessionMismatchError,
    CheckoutUnavailableError,
    PaymentProcessorUnavailableError,
    RefundNotAllowedError,
    SettlementNotConfiguredError,
    TicketNotPurchasableError,
)

from .exception_handlers import (
    handle_checkout_session_mismatch_error,
    handle_checkout_unavailable_error,
    handle_django_validation_error,
    handle_general_exception,
    handle_payment_processor_unavailable_error,
    handle_refund_not_allowed_error,
    handle_settlement_not_configured_error,
    handle_ticket_not_purchasable_error,
)

api = NinjaExtraAPI(
    title="Campus Events API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"Campus Events API {settings.VERSION}",
    app_name=f"campus-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
    throttle=[AnonDefaultThrottle(), UserDefaultThrottle()],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API."""
    return 200, ResponseOk()


api.register_controllers(*EVENT_CONTROLLERS)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    SettlementNotConfiguredError: handle_settlement_not_configured_error,
    PaymentProcessorUnavailableError: handle_payment_processor_unavailable_error,
    TicketNotPurchasableError: handle_ticket_not_purchasable_error,
    CheckoutUnavailableError: handle_checkout_unavailable_error,
    CheckoutSessionMismatchError: handle_checkout_session_mismatch_error,
    RefundNotAllowedError: handle_refund_not_allowed_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
