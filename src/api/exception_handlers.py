"""Exception handlers for the API."""

import base64
import traceback
import typing as t
from copy import deepcopy

import orjson
import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.responses import Response

from events.exceptions import (
    CheckoutSessionMismatchError,
    CheckoutUnavailableError,
    PaymentProcessorUnavailableError,
    RefundNotAllowedError,
    SettlementNotConfiguredError,
    TicketNotPurchasableError,
)

from .tasks import track_internal_error

logger = structlog.get_logger(__name__)


def _request_snapshot(request: HttpRequest) -> dict[str, t.Any]:
    """What ``track_internal_error`` stores about the failing request, with secrets masked.

    A JSON body is kept as data; any other body is kept base64 encoded.
    """
    user = getattr(request, "user", None)
    snapshot: dict[str, t.Any] = {
        "path": f"{request.method} {request.path}",
        "encoded_payload": base64.b64encode(request.body).decode() if request.body else None,
        "json_payload": None,
        "metadata": {
            "headers": obfuscate(dict(request.headers)),
            "method": request.method,
            "path": request.path,
            "GET": obfuscate(request.GET.dict()),
            "user": str(user) if user else None,
        },
    }
    if request.method in ("POST", "PUT", "PATCH") and request.content_type == "application/json" and request.body:
        try:
            loaded = orjson.loads(request.body)
        except orjson.JSONDecodeError:
            return snapshot
        snapshot["json_payload"] = obfuscate(loaded) if isinstance(loaded, dict) else loaded
        snapshot["encoded_payload"] = None
    return snapshot


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Log an unexpected error, queue it for tracking and answer 500.

    The traceback is only returned in DEBUG or to staff users.
    """
    logger.exception("INTERNAL_SERVER_ERROR", path=request.path)
    tb_str = traceback.format_exc()
    track_internal_error.delay(traceback_str=tb_str, **_request_snapshot(request))
    data = {"detail": "Internal Server Error."}
    user = getattr(request, "user", None)
    if settings.DEBUG or (user is not None and user.is_staff):  # pragma: no cover
        data["traceback"] = tb_str
    return Response(status=500, data=data)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.info("VALIDATION_ERROR", error=str(exc))
    if hasattr(exc, "error_dict"):
        error_dict = {k: [ee for e in v for ee in e] for k, v in exc.error_dict.items()}
    else:
        error_dict = {"__all__": list(exc.messages)}
    return Response(status=400, data={"errors": error_dict})


def handle_settlement_not_configured_error(
    request: HttpRequest, exc: SettlementNotConfiguredError | t.Type[SettlementNotConfiguredError]
) -> Response:
    """The organiser cannot take card payments yet."""
    logger.info("settlement_not_configured", path=request.path, reason=str(exc))
    return Response(status=400, data={"detail": "settlement not configured"})


def handle_payment_processor_unavailable_error(
    request: HttpRequest, exc: PaymentProcessorUnavailableError | t.Type[PaymentProcessorUnavailableError]
) -> Response:
    """Stripe could not be reached or refused the request."""
    return Response(status=503, data={"detail": "Payment processor unavailable. Please retry."})


def handle_ticket_not_purchasable_error(
    request: HttpRequest, exc: TicketNotPurchasableError | t.Type[TicketNotPurchasableError]
) -> Response:
    """Handle a ticket without a price reference."""
    return Response(status=400, data={"detail": "This ticket cannot be purchased."})


def handle_checkout_unavailable_error(
    request: HttpRequest, exc: CheckoutUnavailableError | t.Type[CheckoutUnavailableError]
) -> Response:
    """Handle a checkout refused because of inventory or an existing registration."""
    return Response(status=409, data={"detail": "Checkout unavailable.", "reason": getattr(exc, "reason", None)})


def handle_checkout_session_mismatch_error(
    request: HttpRequest, exc: CheckoutSessionMismatchError | t.Type[CheckoutSessionMismatchError]
) -> Response:
    """Handle a checkout session that belongs to someone else."""
    return Response(status=403, data={"detail": "This checkout session does not belong to you."})


def handle_refund_not_allowed_error(
    request: HttpRequest, exc: RefundNotAllowedError | t.Type[RefundNotAllowedError]
) -> Response:
    """Handle a refund of a registration without a payment left to refund."""
    return Response(status=400, data={"detail": "Refund not possible.", "reason": getattr(exc, "reason", None)})


SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication", "client_secret"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data
