from django.core.exceptions import ValidationError as DjangoValidationError


class EventImmutableError(DjangoValidationError):
    """Raised when a frozen field of an event with active registrations is changed."""


class TicketNotPurchasableError(Exception):
    """Raised when a ticket type has no price reference to check out against."""


class SettlementNotConfiguredError(Exception):
    """Raised when the organiser cannot receive card payments yet."""


class PaymentProcessorUnavailableError(Exception):
    """Raised when the payment processor cannot be reached or refuses the request."""


class CheckoutUnavailableError(Exception):
    """Raised when a checkout cannot be opened: sold out, event full or already registered."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class CheckoutSessionMismatchError(Exception):
    """Raised when a checkout session does not belong to the requesting user."""


class RefundNotAllowedError(Exception):
    """Raised when a registration has no payment left to refund."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
