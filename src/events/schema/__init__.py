"""Events schema package."""

from .event import CapacitySchema, EventCreateSchema, EventEditSchema, EventSchema
from .registration import (
    DeregisterResponse,
    RefundPayload,
    RefundResponse,
    RegisterPayload,
    RegisterResponse,
    RegistrationListResponse,
    RegistrationSchema,
    RegistrationTotals,
)
from .settlement import (
    CheckoutPayload,
    CheckoutSessionResponse,
    CheckoutStatusResponse,
    SettlementAccountResponse,
    SettlementStatusResponse,
)
from .ticket import TicketTypeCreateSchema, TicketTypeSchema

__all__ = [
    "CapacitySchema",
    "CheckoutPayload",
    "CheckoutSessionResponse",
    "CheckoutStatusResponse",
    "DeregisterResponse",
    "EventCreateSchema",
    "EventEditSchema",
    "EventSchema",
    "RefundPayload",
    "RefundResponse",
    "RegisterPayload",
    "RegisterResponse",
    "RegistrationListResponse",
    "RegistrationSchema",
    "RegistrationTotals",
    "SettlementAccountResponse",
    "SettlementStatusResponse",
    "TicketTypeCreateSchema",
    "TicketTypeSchema",
]
