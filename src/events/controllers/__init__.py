from .checkout import CheckoutController
from .organiser import EventOrganiserController
from .registration import EventRegistrationController
from .settlement import SettlementController

EVENT_CONTROLLERS: list[type] = [
    EventRegistrationController,
    EventOrganiserController,
    SettlementController,
    CheckoutController,
]

__all__ = [
    "EVENT_CONTROLLERS",
    "CheckoutController",
    "EventOrganiserController",
    "EventRegistrationController",
    "SettlementController",
]
