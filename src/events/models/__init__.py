from .event import Event
from .registration import Registration
from .settlement import SettlementAccount
from .ticket import TicketType

__all__ = [
    "Event",
    "Registration",
    "SettlementAccount",
    "TicketType",
]
