"""Answers whether an event still has a free slot."""

from dataclasses import dataclass
from uuid import UUID

import structlog
from django.db import DatabaseError

from events.models import Event, Registration

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CapacityResult:
    available: bool


def has_capacity(event_id: UUID) -> CapacityResult:
    """Check whether the event has a free slot.

    This is advisory only: it reserves nothing, and the registration ledger re-checks under a row
    lock before inserting. When the inventory cannot be read the answer is "no capacity".
    """
    try:
        capacity = Event.objects.live().values_list("capacity", flat=True).get(pk=event_id)
        if capacity is None:
            return CapacityResult(available=True)
        active = Registration.objects.active().filter(event_id=event_id).count()
    except Event.DoesNotExist:
        return CapacityResult(available=False)
    except DatabaseError:
        logger.exception("capacity_check_failed", event_id=str(event_id))
        return CapacityResult(available=False)
    return CapacityResult(available=active < capacity)


def is_full(event: Event) -> bool:
    """In-transaction re-check against a locked event row.

    Callers must hold ``select_for_update`` on the event so the count cannot move underneath them.
    """
    if event.capacity is None:
        return False
    return Registration.objects.active().filter(event=event).count() >= event.capacity
