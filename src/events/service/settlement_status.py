"""Onboarding state of an organiser's settlement account."""

import typing as t
from enum import StrEnum


class SettlementStatus(StrEnum):
    NOT_STARTED = "not_started"
    MORE_INFO_REQUIRED = "more_info_required"
    APPROVED = "approved"
    DISABLED = "disabled"
    INCONCLUSIVE = "inconclusive"


def compute_settlement_status(
    disabled_reason: str | None, outstanding_requirements: t.Collection[str] | None
) -> SettlementStatus:
    """Categorise a live Stripe account.

    A disabled account wins over outstanding requirements, which win over approval. ``not_started``
    and ``inconclusive`` describe the absence of a live account and are decided by the caller.
    """
    if disabled_reason:
        return SettlementStatus.DISABLED
    if outstanding_requirements:
        return SettlementStatus.MORE_INFO_REQUIRED
    return SettlementStatus.APPROVED
