"""Ticket type schemas."""

import typing as t
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from ninja import ModelSchema, Schema
from pydantic import AwareDatetime, Field, model_validator

from common.schema import OneToTwoFiftyFiveString, StrippedString
from events.models import TicketType


class TicketTypeSchema(ModelSchema):
    id: UUID
    event_id: UUID
    remaining: int | None
    sold_out: bool

    class Meta:
        model = TicketType
        fields = [
            "name",
            "price",
            "currency",
            "quantity",
            "quantity_sold",
            "release_starts_at",
            "release_ends_at",
            "release_order",
        ]

    @staticmethod
    def resolve_remaining(obj: TicketType) -> int | None:
        """Tickets left."""
        return obj.remaining

    @staticmethod
    def resolve_sold_out(obj: TicketType) -> bool:
        """Whether the ticket type is sold out."""
        return obj.is_sold_out


class TicketTypeCreateSchema(Schema):
    name: OneToTwoFiftyFiveString
    price_id: StrippedString = Field("", description="Stripe price id. Required for paid events.")
    price: Decimal = Field(Decimal("0"), ge=0, description="Ignored when price_id is given; read from Stripe")
    currency: str = Field(settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    quantity: int | None = Field(None, ge=0, description="Tickets available (null = unlimited)")
    release_starts_at: AwareDatetime | None = None
    release_ends_at: AwareDatetime | None = None
    release_order: int = 0

    @model_validator(mode="after")
    def validate_release_window(self) -> t.Self:
        """Release must end after it starts."""
        if self.release_starts_at and self.release_ends_at and self.release_starts_at >= self.release_ends_at:
            raise ValueError("Release must end after it starts.")
        return self
