"""Event-related schemas."""

import typing as t
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import AwareDatetime, Field, model_validator

from common.schema import OneToTwoFiftyFiveString, StrippedString
from events.models import Event


class EventEditSchema(Schema):
    name: OneToTwoFiftyFiveString | None = None
    description: StrippedString | None = None
    location: StrippedString | None = None
    capacity: int | None = Field(None, ge=1, description="Maximum active registrations (null = unlimited)")
    start: AwareDatetime | None = None
    end: AwareDatetime | None = None
    is_paid: bool | None = None

    @model_validator(mode="after")
    def validate_window(self) -> t.Self:
        """End must not precede start when both are given."""
        if self.start and self.end and self.end < self.start:
            raise ValueError("End must not be before start.")
        return self


class EventCreateSchema(EventEditSchema):
    name: OneToTwoFiftyFiveString
    description: StrippedString = ""
    location: StrippedString = ""
    start: AwareDatetime
    is_paid: bool = False


class EventSchema(ModelSchema):
    id: UUID
    organiser_id: UUID

    class Meta:
        model = Event
        fields = ["name", "description", "location", "capacity", "start", "end", "is_paid"]


class CapacitySchema(Schema):
    available: bool
