"""Registration schemas."""

from uuid import UUID

from ninja import Schema
from pydantic import AwareDatetime, EmailStr, Field

from common.schema import StrippedString


class RegisterPayload(Schema):
    email: EmailStr | None = None
    name: StrippedString | None = Field(None, max_length=255)


class RegisterResponse(Schema):
    success: bool
    registered: bool | None = None
    error: str | None = None


class DeregisterResponse(Schema):
    success: bool
    message: str | None = None
    error: str | None = None


class RegistrationSchema(Schema):
    id: UUID
    user_id: UUID
    name: str
    email: str
    external: bool
    cancelled: bool
    registered_at: AwareDatetime = Field(..., alias="created_at")
    cancelled_at: AwareDatetime | None = None
    amount_paid: int | None = None
    amount_refunded: int = 0
    currency: str = ""


class RegistrationTotals(Schema):
    active: int
    internal: int
    external: int
    cancelled: int
    revenue: int = Field(..., description="Amount paid across registrations, in minor units")
    refunded: int = Field(..., description="Amount refunded, in minor units")


class RegistrationListResponse(Schema):
    success: bool = True
    registrations: list[RegistrationSchema]
    totals: RegistrationTotals


class RefundPayload(Schema):
    amount: int | None = Field(None, gt=0, description="In minor units. Refunds everything left when omitted.")
    reason: StrippedString | None = Field(None, max_length=500)


class RefundResponse(Schema):
    success: bool = True
    refund_id: str
    amount: int
    currency: str
    is_full_refund: bool
    status: str | None = None
