from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class CreditBalanceResponse(BaseModel):
    credits: int = Field(ge=0)
    tier: str
    credit_cap: int


class ExpiringCreditsResponse(BaseModel):
    amount: int
    expires_at: date


class CreditBreakdownResponse(BaseModel):
    total: int = Field(ge=0)
    expiring: list[ExpiringCreditsResponse]
    non_expiring: int = Field(ge=0)


class LedgerEntryResponse(BaseModel):
    id: int
    delta: int
    source: str
    expires_at: date | None = None
    created_at: datetime


class CreditHistoryResponse(BaseModel):
    entries: list[LedgerEntryResponse]


class TopUpOptionResponse(BaseModel):
    pack_type: str
    credits: int
    price_usd: Decimal
    can_purchase: bool
    projected: int


class TopUpOptionsResponse(BaseModel):
    tier: str
    current_credits: int
    credit_cap: int
    frozen: bool
    options: list[TopUpOptionResponse]


class TopUpCheckoutRequest(BaseModel):
    pack_type: str = Field(min_length=1, max_length=32)


class TouristPassCheckoutRequest(BaseModel):
    pass_type: str = Field(min_length=1, max_length=32)


class SubscriptionCheckoutRequest(BaseModel):
    tier: str = Field(min_length=2, max_length=8)


class CheckoutResponse(BaseModel):
    checkout_ref: str
    provider: str
    kind: str
    metadata: dict[str, str]


class TouristPassStatusResponse(BaseModel):
    has_active_pass: bool
    pass_id: UUID | None = None
    classes_remaining: int | None = None
    ends_at: datetime | None = None
    latest_pass_type: str | None = None


class BookingCreateRequest(BaseModel):
    class_id: UUID


class BookingCreateResponse(BaseModel):
    booking_id: UUID
    class_id: UUID
    payment_method: str
    credits_used: int
    credits_remaining: int
    tourist_pass_id: UUID | None = None
    pass_classes_remaining: int | None = None


class CancellationEligibilityResponse(BaseModel):
    can_cancel: bool
    free_cancel: bool
    hours_until_start: float
    free_window_hours: int
    refund_amount: int
    penalty_amount: int
    booking_status: str
    class_start_time: datetime


class CancellationResponse(BaseModel):
    booking_id: UUID
    free_cancel: bool
    refund_credits: int
    penalty_credits: int
    credits_remaining: int
    cancelled_at: datetime
    message: str


class AccountFreezeResponse(BaseModel):
    frozen: bool
    frozen_at: datetime | None = None


class CheckoutCompletionRequest(BaseModel):
    checkout_ref: str = Field(min_length=1, max_length=128)
    metadata: dict[str, str]


class CheckoutCompletionResponse(BaseModel):
    kind: str
    checkout_ref: str
    idempotent_replay: bool
    credits_added: int = 0
    tourist_pass_id: str | None = None
    tier: str | None = None


class WebhookAckResponse(BaseModel):
    received: bool
    applied: bool
    idempotent_replay: bool = False


class MonthlyGrantRunRequest(BaseModel):
    force: bool = False


class AttendanceRequest(BaseModel):
    attended: bool = True


class AttendanceResponse(BaseModel):
    booking_id: UUID
    status: str
    attended: bool


class PayoutReportRequest(BaseModel):
    period_start: date | None = None
    period_end: date | None = None
    created_by: UUID | None = None


class GymPricingRequest(BaseModel):
    gym_id: UUID
    payout_percentage: Decimal = Field(gt=0, le=1)
    base_price: Decimal = Field(ge=0)
    active: bool = True


class GymPricingResponse(BaseModel):
    pricing_id: int
    gym_id: UUID
    gym_name: str
    payout_percentage: Decimal
    base_price: Decimal
    active: bool
    created_at: datetime


class GymPricingListResponse(BaseModel):
    items: list[GymPricingResponse]


class PayoutSnapshotResponse(BaseModel):
    snapshot_id: int
    period_start: date
    period_end: date
    period_days: int
    total_gyms: int
    total_bookings: int
    total_revenue: Decimal
    total_payouts: Decimal
    created_by: UUID | None = None
    created_at: datetime


class PayoutSnapshotListResponse(BaseModel):
    items: list[PayoutSnapshotResponse]
    total: int
    limit: int
    offset: int
