from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends

from fitpass.api.deps import current_user_id
from fitpass.api.errors import billing_http_error
from fitpass.api.routes.billing_models import (
    BookingCreateRequest,
    BookingCreateResponse,
    CancellationEligibilityResponse,
    CancellationResponse,
)
from fitpass.billing.bookings.service import BookingService
from fitpass.billing.errors import BillingError
from fitpass.billing.time import as_utc
from fitpass.db.session import SessionLocal

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingCreateResponse, status_code=201)
async def create_booking(
    payload: BookingCreateRequest,
    user_id: UUID = Depends(current_user_id),
) -> BookingCreateResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            result = await BookingService.create_booking(
                session,
                user_id=user_id,
                class_id=payload.class_id,
                now_utc=now_utc,
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
    return BookingCreateResponse(
        booking_id=result.booking_id,
        class_id=result.class_id,
        payment_method=result.payment_method.value,
        credits_used=result.credits_used,
        credits_remaining=result.balance_after,
        tourist_pass_id=result.tourist_pass_id,
        pass_classes_remaining=result.pass_classes_remaining,
    )


@router.get("/{booking_id}/cancel", response_model=CancellationEligibilityResponse)
async def get_cancellation_eligibility(
    booking_id: UUID,
    user_id: UUID = Depends(current_user_id),
) -> CancellationEligibilityResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            quote, booking, fitness_class = await BookingService.get_cancellation_quote(
                session,
                user_id=user_id,
                booking_id=booking_id,
                now_utc=now_utc,
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
        booking_status = booking.status
        class_start_time = as_utc(fitness_class.start_time)
    return CancellationEligibilityResponse(
        can_cancel=quote.can_cancel,
        free_cancel=quote.free_cancel,
        hours_until_start=round(quote.hours_until_start, 2),
        free_window_hours=quote.free_window_hours,
        refund_amount=quote.refund_credits,
        penalty_amount=quote.penalty_credits,
        booking_status=booking_status,
        class_start_time=class_start_time,
    )


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: UUID,
    user_id: UUID = Depends(current_user_id),
) -> CancellationResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        try:
            result = await BookingService.cancel_booking(
                session,
                user_id=user_id,
                booking_id=booking_id,
                now_utc=now_utc,
            )
        except BillingError as exc:
            raise billing_http_error(exc) from exc
    return CancellationResponse(
        booking_id=result.booking_id,
        free_cancel=result.free_cancel,
        refund_credits=result.refund_credits,
        penalty_credits=result.penalty_credits,
        credits_remaining=result.balance_after,
        cancelled_at=result.cancelled_at,
        message=result.message,
    )
