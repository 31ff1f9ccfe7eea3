from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.billing.audit import record_credit_audit
from fitpass.billing.bookings.rules import cancellation_message, evaluate_cancellation
from fitpass.billing.bookings.types import (
    BookingResult,
    CancellationQuote,
    CancellationResult,
    PaymentMethod,
)
from fitpass.billing.errors import (
    AccountFrozenError,
    BookingAlreadyCancelledError,
    BookingNotFoundError,
    ClassAlreadyStartedError,
    ClassFullError,
    ClassNotFoundError,
    DuplicateBookingError,
    InsufficientCreditsError,
    ProfileNotFoundError,
    TouristPassExhaustedError,
)
from fitpass.billing.ledger.service import CreditLedgerService
from fitpass.billing.ledger.types import CreditAllocation
from fitpass.billing.passes.service import TouristPassService
from fitpass.billing.passes.types import TouristPassConsumeResult
from fitpass.billing.policy import DEFAULT_BILLING_POLICY, BillingPolicy
from fitpass.billing.time import as_utc
from fitpass.db.models.bookings import Booking
from fitpass.db.models.fitness_classes import FitnessClass
from fitpass.db.repo.bookings_repo import BookingsRepo
from fitpass.db.repo.classes_repo import ClassesRepo
from fitpass.db.repo.profiles_repo import ProfilesRepo

logger = structlog.get_logger(__name__)


class BookingService:
    @staticmethod
    async def _load_owned_booking(
        session: AsyncSession,
        *,
        user_id: UUID,
        booking_id: UUID,
        for_update: bool,
    ) -> tuple[Booking, FitnessClass]:
        if for_update:
            booking = await BookingsRepo.get_by_id_for_update(session, booking_id)
        else:
            booking = await BookingsRepo.get_by_id(session, booking_id)
        if booking is None or booking.user_id != user_id:
            raise BookingNotFoundError

        fitness_class = await ClassesRepo.get_by_id(session, booking.class_id)
        if fitness_class is None:
            raise ClassNotFoundError
        return booking, fitness_class

    @staticmethod
    async def create_booking(
        session: AsyncSession,
        *,
        user_id: UUID,
        class_id: UUID,
        now_utc: datetime,
    ) -> BookingResult:
        profile = await ProfilesRepo.get_by_id(session, user_id)
        if profile is None:
            raise ProfileNotFoundError
        if profile.frozen:
            raise AccountFrozenError

        fitness_class = await ClassesRepo.get_by_id_for_update(session, class_id)
        if fitness_class is None:
            raise ClassNotFoundError
        if as_utc(fitness_class.start_time) <= now_utc:
            raise ClassAlreadyStartedError
        if await BookingsRepo.has_confirmed(session, user_id=user_id, class_id=class_id):
            raise DuplicateBookingError
        confirmed = await BookingsRepo.count_confirmed(session, class_id=class_id)
        if confirmed >= fitness_class.capacity:
            raise ClassFullError

        credits_before = await CreditLedgerService.get_active_credits(
            session, user_id=user_id, now_utc=now_utc
        )
        active_pass = await TouristPassService.has_active_tourist_pass(
            session, user_id=user_id, now_utc=now_utc
        )

        allocations: list[CreditAllocation] = []
        pass_remaining: int | None = None
        consumed: TouristPassConsumeResult | None = None
        if active_pass is not None:
            try:
                consumed = await TouristPassService.consume_tourist_pass(
                    session, pass_id=active_pass.id
                )
            except TouristPassExhaustedError:
                # the pass read above is unlocked; a concurrent booking may take its last class
                logger.info(
                    "tourist_pass_exhausted_fallback_to_credits",
                    user_id=str(user_id),
                    pass_id=str(active_pass.id),
                )

        if consumed is not None:
            payment_method = PaymentMethod.TOURIST_PASS
            credits_used = 0
            credits_after = credits_before
            pass_remaining = consumed.remaining
        else:
            if credits_before < fitness_class.credit_cost:
                raise InsufficientCreditsError(
                    required=fitness_class.credit_cost,
                    available=credits_before,
                )
            spend = await CreditLedgerService.spend_credits_fifo(
                session,
                user_id=user_id,
                amount=fitness_class.credit_cost,
                now_utc=now_utc,
            )
            if not spend.success:
                raise InsufficientCreditsError(
                    required=fitness_class.credit_cost,
                    available=spend.balance_before,
                )
            payment_method = PaymentMethod.CREDITS
            credits_used = fitness_class.credit_cost
            credits_after = spend.balance_after
            allocations = spend.allocations

        booking = Booking(
            user_id=user_id,
            class_id=class_id,
            status="confirmed",
            attended=False,
            credits_used=credits_used,
            tourist_pass_id=consumed.pass_id if consumed is not None else None,
            credit_allocations=[allocation.to_payload() for allocation in allocations],
            booked_at=now_utc,
        )
        try:
            async with session.begin_nested():
                await BookingsRepo.create(session, booking=booking)
        except IntegrityError as exc:
            raise DuplicateBookingError from exc

        await record_credit_audit(
            session,
            user_id=user_id,
            action="booking",
            credits_before=credits_before,
            credits_after=credits_after,
            now_utc=now_utc,
            metadata={
                "booking_id": str(booking.id),
                "class_id": str(class_id),
                "payment_method": payment_method.value,
            },
        )
        logger.info(
            "booking_created",
            user_id=str(user_id),
            booking_id=str(booking.id),
            class_id=str(class_id),
            payment_method=payment_method.value,
            credits_used=credits_used,
        )
        return BookingResult(
            booking_id=booking.id,
            class_id=class_id,
            payment_method=payment_method,
            credits_used=credits_used,
            balance_after=credits_after,
            tourist_pass_id=booking.tourist_pass_id,
            pass_classes_remaining=pass_remaining,
        )

    @staticmethod
    async def get_cancellation_quote(
        session: AsyncSession,
        *,
        user_id: UUID,
        booking_id: UUID,
        now_utc: datetime,
        policy: BillingPolicy = DEFAULT_BILLING_POLICY,
    ) -> tuple[CancellationQuote, Booking, FitnessClass]:
        booking, fitness_class = await BookingService._load_owned_booking(
            session, user_id=user_id, booking_id=booking_id, for_update=False
        )
        quote = evaluate_cancellation(
            booking_status=booking.status,
            class_start_time=fitness_class.start_time,
            credits_used=booking.credits_used,
            now_utc=now_utc,
            policy=policy.cancellation,
        )
        return quote, booking, fitness_class

    @staticmethod
    async def cancel_booking(
        session: AsyncSession,
        *,
        user_id: UUID,
        booking_id: UUID,
        now_utc: datetime,
        policy: BillingPolicy = DEFAULT_BILLING_POLICY,
    ) -> CancellationResult:
        booking, fitness_class = await BookingService._load_owned_booking(
            session, user_id=user_id, booking_id=booking_id, for_update=True
        )
        quote = evaluate_cancellation(
            booking_status=booking.status,
            class_start_time=fitness_class.start_time,
            credits_used=booking.credits_used,
            now_utc=now_utc,
            policy=policy.cancellation,
        )
        if quote.blocked_by == "already_cancelled":
            raise BookingAlreadyCancelledError
        if not quote.can_cancel:
            raise ClassAlreadyStartedError

        credits_before = await CreditLedgerService.get_active_credits(
            session, user_id=user_id, now_utc=now_utc
        )

        booking.status = "cancelled"
        booking.cancelled_at = now_utc
        booking.cancellation_reason = quote.reason
        booking.refund_credits = quote.refund_credits
        booking.penalty_credits = quote.penalty_credits
        await session.flush()

        if quote.refund_credits > 0:
            allocations = [CreditAllocation.from_payload(item) for item in booking.credit_allocations]
            if not allocations:
                allocations = [CreditAllocation(amount=quote.refund_credits, expires_at=None)]
            for allocation in allocations:
                await CreditLedgerService.add_refund(
                    session,
                    user_id=user_id,
                    credits=allocation.amount,
                    original_expiration=allocation.expires_at,
                    reason=f"booking_{booking.id}",
                    now_utc=now_utc,
                )
        if quote.penalty_credits > 0:
            await CreditLedgerService.add_penalty(
                session,
                user_id=user_id,
                credits=quote.penalty_credits,
                reason=f"late_cancel_{booking.id}",
                now_utc=now_utc,
            )

        credits_after = await CreditLedgerService.get_active_credits(
            session, user_id=user_id, now_utc=now_utc
        )
        await record_credit_audit(
            session,
            user_id=user_id,
            action="cancellation",
            credits_before=credits_before,
            credits_after=credits_after,
            now_utc=now_utc,
            metadata={
                "booking_id": str(booking.id),
                "class_id": str(fitness_class.id),
                "hours_until_start": round(quote.hours_until_start, 2),
                "cancellation_reason": quote.reason,
                "refunded": quote.refund_credits,
                "penalty": quote.penalty_credits,
            },
        )
        logger.info(
            "booking_cancelled",
            user_id=str(user_id),
            booking_id=str(booking.id),
            free_cancel=quote.free_cancel,
            refund_credits=quote.refund_credits,
            penalty_credits=quote.penalty_credits,
        )
        return CancellationResult(
            booking_id=booking.id,
            free_cancel=quote.free_cancel,
            refund_credits=quote.refund_credits,
            penalty_credits=quote.penalty_credits,
            balance_before=credits_before,
            balance_after=credits_after,
            cancelled_at=now_utc,
            message=cancellation_message(quote),
        )

    @staticmethod
    async def mark_attendance(
        session: AsyncSession,
        *,
        booking_id: UUID,
        attended: bool,
        now_utc: datetime,
    ) -> Booking:
        booking = await BookingsRepo.get_by_id_for_update(session, booking_id)
        if booking is None:
            raise BookingNotFoundError
        if booking.status == "cancelled":
            raise BookingAlreadyCancelledError

        booking.attended = attended
        if attended:
            booking.status = "completed"
            booking.completed_at = now_utc
        await session.flush()
        return booking
