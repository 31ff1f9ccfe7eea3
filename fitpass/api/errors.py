from __future__ import annotations

from fastapi import HTTPException

from fitpass.billing.errors import (
    AccountFrozenError,
    AccountNotFrozenError,
    ActiveTouristPassExistsError,
    BillingError,
    BookingAlreadyCancelledError,
    BookingNotFoundError,
    ClassAlreadyStartedError,
    ClassFullError,
    ClassNotFoundError,
    DuplicateBookingError,
    GymNotFoundError,
    InsufficientCreditsError,
    InvalidCheckoutMetadataError,
    ProductNotFoundError,
    ProfileNotFoundError,
    TierCapExceededError,
    TouristPassExhaustedError,
    TouristPassNotFoundError,
)

_SIMPLE_ERRORS: tuple[tuple[type[BillingError], int, str], ...] = (
    (ProfileNotFoundError, 404, "E_PROFILE_NOT_FOUND"),
    (BookingNotFoundError, 404, "E_BOOKING_NOT_FOUND"),
    (ClassNotFoundError, 404, "E_CLASS_NOT_FOUND"),
    (TouristPassNotFoundError, 404, "E_TOURIST_PASS_NOT_FOUND"),
    (GymNotFoundError, 404, "E_GYM_NOT_FOUND"),
    (ProductNotFoundError, 400, "E_PRODUCT_NOT_FOUND"),
    (TouristPassExhaustedError, 409, "E_TOURIST_PASS_EXHAUSTED"),
    (BookingAlreadyCancelledError, 409, "E_BOOKING_ALREADY_CANCELLED"),
    (ClassAlreadyStartedError, 409, "E_CLASS_ALREADY_STARTED"),
    (DuplicateBookingError, 409, "E_DUPLICATE_BOOKING"),
    (ClassFullError, 409, "E_CLASS_FULL"),
    (ActiveTouristPassExistsError, 409, "E_ACTIVE_TOURIST_PASS_EXISTS"),
    (AccountFrozenError, 403, "E_ACCOUNT_FROZEN"),
    (AccountNotFrozenError, 409, "E_ACCOUNT_NOT_FROZEN"),
    (InvalidCheckoutMetadataError, 400, "E_INVALID_CHECKOUT_METADATA"),
)


def billing_http_error(exc: BillingError) -> HTTPException:
    if isinstance(exc, InsufficientCreditsError):
        return HTTPException(
            status_code=402,
            detail={
                "code": "E_INSUFFICIENT_CREDITS",
                "required": exc.required,
                "available": exc.available,
                "shortfall": exc.shortfall,
            },
        )
    if isinstance(exc, TierCapExceededError):
        return HTTPException(
            status_code=409,
            detail={
                "code": "E_TIER_CAP_EXCEEDED",
                "current": exc.current,
                "requested": exc.requested,
                "projected": exc.projected,
                "cap": exc.cap,
            },
        )
    for error_type, status_code, code in _SIMPLE_ERRORS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail={"code": code})
    return HTTPException(status_code=400, detail={"code": "E_BILLING"})
