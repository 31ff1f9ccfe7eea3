from __future__ import annotations

from uuid import UUID


class BillingError(Exception):
    pass


class NotFoundError(BillingError):
    pass


class ProfileNotFoundError(NotFoundError):
    pass


class BookingNotFoundError(NotFoundError):
    pass


class ClassNotFoundError(NotFoundError):
    pass


class TouristPassNotFoundError(NotFoundError):
    pass


class ProductNotFoundError(NotFoundError):
    pass


class GymNotFoundError(NotFoundError):
    pass


class InsufficientBalanceError(BillingError):
    pass


class InsufficientCreditsError(InsufficientBalanceError):
    def __init__(self, *, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(f"required {required} credits, available {available}")

    @property
    def shortfall(self) -> int:
        return max(0, self.required - self.available)


class TierCapExceededError(InsufficientBalanceError):
    def __init__(self, *, current: int, requested: int, cap: int) -> None:
        self.current = current
        self.requested = requested
        self.cap = cap
        super().__init__(f"{current} + {requested} exceeds cap {cap}")

    @property
    def projected(self) -> int:
        return self.current + self.requested

    @property
    def overflow(self) -> int:
        return max(0, self.projected - self.cap)


class TouristPassExhaustedError(InsufficientBalanceError):
    def __init__(self, pass_id: UUID) -> None:
        self.pass_id = pass_id
        super().__init__(f"tourist pass {pass_id} has no classes left")


class AlreadyInTerminalStateError(BillingError):
    pass


class BookingAlreadyCancelledError(AlreadyInTerminalStateError):
    pass


class ClassAlreadyStartedError(AlreadyInTerminalStateError):
    pass


class DuplicateBookingError(AlreadyInTerminalStateError):
    pass


class ClassFullError(BillingError):
    pass


class ActiveTouristPassExistsError(BillingError):
    pass


class AccountFrozenError(BillingError):
    pass


class AccountNotFrozenError(BillingError):
    pass


class InvalidCheckoutMetadataError(BillingError):
    pass
