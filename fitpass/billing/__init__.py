from fitpass.billing.accounts import AccountService
from fitpass.billing.bookings import BookingService
from fitpass.billing.ledger import CreditLedgerService
from fitpass.billing.passes import TouristPassService
from fitpass.billing.payouts import PayoutService
from fitpass.billing.purchases import PurchaseService

__all__ = [
    "AccountService",
    "BookingService",
    "CreditLedgerService",
    "PayoutService",
    "PurchaseService",
    "TouristPassService",
]
