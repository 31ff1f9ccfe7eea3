from fitpass.db.models.bookings import Booking
from fitpass.db.models.credit_audit_log import CreditAuditLog
from fitpass.db.models.credit_ledger import CreditLedgerEntry
from fitpass.db.models.fitness_classes import FitnessClass
from fitpass.db.models.gyms import Gym, GymPricing
from fitpass.db.models.payout_snapshots import PayoutSnapshot
from fitpass.db.models.profiles import Profile
from fitpass.db.models.tourist_passes import TouristPass

__all__ = [
    "Booking",
    "CreditAuditLog",
    "CreditLedgerEntry",
    "FitnessClass",
    "Gym",
    "GymPricing",
    "PayoutSnapshot",
    "Profile",
    "TouristPass",
]
