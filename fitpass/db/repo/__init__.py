from fitpass.db.repo.bookings_repo import BookingsRepo
from fitpass.db.repo.classes_repo import ClassesRepo
from fitpass.db.repo.credit_audit_repo import CreditAuditRepo
from fitpass.db.repo.credit_ledger_repo import CreditLedgerRepo
from fitpass.db.repo.gyms_repo import GymsRepo
from fitpass.db.repo.payout_snapshots_repo import PayoutSnapshotsRepo
from fitpass.db.repo.profiles_repo import ProfilesRepo
from fitpass.db.repo.tourist_passes_repo import TouristPassesRepo

__all__ = [
    "BookingsRepo",
    "ClassesRepo",
    "CreditAuditRepo",
    "CreditLedgerRepo",
    "GymsRepo",
    "PayoutSnapshotsRepo",
    "ProfilesRepo",
    "TouristPassesRepo",
]
