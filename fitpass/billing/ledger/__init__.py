from fitpass.billing.ledger.service import CreditLedgerService

__all__ = ["CreditLedgerService"]
