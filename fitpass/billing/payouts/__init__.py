from fitpass.billing.payouts.service import PayoutService

__all__ = ["PayoutService"]
