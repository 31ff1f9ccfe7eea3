from fitpass.billing.purchases.service import PurchaseService

__all__ = ["PurchaseService"]
