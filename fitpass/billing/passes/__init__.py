from fitpass.billing.passes.service import TouristPassService

__all__ = ["TouristPassService"]
