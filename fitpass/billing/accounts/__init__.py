from fitpass.billing.accounts.service import AccountService

__all__ = ["AccountService"]
