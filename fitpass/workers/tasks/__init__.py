from fitpass.workers.tasks.monthly_grants import run_monthly_grants

__all__ = ["run_monthly_grants"]
