from __future__ import annotations

from celery.schedules import crontab


def configure_monthly_grants_schedule(celery_app, *, day_of_month: int) -> None:
    celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
    celery_app.conf.beat_schedule.update(
        {
            "monthly-credit-grants": {
                "task": "fitpass.workers.tasks.monthly_grants.run_monthly_grants",
                "schedule": crontab(day_of_month=day_of_month, hour=0, minute=15),
                "options": {"queue": "q_billing"},
            },
        }
    )
