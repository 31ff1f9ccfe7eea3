from celery import Celery

from fitpass.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "fitpass",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "fitpass.workers.tasks.monthly_grants",
    ],
)

celery_app.conf.update(
    task_default_queue="q_billing",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)


@celery_app.task(name="fitpass.workers.celery_app.ping")
def ping() -> str:
    return "pong"
