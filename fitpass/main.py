import uvicorn
from fastapi import FastAPI

from fitpass.api.routes.account import router as account_router
from fitpass.api.routes.bookings import router as bookings_router
from fitpass.api.routes.checkout import router as checkout_router
from fitpass.api.routes.credits import router as credits_router
from fitpass.api.routes.health import router as health_router
from fitpass.api.routes.internal_billing import router as internal_billing_router
from fitpass.api.routes.payments import router as payments_router
from fitpass.core.config import get_settings
from fitpass.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.app_env != "dev")

    app = FastAPI(
        title="Fitpass Billing API",
        version="0.1.0",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
    )
    app.include_router(health_router)
    app.include_router(credits_router)
    app.include_router(checkout_router)
    app.include_router(bookings_router)
    app.include_router(account_router)
    app.include_router(payments_router)
    app.include_router(internal_billing_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "fitpass.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
