import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from creatorsubs.api import health, plans, promo_codes, subscriptions
from creatorsubs.core.config import BillingPolicy, settings, validate_config
from creatorsubs.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from creatorsubs.core.logging import LOGGER_NAME, configure_logging
from creatorsubs.core.middleware.request_id import RequestIdMiddleware
from creatorsubs.core.store import RecordStore, get_record_store
from creatorsubs.features.container import ServiceContainer


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("Starting creator subscriptions backend...")
    try:
        yield
    finally:
        logger.info("Stopping creator subscriptions backend...")


def create_app(store: Optional[RecordStore] = None, policy: Optional[BillingPolicy] = None) -> FastAPI:
    """Build the API around one record store; tests pass their own."""
    configure_logging(settings.ENV)
    validate_config(strict=settings.CONFIG_STRICT)

    app = FastAPI(title="Creator Subscriptions", lifespan=lifespan)
    app.state.services = ServiceContainer.build(store if store is not None else get_record_store(), policy)

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(plans.router)
    app.include_router(promo_codes.router)
    app.include_router(subscriptions.router)
    return app


app = create_app()
