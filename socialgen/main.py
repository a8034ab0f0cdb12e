import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load env from socialgen/.env
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from socialgen.api import auth_providers, billing, generations, health, templates, usage
from socialgen.core.config import settings, validate_config
from socialgen.core.database import create_all_tables, dispose_engine
from socialgen.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from socialgen.core.logging import configure_logging
from socialgen.core.middleware.request_id import RequestIdMiddleware
from socialgen.features.auth_providers.service import AuthConfig


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("socialgen")
    logger.info("Starting socialgen API...")
    create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping socialgen API...")
        dispose_engine()


def create_app(auth_config: Optional[AuthConfig] = None) -> FastAPI:
    configure_logging(settings.ENV, settings.LOG_LEVEL)
    validate_config(strict=settings.CONFIG_STRICT)

    app = FastAPI(title="socialgen", lifespan=lifespan)
    # Loaded lazily on first use; POST /v1/auth/providers/reload refreshes it
    app.state.auth_config = auth_config or AuthConfig()

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.root_router)
    app.include_router(usage.router)
    app.include_router(templates.router)
    app.include_router(generations.router)
    app.include_router(billing.router)
    app.include_router(auth_providers.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("socialgen.main:app", host="0.0.0.0", port=8000, reload=False, log_level="info")
