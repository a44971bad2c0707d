"""FastAPI entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inkwell.config import get_settings, validate_settings_for_env
from inkwell.logging import configure_logging
from inkwell.providers.factory import enabled_provider_names
from inkwell.routes.editor import router as editor_router
from inkwell.routes.health import router as health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    validate_settings_for_env(settings)
    configure_logging(settings.log_level)
    logger.info("Serving providers: %s", ", ".join(enabled_provider_names(settings)) or "none")
    yield


app = FastAPI(title="Inkwell Editor Backend", version="0.1.0", lifespan=lifespan)

settings = get_settings()
cors_origins = [item.strip() for item in settings.web_cors_origins.split(",") if item.strip()]
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.include_router(health_router)
app.include_router(editor_router)
