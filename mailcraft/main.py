import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from mailcraft.config import settings
from mailcraft.db.base import init_db
from mailcraft.errors import BackendError, MailcraftError
from mailcraft.routers import campaigns, cron, generation

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _app_lifespan(_app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Mailcraft API",
        default_response_class=ORJSONResponse,
        lifespan=_app_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(settings.cors_origins)),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MailcraftError)
    async def mailcraft_error_handler(_request: Request, exc: MailcraftError) -> ORJSONResponse:
        if isinstance(exc, BackendError):
            logger.error(
                "ESP backend gateway failure",
                extra={"upstream_status": exc.upstream_status, "path": _request.url.path},
            )
        elif exc.status_code >= 500:
            logger.error("Request failed", extra={"error": exc.message, "path": _request.url.path})
        return ORJSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"detail": "Internal server error."})

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    app.include_router(generation.router)
    app.include_router(campaigns.router)
    app.include_router(cron.router)

    return app


app = create_app()
