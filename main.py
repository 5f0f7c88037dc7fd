"""
App entrypoint.

- Builds the repository selected by STORAGE_BACKEND and wires the services
- Runs the live-quiz schedule checker for the lifetime of the app
- Include API routes under /api
"""
from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

import routers
from config import Settings, settings
from db.base import Repository
from db.factory import build_repository
from schemas import Envelope
from service.registry import build_services

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(repo: Optional[Repository] = None, cfg: Optional[Settings] = None) -> FastAPI:
    cfg = cfg or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        repository = repo or build_repository(cfg.storage_backend)
        await repository.connect()
        services = build_services(repository, cfg)
        app.state.services = services
        if cfg.schedule_checker_enabled:
            services.scheduler.start()
        logger.info("%s %s started (%s storage)", cfg.service_name, cfg.version, cfg.storage_backend)
        try:
            yield
        finally:
            await services.scheduler.stop()
            await repository.disconnect()
            logger.info("%s stopped", cfg.service_name)

    app = FastAPI(
        title="QuestAI Quiz Service",
        version=cfg.version,
        description="Quiz authoring, live quiz hosting and results analytics",
        lifespan=lifespan,
    )

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
        detail = exc.detail
        body = Envelope(success=False, message=str(detail))
        if isinstance(detail, dict):
            body.message = detail.get("message")
            body.data = {k: v for k, v in detail.items() if k != "message"}
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{where}: {first.get('msg')}" if where else str(first.get("msg", "Invalid request"))
        return JSONResponse(status_code=400, content=Envelope(success=False, message=message).model_dump())

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500, content=Envelope(success=False, message="Internal server error").model_dump()
        )

    app.include_router(routers.router, prefix="/api")
    return app


app = create_app()
