"""
FastAPI application shell: logging, CORS, error rendering and status endpoints.
"""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .errors import register_exception_handlers
from .services.mail_dispatcher import CeleryMailDispatcher


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
    )
    app.state.settings = settings
    app.state.mailer = CeleryMailDispatcher.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/")
    async def root():
        return {"status": "ok", "service": settings.APP_NAME}

    @app.get("/api/v1/status")
    async def status():
        return {
            "status": "ok",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
        }

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "tenant_admin.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
