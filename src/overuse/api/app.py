"""FastAPI app factory: logging, CORS, health and service info, configuration errors as 503."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from ..config import get_settings
from ..exceptions import ConfigurationError
from ..observability.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    title: str = "Utility Overuse",
    description: str = "Utility bill reconciliation and overuse calculation",
    version: str = "0.1.0",
    **kwargs,
) -> FastAPI:
    """Create the API application. Domain routers are mounted by the caller (see src/main.py)."""
    settings = get_settings()
    setup_logging(level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL)

    app = FastAPI(title=title, description=description, version=version, **kwargs)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        logger.warning("Configuration error on %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=503, content={"detail": exc.message, "setting": exc.setting})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/")
    def root():
        return RedirectResponse(url="/docs", status_code=302)

    @app.get("/info")
    def info():
        """Service name, version and where the run endpoints live."""
        return {"service": title, "version": version, "docs": "/docs", "runs": "/overuse/runs"}

    return app
