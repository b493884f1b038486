"""FastAPI application for the lead qualification call service."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .core.config import Settings, get_settings
from .db.session import SessionLocal
from .routers import calls, demo, provider, webhooks
from .services.bland import BlandClient
from .services.reconciliation import CallPoller

logger = logging.getLogger(__name__)


def configure_logging(config: Settings) -> None:
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the provider client and poller once and tear them down on exit."""

    config: Settings = app.state.settings
    for key in config.missing_provider_keys():
        logger.warning("%s is not configured; provider calls will be rejected", key)

    client = BlandClient(config)
    poller = CallPoller(client, SessionLocal, settings=config)
    app.state.bland_client = client
    app.state.call_poller = poller

    if config.poll_resume_on_startup:
        try:
            await poller.resume_pending()
        except Exception:  # noqa: BLE001 - serving requests matters more than resuming
            logger.exception("Could not resume unfinished call reconciliation")

    logger.info("Application startup complete")
    try:
        yield
    finally:
        await poller.shutdown()
        await client.close()
        logger.info("Application shutdown complete")


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or get_settings()

    application = FastAPI(title="Lead Qualification Call API", version="0.1.0", lifespan=lifespan)
    application.state.settings = config

    if config.cors_allow_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @application.get("/api/health", tags=["meta"])
    async def health() -> dict[str, str]:
        """Simple liveness probe."""

        return {"status": "ok"}

    @application.head("/api/health", tags=["meta"])
    async def health_head() -> Response:
        """Allow HEAD for uptime monitors that only need the status code."""

        return Response(status_code=200)

    application.include_router(demo.router, tags=["demo"])
    application.include_router(webhooks.router, tags=["webhooks"])
    application.include_router(calls.router, tags=["calls"])
    application.include_router(provider.router, tags=["provider"])
    return application


configure_logging(get_settings())
app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""

    import uvicorn

    config = get_settings()
    uvicorn.run("app.main:app", host=config.host, port=config.port, log_level=config.log_level.lower())
