"""FastAPI application: analysis webhook plus the client REST API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from src.analysis.fetcher import AnalysisFetcher
from src.analysis.worker import AnalysisFetchWorker
from src.api.routes import create_api_router
from src.audit.logger import AuditLogger
from src.config import AppConfig
from src.uploads.storage import UploadStore
from src.webhook.handler import AnalysisWebhookHandler

logger = logging.getLogger(__name__)

WEBHOOK_ROUTE = "/incoming-webhook"
SHUTDOWN_DRAIN_SECONDS = 10.0


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables.

    Raises ConfigError before any socket is bound if the environment is incomplete.
    """
    return create_app(AppConfig.from_env())


def create_app(
    config: AppConfig,
    fetcher: AnalysisFetcher | None = None,
    upload_store: UploadStore | None = None,
    audit_logger: AuditLogger | None = None,
    worker: AnalysisFetchWorker | None = None,
) -> FastAPI:
    """Create the app; collaborators default to ones built from ``config``."""
    if audit_logger is None and config.audit_log_path:
        audit_logger = AuditLogger.from_env(config.audit_log_path)
    if fetcher is None:
        fetcher = AnalysisFetcher(
            config.api_url, config.access_token, timeout=config.fetch_timeout,
        )
    if upload_store is None:
        upload_store = UploadStore(config.upload_dir, config.max_upload_bytes)
    if worker is None:
        worker = AnalysisFetchWorker(fetcher, audit_logger=audit_logger)

    handler = AnalysisWebhookHandler(config.secret, worker, audit_logger=audit_logger)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        worker.start()
        logger.info(
            "Server listening on http://localhost:%d%s", config.port, WEBHOOK_ROUTE,
        )
        try:
            yield
        finally:
            await worker.stop(drain_timeout=SHUTDOWN_DRAIN_SECONDS)

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.worker = worker

    @app.post(WEBHOOK_ROUTE)
    async def incoming_webhook(request: Request) -> PlainTextResponse:
        body = await request.body()
        outcome = handler.handle(
            body,
            request.headers.get("signature"),
            source_ip=request.client.host if request.client else None,
        )
        return PlainTextResponse(outcome.reason, status_code=outcome.status_code)

    app.include_router(create_api_router(fetcher, upload_store, audit_logger))

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=config.cors_origin_regex,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app
