"""
FastAPI application factory and API package.

Run with:
    uvicorn margin_calculator.api:app --reload --port 8000

Or via main.py:
    python -m margin_calculator
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from margin_calculator.config import get_settings
from margin_calculator.api.routes import health_router, ledger_router
from margin_calculator.api.websocket import LedgerFeed
from margin_calculator.engine.ledger import ProductLedger
from margin_calculator.services.audit_service import AuditService
from margin_calculator.services.global_apply_service import GlobalApplyService

logger = logging.getLogger(__name__)


def create_app(ledger: ProductLedger | None = None) -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title="Margin Calculator API",
        description="Pricing ledger with cost / price / markup / margin consistency",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS for the browser frontend
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One ledger per application; observers see every mutation
    ledger = ledger if ledger is not None else ProductLedger()
    audit = AuditService()
    feed = LedgerFeed()
    ledger.subscribe(audit)
    ledger.subscribe(feed)

    application.state.ledger = ledger
    application.state.global_apply = GlobalApplyService(ledger)
    application.state.audit = audit
    application.state.feed = feed

    application.include_router(health_router, tags=["Health"])
    application.include_router(ledger_router, prefix="/api/ledger", tags=["Ledger"])

    @application.on_event("startup")
    async def startup():
        # Give the feed the server's event loop so ledger events can be
        # broadcast from any thread.
        feed.set_loop(asyncio.get_running_loop())
        logger.info(f"Starting {settings.app_name} API (free-set policy: {ledger.policy.value})")

    return application


# Module-level instance for `uvicorn margin_calculator.api:app`
app = create_app()
