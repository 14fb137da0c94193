"""
WebSocket support for live ledger updates.

Provides:
  - LedgerFeed, a ledger observer that broadcasts every mutation
  - WebSocket clients connect via /api/ledger/ws and receive JSON events:
        { "action": "updated", "code": "A-100", "row": {...}, "details": "price=12.5", "timestamp": "..." }
        { "action": "global_margin", "code": "", "row": null, "details": "target=30.0 rows=4", ... }
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from margin_calculator.models.schemas import LedgerEvent

logger = logging.getLogger(__name__)


class LedgerFeed:
    """In-process event bus between the ledger and connected browsers."""

    def __init__(self, history_size: int = 200) -> None:
        self.history_size = history_size
        self._clients: list[WebSocket] = []
        self._history: list[dict[str, Any]] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    def set_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    # ── Client management ────────────────────────────────

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._clients.append(ws)
        for msg in list(self._history):
            try:
                await ws.send_json(msg)
            except Exception:
                break

    def disconnect(self, ws: WebSocket) -> None:
        if ws in self._clients:
            self._clients.remove(ws)

    @property
    def history(self) -> list[dict[str, Any]]:
        return list(self._history)

    # ── Broadcasting ─────────────────────────────────────

    def __call__(self, event: LedgerEvent) -> None:
        self.emit(event.model_dump(mode="json"))

    def emit(self, message: dict[str, Any]) -> None:
        self._history.append(message)
        if len(self._history) > self.history_size:
            del self._history[: len(self._history) - self.history_size]

        if not self._clients:
            return

        loop = self._loop
        if loop is None or loop.is_closed():
            return

        asyncio.run_coroutine_threadsafe(self._broadcast(message), loop)

    async def _broadcast(self, message: dict[str, Any]) -> None:
        dead: list[WebSocket] = []
        for ws in list(self._clients):
            try:
                await ws.send_json(message)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)
        if dead:
            logger.debug(f"Dropped {len(dead)} disconnected ledger clients")
