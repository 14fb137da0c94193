"""
Audit Service — records ledger mutations.
Subscribed to the ProductLedger as an observer; entries live in memory.
"""

from __future__ import annotations

import logging
from typing import Any

from margin_calculator.models.schemas import LedgerEvent

logger = logging.getLogger(__name__)


class AuditService:
    """Keeps an append-only list of ledger events for the session."""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self._entries: list[dict[str, Any]] = []

    def __call__(self, event: LedgerEvent) -> None:
        self.record(event)

    def record(self, event: LedgerEvent) -> dict[str, Any]:
        """Record an audit entry and return it."""
        entry = {
            "action": event.action.value,
            "code": event.code,
            "details": event.details,
            "timestamp": event.timestamp.isoformat(),
        }
        self._entries.append(entry)
        if len(self._entries) > self.max_entries:
            del self._entries[: len(self._entries) - self.max_entries]
        logger.debug(f"[AUDIT] {event.action.value} {event.code}: {event.details}")
        return entry

    def get_trail(self, code: str) -> list[dict[str, Any]]:
        """Return all audit entries for one product code."""
        return [e for e in self._entries if e["code"] == code]

    def get_all(self) -> list[dict[str, Any]]:
        return list(self._entries)
