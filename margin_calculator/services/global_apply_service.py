"""
Global Apply Workflow — stamps one target percentage across the ledger.

Before each apply the current rows are snapshotted so the user can revert
the whole pass once. This is a manual single-step rollback, not a history:
a second apply replaces the backup.
"""

from __future__ import annotations

import logging
from typing import Any

from margin_calculator.config import get_settings
from margin_calculator.engine.ledger import LedgerSnapshot, ProductLedger
from margin_calculator.models.enums import PricingField
from margin_calculator.models.schemas import GlobalApplyResult
from margin_calculator.utils.numbers import coerce_target

logger = logging.getLogger(__name__)


class GlobalApplyService:
    """Holds the global margin/markup targets and the pre-apply backup."""

    def __init__(
        self,
        ledger: ProductLedger,
        margin_target: float | None = None,
        markup_target: float | None = None,
    ):
        settings = get_settings()
        self.ledger = ledger
        self.margin_target = (
            settings.default_margin_target if margin_target is None else coerce_target(margin_target)
        )
        self.markup_target = (
            settings.default_markup_target if markup_target is None else coerce_target(markup_target)
        )
        self._backup: LedgerSnapshot = ()

    # ── Targets ──────────────────────────────────────────

    def set_margin_target(self, value: Any) -> float:
        self.margin_target = coerce_target(value)
        return self.margin_target

    def set_markup_target(self, value: Any) -> float:
        self.markup_target = coerce_target(value)
        return self.markup_target

    # ── Apply ────────────────────────────────────────────

    def apply_margin(self, target: Any = None) -> GlobalApplyResult:
        if target is not None:
            self.set_margin_target(target)
        return self._apply(PricingField.MARGIN, self.margin_target)

    def apply_markup(self, target: Any = None) -> GlobalApplyResult:
        if target is not None:
            self.set_markup_target(target)
        return self._apply(PricingField.MARKUP, self.markup_target)

    def _apply(self, field: PricingField, target: float) -> GlobalApplyResult:
        before = self.ledger.snapshot()
        self._backup = before

        if field is PricingField.MARGIN:
            applied = self.ledger.apply_global_margin(target)
        else:
            applied = self.ledger.apply_global_markup(target)

        previous = {row.code: row for row in before}
        changed = sum(1 for row in self.ledger.list_rows() if previous.get(row.code) != row)

        result = GlobalApplyResult(
            field=field,
            target=target,
            rows_applied=applied,
            rows_changed=changed,
            rows_skipped=len(before) - applied,
        )
        logger.info(
            f"Global {field.value} {target}%: {result.rows_applied} applied, "
            f"{result.rows_changed} changed, {result.rows_skipped} skipped"
        )
        return result

    # ── Undo ─────────────────────────────────────────────

    @property
    def can_undo(self) -> bool:
        return len(self._backup) > 0

    def undo(self) -> bool:
        """Restore the rows captured before the last apply. Returns False when there is none."""
        if not self.can_undo:
            return False
        self.ledger.restore(self._backup)
        self._backup = ()
        logger.info("Global apply reverted")
        return True
