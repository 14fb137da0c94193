"""
Product Ledger — the authoritative in-memory collection of calculator rows.

Rows are keyed by product code and kept in insertion order. Every field
edit is routed through the Consistency Resolver; the resolved row replaces
the old one in a single step. Observers are notified after each mutation.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterator

from margin_calculator.config import get_settings
from margin_calculator.engine.formulas import (
    margin_from,
    markup_from,
    price_from_margin,
    price_from_markup,
)
from margin_calculator.engine.resolver import resolve
from margin_calculator.models.enums import (
    DerivationPair,
    FreeSetPolicy,
    LedgerAction,
    LockState,
    PricingField,
)
from margin_calculator.models.schemas import (
    CatalogItem,
    ClientInfo,
    LedgerEvent,
    ProductRow,
)
from margin_calculator.utils.numbers import coerce_amount

logger = logging.getLogger(__name__)

LedgerObserver = Callable[[LedgerEvent], None]
LedgerSnapshot = tuple[ProductRow, ...]


class ProductLedger:
    """
    Ordered collection of ProductRows.

    Single logical writer: mutations are serialized by a re-entrant lock so
    the resolver always reads a fully resolved prior row.
    """

    def __init__(self, policy: FreeSetPolicy | None = None):
        self.policy = policy if policy is not None else get_settings().free_set_policy
        self.client = ClientInfo()
        self._rows: dict[str, ProductRow] = {}
        self._observers: list[LedgerObserver] = []
        self._lock = threading.RLock()

    # ── Observers ────────────────────────────────────────

    def subscribe(self, observer: LedgerObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: LedgerObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, action: LedgerAction, code: str = "", row: ProductRow | None = None,
                details: str = "") -> None:
        event = LedgerEvent(action=action, code=code, row=row, details=details)
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                logger.warning(f"Ledger observer {observer!r} failed on {action.value}: {e}")

    # ── Read access ──────────────────────────────────────

    def list_rows(self) -> list[ProductRow]:
        """Read-only ordered view for exports and rendering."""
        with self._lock:
            return list(self._rows.values())

    def get(self, code: str) -> ProductRow | None:
        return self._rows.get(code)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, code: object) -> bool:
        return code in self._rows

    def __iter__(self) -> Iterator[ProductRow]:
        return iter(self.list_rows())

    # ── Row lifecycle ────────────────────────────────────

    def add(self, item: CatalogItem) -> bool:
        """
        Add a catalog item as a new row. Cost is seeded from the reference
        price when it is a positive number. Returns False (and changes
        nothing) when the code is already present.
        """
        with self._lock:
            if item.code in self._rows:
                logger.debug(f"[{item.code}] Already in ledger — add ignored")
                return False

            reference = coerce_amount(item.reference_price)
            row = ProductRow(
                code=item.code,
                name=item.name,
                cost=reference if reference is not None and reference > 0 else None,
            )
            self._rows = {**self._rows, row.code: row}

        logger.info(f"[{row.code}] Added to ledger (cost={row.cost})")
        self._notify(LedgerAction.ADDED, row.code, row)
        return True

    def add_manual(self, code: str, name: str = "") -> bool:
        """Add a free-typed code with every pricing field empty."""
        return self.add(CatalogItem(code=code, name=name))

    def update_field(self, code: str, field: PricingField | str, value: Any) -> ProductRow | None:
        """Resolve one field edit. Unknown codes are ignored (returns None)."""
        with self._lock:
            current = self._rows.get(code)
            if current is None:
                logger.debug(f"[{code}] Not in ledger — update ignored")
                return None
            row = resolve(current, field, value, self.policy)
            self._rows = {**self._rows, code: row}

        self._notify(LedgerAction.UPDATED, code, row, details=f"{PricingField(field).value}={value!r}")
        return row

    def remove(self, code: str) -> bool:
        with self._lock:
            if code not in self._rows:
                return False
            self._rows = {c: r for c, r in self._rows.items() if c != code}

        logger.info(f"[{code}] Removed from ledger")
        self._notify(LedgerAction.REMOVED, code)
        return True

    def clear(self) -> None:
        with self._lock:
            count = len(self._rows)
            self._rows = {}

        logger.info(f"Ledger cleared ({count} rows)")
        self._notify(LedgerAction.CLEARED, details=f"{count} rows")

    # ── Snapshots (single-step undo support) ─────────────

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return tuple(self._rows.values())

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """Replace the row collection verbatim with a prior snapshot."""
        with self._lock:
            self._rows = {row.code: row for row in snapshot}

        logger.info(f"Ledger restored from snapshot ({len(snapshot)} rows)")
        self._notify(LedgerAction.RESTORED, details=f"{len(snapshot)} rows")

    # ── Client header ────────────────────────────────────

    def set_client(self, client: ClientInfo) -> None:
        self.client = client
        self._notify(LedgerAction.CLIENT_CHANGED, details=client.name)

    def clear_client(self) -> None:
        self.set_client(ClientInfo())

    # ── Global apply ─────────────────────────────────────

    def apply_global_margin(self, target: float) -> int:
        """
        Stamp ``target`` margin % on every row with a known cost.
        Price is derived from cost and margin; only markup is locked.
        Returns the number of rows stamped.
        """
        def stamp(row: ProductRow) -> ProductRow:
            price = price_from_margin(row.cost, target)
            return row.model_copy(update={
                "price": price,
                "margin_pct": target,
                "markup_pct": markup_from(row.cost, price),
                "locked_fields": frozenset({PricingField.MARKUP}),
                "lock_state": LockState.GLOBAL_LOCK_MARKUP,
                "derived_from": DerivationPair.COST_MARGIN,
            })

        count = self._apply_to_costed_rows(stamp)
        logger.info(f"Global margin {target}% applied to {count} rows")
        self._notify(LedgerAction.GLOBAL_MARGIN, details=f"target={target} rows={count}")
        return count

    def apply_global_markup(self, target: float) -> int:
        """Markup counterpart of apply_global_margin; only margin is locked."""
        def stamp(row: ProductRow) -> ProductRow:
            price = price_from_markup(row.cost, target)
            return row.model_copy(update={
                "price": price,
                "markup_pct": target,
                "margin_pct": margin_from(row.cost, price),
                "locked_fields": frozenset({PricingField.MARGIN}),
                "lock_state": LockState.GLOBAL_LOCK_MARGIN,
                "derived_from": DerivationPair.COST_MARKUP,
            })

        count = self._apply_to_costed_rows(stamp)
        logger.info(f"Global markup {target}% applied to {count} rows")
        self._notify(LedgerAction.GLOBAL_MARKUP, details=f"target={target} rows={count}")
        return count

    def _apply_to_costed_rows(self, stamp: Callable[[ProductRow], ProductRow]) -> int:
        with self._lock:
            count = 0
            rows: dict[str, ProductRow] = {}
            for code, row in self._rows.items():
                if row.cost is None:
                    rows[code] = row
                    continue
                rows[code] = stamp(row)
                count += 1
            self._rows = rows
        return count
