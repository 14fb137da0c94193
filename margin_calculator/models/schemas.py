"""
Data schemas for the margin calculator.
Rows are immutable: every edit produces a new ProductRow and the ledger
swaps it in.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .enums import DerivationPair, LedgerAction, LockState, PricingField


# Canonical display / iteration order of the four pricing fields
PRICING_FIELDS: tuple[PricingField, ...] = (
    PricingField.COST,
    PricingField.PRICE,
    PricingField.MARKUP,
    PricingField.MARGIN,
)

# Row attribute holding each pricing field
ROW_ATTRIBUTES: dict[PricingField, str] = {
    PricingField.COST: "cost",
    PricingField.PRICE: "price",
    PricingField.MARKUP: "markup_pct",
    PricingField.MARGIN: "margin_pct",
}


# ── Inbound ──────────────────────────────────────────────


class CatalogItem(BaseModel):
    """Catalog search result; only used to seed a new row."""
    code: str
    name: str = ""
    reference_price: Optional[float] = None


class ClientInfo(BaseModel):
    """Customer the quote is being prepared for (export header)."""
    name: str = ""
    document: str = ""
    tax_id: str = ""
    client_code: str = ""


# ── Ledger rows ──────────────────────────────────────────


class ProductRow(BaseModel):
    """One product in the calculator with its four pricing fields."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str = ""
    cost: Optional[float] = None
    price: Optional[float] = None
    markup_pct: Optional[float] = None  # (price - cost) / cost * 100
    margin_pct: Optional[float] = None  # (price - cost) / price * 100
    locked_fields: frozenset[PricingField] = frozenset()
    lock_state: LockState = LockState.FREE
    derived_from: Optional[DerivationPair] = None

    @field_serializer("locked_fields")
    def _serialize_locked_fields(self, locked: frozenset[PricingField]) -> list[str]:
        return [f.value for f in PRICING_FIELDS if f in locked]

    def value_of(self, field: PricingField) -> Optional[float]:
        return getattr(self, ROW_ATTRIBUTES[field])

    def values(self) -> dict[PricingField, Optional[float]]:
        return {f: self.value_of(f) for f in PRICING_FIELDS}

    def is_locked(self, field: PricingField) -> bool:
        return field in self.locked_fields

    @property
    def profit(self) -> Optional[float]:
        if self.cost is None or self.price is None:
            return None
        return self.price - self.cost


# ── Global apply ─────────────────────────────────────────


class GlobalApplyResult(BaseModel):
    """Outcome of stamping one target percentage across the ledger."""
    field: PricingField  # MARGIN or MARKUP
    target: float
    rows_applied: int = 0   # rows with a known cost
    rows_changed: int = 0   # rows whose values or locks differ afterwards
    rows_skipped: int = 0   # rows without a cost, left untouched


# ── Observer events ──────────────────────────────────────


class LedgerEvent(BaseModel):
    """Emitted by the ledger after every mutation."""
    action: LedgerAction
    code: str = ""
    row: Optional[ProductRow] = None
    details: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
