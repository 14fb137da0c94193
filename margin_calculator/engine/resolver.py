"""
Consistency Resolver — decides which two pricing fields are free after an
edit and recomputes the other two from them.

Resolution of one edit:
  1. Write the new value (unparsable input clears the field).
  2. Build the known set K: fields holding a value that are not derived
     outputs, plus the edited field.
  3. Lock every field outside K, unless K has fewer than two members or is
     exactly {markup, margin} (ratios alone cannot anchor a price).
  4. Derive the locked fields from the first fully-known, unlocked pair in
     PAIR_PRIORITY order.

The function is pure: it returns a new ProductRow and never raises for bad
input.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from margin_calculator.engine.formulas import (
    cost_from_margin,
    cost_from_markup,
    margin_from,
    markup_from,
    price_from_margin,
    price_from_markup,
)
from margin_calculator.models.enums import (
    DerivationPair,
    FreeSetPolicy,
    LockState,
    PricingField,
)
from margin_calculator.models.schemas import PRICING_FIELDS, ROW_ATTRIBUTES, ProductRow
from margin_calculator.utils.numbers import coerce_amount

logger = logging.getLogger(__name__)

COST = PricingField.COST
PRICE = PricingField.PRICE
MARKUP = PricingField.MARKUP
MARGIN = PricingField.MARGIN

RATIO_PAIR = frozenset({MARKUP, MARGIN})

# Dict order is the resolution priority
PAIR_PRIORITY: dict[DerivationPair, tuple[PricingField, PricingField]] = {
    DerivationPair.COST_PRICE: (COST, PRICE),
    DerivationPair.COST_MARKUP: (COST, MARKUP),
    DerivationPair.COST_MARGIN: (COST, MARGIN),
    DerivationPair.PRICE_MARKUP: (PRICE, MARKUP),
    DerivationPair.PRICE_MARGIN: (PRICE, MARGIN),
}

Values = dict[PricingField, Optional[float]]


# ── Derivations (one per anchoring pair) ─────────────────

def _from_cost_price(cost: float, price: float) -> Values:
    return {MARKUP: markup_from(cost, price), MARGIN: margin_from(cost, price)}


def _from_cost_markup(cost: float, markup: float) -> Values:
    price = price_from_markup(cost, markup)
    return {PRICE: price, MARGIN: margin_from(cost, price)}


def _from_cost_margin(cost: float, margin: float) -> Values:
    price = price_from_margin(cost, margin)
    return {PRICE: price, MARKUP: markup_from(cost, price)}


def _from_price_markup(price: float, markup: float) -> Values:
    cost = cost_from_markup(price, markup)
    return {COST: cost, MARGIN: margin_from(cost, price)}


def _from_price_margin(price: float, margin: float) -> Values:
    cost = cost_from_margin(price, margin)
    return {COST: cost, MARKUP: markup_from(cost, price)}


DERIVATIONS: dict[DerivationPair, Callable[[float, float], Values]] = {
    DerivationPair.COST_PRICE: _from_cost_price,
    DerivationPair.COST_MARKUP: _from_cost_markup,
    DerivationPair.COST_MARGIN: _from_cost_margin,
    DerivationPair.PRICE_MARKUP: _from_price_markup,
    DerivationPair.PRICE_MARGIN: _from_price_margin,
}


# ── Free set / lock selection ────────────────────────────

def known_fields(
    row: ProductRow,
    values: Values,
    edited: PricingField,
    policy: FreeSetPolicy = FreeSetPolicy.PAIR,
) -> frozenset[PricingField]:
    """
    Fields the user is anchoring on. Derived (locked) values are outputs,
    not inputs, so they never count. The edited field always counts, even
    when the edit cleared it.
    """
    known = {f for f in PRICING_FIELDS if values[f] is not None and not row.is_locked(f)}
    known.add(edited)
    if policy is FreeSetPolicy.PAIR and len(known) > 2:
        return narrow_to_pair(frozenset(known), edited)
    return frozenset(known)


def narrow_to_pair(known: frozenset[PricingField], edited: PricingField) -> frozenset[PricingField]:
    """Keep the edited field plus its highest-priority partner from ``known``."""
    for first, second in PAIR_PRIORITY.values():
        if edited in (first, second) and first in known and second in known:
            return frozenset({first, second})
    return known


def locked_fields_for(known: frozenset[PricingField]) -> frozenset[PricingField]:
    if len(known) < 2 or known == RATIO_PAIR:
        return frozenset()
    return frozenset(f for f in PRICING_FIELDS if f not in known)


def derive(
    values: Values,
    locked: frozenset[PricingField],
) -> tuple[DerivationPair | None, Values]:
    """Run the first derivation whose pair is fully known and unlocked."""
    for pair, (first, second) in PAIR_PRIORITY.items():
        a, b = values[first], values[second]
        if a is None or b is None or first in locked or second in locked:
            continue
        return pair, DERIVATIONS[pair](a, b)
    return None, {}


# ── Public entry point ───────────────────────────────────

def resolve(
    row: ProductRow,
    edited_field: PricingField | str,
    new_value: Any,
    policy: FreeSetPolicy = FreeSetPolicy.PAIR,
) -> ProductRow:
    """Apply one field edit to ``row`` and return the fully resolved row."""
    edited = PricingField(edited_field)

    values = row.values()
    values[edited] = coerce_amount(new_value)

    known = known_fields(row, values, edited, policy)
    locked = locked_fields_for(known)

    # Only free inputs survive; locked fields are either derived or cleared
    resolved: Values = {f: (values[f] if f in known else None) for f in PRICING_FIELDS}
    pair, derived = derive(resolved, locked)
    resolved.update(derived)

    logger.debug(
        f"[{row.code}] {edited.value}={values[edited]!r} → "
        f"free={sorted(f.value for f in known)} "
        f"locked={sorted(f.value for f in locked)} "
        f"via={pair.value if pair else None}"
    )

    update: dict[str, Any] = {ROW_ATTRIBUTES[f]: resolved[f] for f in PRICING_FIELDS}
    update["locked_fields"] = locked
    update["lock_state"] = LockState.DERIVED_PAIR if locked else LockState.FREE
    update["derived_from"] = pair
    return row.model_copy(update=update)
