"""
Pricing formulas.

Markup% is profit over cost, Margin% is profit over price. Every formula
returns a finite number: the divisions that could hit zero are guarded.
"""

from __future__ import annotations


def markup_from(cost: float, price: float) -> float:
    """Markup % = (price - cost) / cost * 100, 0 when cost is 0."""
    if cost == 0:
        return 0.0
    return (price - cost) / cost * 100


def margin_from(cost: float, price: float) -> float:
    """Margin % = (price - cost) / price * 100, 0 when price is 0."""
    if price == 0:
        return 0.0
    return (price - cost) / price * 100


def price_from_markup(cost: float, markup: float) -> float:
    return cost * (1 + markup / 100)


def price_from_margin(cost: float, margin: float) -> float:
    """Price = cost / (1 - margin/100); a margin of 100% or more clamps price to cost."""
    if margin >= 100:
        return cost
    return cost / (1 - margin / 100)


def cost_from_markup(price: float, markup: float) -> float:
    """Cost = price / (1 + markup/100); a markup of -100% or less clamps cost to price."""
    if markup <= -100:
        return price
    return price / (1 + markup / 100)


def cost_from_margin(price: float, margin: float) -> float:
    return price * (1 - margin / 100)
