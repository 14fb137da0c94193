"""Pricing engine — formulas, Consistency Resolver, Product Ledger."""

from margin_calculator.engine.ledger import LedgerSnapshot, ProductLedger
from margin_calculator.engine.resolver import resolve

__all__ = ["LedgerSnapshot", "ProductLedger", "resolve"]
