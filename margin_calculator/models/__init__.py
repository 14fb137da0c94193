from .enums import DerivationPair, FreeSetPolicy, LedgerAction, LockState, PricingField
from .schemas import (
    PRICING_FIELDS,
    ROW_ATTRIBUTES,
    CatalogItem,
    ClientInfo,
    GlobalApplyResult,
    LedgerEvent,
    ProductRow,
)

__all__ = [
    "DerivationPair",
    "FreeSetPolicy",
    "LedgerAction",
    "LockState",
    "PricingField",
    "PRICING_FIELDS",
    "ROW_ATTRIBUTES",
    "CatalogItem",
    "ClientInfo",
    "GlobalApplyResult",
    "LedgerEvent",
    "ProductRow",
]
