from enum import Enum


class PricingField(str, Enum):
    COST = "cost"
    PRICE = "price"
    MARKUP = "markup"
    MARGIN = "margin"


class DerivationPair(str, Enum):
    """Free pairs that can anchor a row, in resolution priority order."""
    COST_PRICE = "cost_price"
    COST_MARKUP = "cost_markup"
    COST_MARGIN = "cost_margin"
    PRICE_MARKUP = "price_markup"
    PRICE_MARGIN = "price_margin"


class LockState(str, Enum):
    FREE = "FREE"
    DERIVED_PAIR = "DERIVED_PAIR"
    GLOBAL_LOCK_MARKUP = "GLOBAL_LOCK_MARKUP"
    GLOBAL_LOCK_MARGIN = "GLOBAL_LOCK_MARGIN"


class FreeSetPolicy(str, Enum):
    PAIR = "pair"              # free set narrowed to two fields around the edit
    PERMISSIVE = "permissive"  # every known, unlocked field stays free


class LedgerAction(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    CLEARED = "cleared"
    GLOBAL_MARGIN = "global_margin"
    GLOBAL_MARKUP = "global_markup"
    RESTORED = "restored"
    CLIENT_CHANGED = "client_changed"
