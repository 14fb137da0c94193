from .logger import setup_logging
from .numbers import coerce_amount, coerce_target

__all__ = ["setup_logging", "coerce_amount", "coerce_target"]
