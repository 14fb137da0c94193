"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings

from margin_calculator.models.enums import FreeSetPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Margin Calculator"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000

    # ── Pricing engine ───────────────────────────────────
    default_margin_target: float = 30.0  # %
    default_markup_target: float = 50.0  # %
    free_set_policy: FreeSetPolicy = FreeSetPolicy.PAIR

    # ── Export ───────────────────────────────────────────
    export_sheet_title: str = "Margin Calculator"
    export_currency_format: str = "#,##0.00"
    export_percentage_format: str = "0.00%"

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
