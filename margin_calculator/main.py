"""
Margin Calculator — Main Entry Point

Run as an API server (for the frontend):
    python -m margin_calculator
    # or: uvicorn margin_calculator.api:app --reload --port 8000
"""

from __future__ import annotations

import logging

from margin_calculator.config import get_settings
from margin_calculator.utils.logger import setup_logging


def serve(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Start the FastAPI server."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    host = host or settings.host
    port = port or settings.port
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run("margin_calculator.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    serve()
