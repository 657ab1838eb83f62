"""
Process-level settings for the diagram engine service and CLI.

Values come from environment variables and are read once at import time.
"""

import logging
import os

HOST = os.environ.get("DIAGRAM_ENGINE_HOST", "127.0.0.1")
PORT = int(os.environ.get("DIAGRAM_ENGINE_PORT", "8765"))
LOG_LEVEL = os.environ.get("DIAGRAM_ENGINE_LOG_LEVEL", "INFO").upper()
AUTO_COLLAPSE_DEPTH = int(os.environ.get("DIAGRAM_ENGINE_AUTO_COLLAPSE_DEPTH", "4"))
MAX_HISTORY = int(os.environ.get("DIAGRAM_ENGINE_MAX_HISTORY", "100"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "DIAGRAM_ENGINE_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
    ).split(",")
    if origin.strip()
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None):
    """Set the root logger format and level (DIAGRAM_ENGINE_LOG_LEVEL by default)."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
