"""
ASGI entry point for Visitor Calendar Sync API.

Re-exports the FastAPI app from src/api/main.py for deployment.
"""

from src.api.main import app

__all__ = ["app"]
