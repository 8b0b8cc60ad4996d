"""
Visitor Calendar Sync API module.

Provides FastAPI HTTP endpoints for connecting staff calendars.
"""

from src.api.main import app, run_server

__all__ = ["app", "run_server"]
