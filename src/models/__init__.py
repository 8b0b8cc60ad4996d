"""
SQLAlchemy models for Visitor Calendar Sync.

Exports all database models and ensures Alembic can discover them for
migrations.
"""

from src.models.base import Base, SoftDeleteModel
from src.models.tokens import StaffCalendarToken

__all__ = [
    "Base",
    "SoftDeleteModel",
    "StaffCalendarToken",
]
