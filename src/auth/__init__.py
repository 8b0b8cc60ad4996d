"""
Calendar token persistence for Visitor Calendar Sync.

Staff members authorize the app to write to their own calendars; their
tokens are stored here between sync calls.
"""

from src.auth.token_storage import (
    get_staff_token,
    list_connected_providers,
    save_staff_token,
    delete_staff_token,
    load_token_blob,
)

__all__ = [
    "get_staff_token",
    "list_connected_providers",
    "save_staff_token",
    "delete_staff_token",
    "load_token_blob",
]
