"""
Server-rendered UI components for the admin console.
"""

from .base import Component
from .layout import Layout
from .navigation import MENU_ITEMS, MenuItem, Navigation
from .alert import Alert

__all__ = ["Component", "Layout", "Navigation", "MenuItem", "MENU_ITEMS", "Alert"]
