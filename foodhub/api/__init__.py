"""
API routers, one per route group.
"""

from foodhub.api import admin, auth, customer, restaurant

__all__ = ["admin", "auth", "customer", "restaurant"]
