"""
API v1 package.

Contains versioned API routes for event registrations and orders.
"""

from src.api.v1.routes import router

__all__ = ["router"]
