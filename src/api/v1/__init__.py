"""
API v1 package.

Contains versioned API routes for registration, checkout return and subscriptions.
"""

from src.api.v1.routes import request_validation_handler, router

__all__ = ["request_validation_handler", "router"]
