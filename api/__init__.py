"""
HTTP API for the checkout service.

A single FastAPI application exposing:
- Cart and checkout endpoints for customers
- Order tracking, status and payment updates
- Loyalty balance and redemptions
- Delivery slots and bulk menu import for vendors
"""

from api.main import app

__all__ = ["app"]
