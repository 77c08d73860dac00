"""API routes for the Move Store API."""

from .records import create_resource_router, get_store_factory, resource_routers

__all__ = [
    "create_resource_router",
    "get_store_factory",
    "resource_routers"
]
