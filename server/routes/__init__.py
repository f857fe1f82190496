"""API routes package."""

from server.routes.fragment_routes import router as fragment_router

__all__ = ["fragment_router"]
