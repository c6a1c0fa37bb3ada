"""API routes for the deployrun server."""

from deployrun.server.routes.deploy import router as deploy_router

__all__ = ["deploy_router"]
