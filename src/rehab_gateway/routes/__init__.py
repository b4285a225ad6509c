"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from rehab_gateway.routes.chat import router as chat_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(chat_router, prefix=API_PREFIX)
