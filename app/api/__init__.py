"""API layer module.

Contains FastAPI routers and response schemas.
"""

from app.api.health import router as health_router
from app.api.search import router as search_router

__all__ = [
    "health_router",
    "search_router",
]
