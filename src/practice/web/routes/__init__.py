"""Route handlers for the Web API."""

from practice.web.routes.content import router as content_router
from practice.web.routes.health import router as health_router
from practice.web.routes.levels import router as levels_router
from practice.web.routes.practice import router as practice_router

__all__ = [
    "content_router",
    "health_router",
    "levels_router",
    "practice_router",
]
