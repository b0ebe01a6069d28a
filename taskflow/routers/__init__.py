"""API routers."""

from taskflow.routers.todos import router as todos_router
from taskflow.routers.user import router as user_router

__all__ = ["user_router", "todos_router"]
