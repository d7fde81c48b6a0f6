"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.production_tasks import router as production_tasks_router
from routes.production_planning import router as production_planning_router

__all__ = [
    "production_tasks_router",
    "production_planning_router",
]
