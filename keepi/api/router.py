"""Top-level API router."""

from fastapi import APIRouter

from keepi.api.routes.entries import router as entries_router
from keepi.api.routes.entry_categories import router as entry_categories_router
from keepi.api.routes.exports import router as exports_router
from keepi.api.routes.health import router as health_router
from keepi.api.routes.projects import router as projects_router
from keepi.api.routes.user_projects import router as user_projects_router
from keepi.api.routes.users import router as users_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router)
api_router.include_router(projects_router)
api_router.include_router(user_projects_router)
api_router.include_router(entries_router)
api_router.include_router(entry_categories_router)
api_router.include_router(exports_router)
