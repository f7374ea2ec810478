from fastapi import APIRouter

from mealcraft.app.api.routes import catalog, recipes, sessions

api_router = APIRouter()
api_router.include_router(sessions.router)
api_router.include_router(recipes.router)
api_router.include_router(catalog.router)
