from fastapi import APIRouter

from pantry_chef.app.api.routes import recipes, videos

api_router = APIRouter()
api_router.include_router(recipes.router)
api_router.include_router(videos.router)
