from fastapi import APIRouter

from app.api.v1 import magic_link, profiles, responses, surveys

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(magic_link.router)
api_router.include_router(surveys.router)
api_router.include_router(responses.router)
api_router.include_router(profiles.router)
