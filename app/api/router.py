from fastapi import APIRouter

from app.api.relay import router as relay_router

api_router = APIRouter(prefix="/api")
api_router.include_router(relay_router)
