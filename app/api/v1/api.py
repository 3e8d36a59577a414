from fastapi import APIRouter

from app.api.v1.endpoints import admin, generators, queue, webhook

# Paths registered with the messaging platform; mounted without a version prefix
ingestion_router = APIRouter()
ingestion_router.include_router(
    webhook.router, tags=["webhook"]
)
ingestion_router.include_router(
    queue.router, prefix="/queue", tags=["queue"]
)

api_router = APIRouter()
api_router.include_router(
    generators.router, prefix="/generators", tags=["generators"]
)
api_router.include_router(
    admin.router, prefix="/admin", tags=["admin"]
)
