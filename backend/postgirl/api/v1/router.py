from fastapi import APIRouter

from postgirl.api.v1 import import_export

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(import_export.router, prefix="/import-export", tags=["Import/Export"])
