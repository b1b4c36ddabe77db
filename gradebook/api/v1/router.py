from fastapi import APIRouter
from gradebook.api.v1.endpoints import announcements, maintenance

api_router = APIRouter()

api_router.include_router(announcements.router, prefix="/announcements", tags=["Announcements"])
api_router.include_router(maintenance.router, prefix="/system/maintenance", tags=["System Maintenance"])
