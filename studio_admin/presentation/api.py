from fastapi import APIRouter

from studio_admin.presentation.routers.v1.admin import router as admin_router
from studio_admin.presentation.routes.health import router as health_router

api = APIRouter()

# Add all v1 routers here
routers = (admin_router,)
for router in routers:
    api.include_router(router, prefix="/v1")

api.include_router(health_router)
