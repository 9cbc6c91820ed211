from fastapi import APIRouter

from brand_monitor.api.v1.auth import router as auth_router
from brand_monitor.api.v1.monitor import router as monitor_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(auth_router)
api_v1_router.include_router(monitor_router)
