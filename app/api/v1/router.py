from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.auth import router as auth_router

# bids and delivery carry fixed sub-paths, load them before the project CRUD
from app.api.v1.bids import router as bids_router
from app.api.v1.delivery import router as delivery_router
from app.api.v1.projects import router as projects_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])

# ------------------------------------------------------------------
# MARKETPLACE
# ------------------------------------------------------------------
v1_router.include_router(bids_router, tags=["bids"])
v1_router.include_router(delivery_router, tags=["delivery"])
v1_router.include_router(projects_router, tags=["projects"])
