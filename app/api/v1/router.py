from fastapi import APIRouter

from app.api.v1.endpoints.health import router as health_router
from app.api.v1.endpoints.listings import router as listings_router
from app.api.v1.endpoints.uploads import router as uploads_router
from app.api.v1.endpoints.media import router as media_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(listings_router, tags=["listings"])
router.include_router(uploads_router, tags=["uploads"])
router.include_router(media_router, tags=["media"])
