import logging

from fastapi import APIRouter

from app.app_proxy.route import router as proxy_router
from app.search.routes import router as search_router
from app.storage.routes import router as storage_router
from app.vars import API_BASE_PATH

router = APIRouter(prefix=API_BASE_PATH)

logger = logging.getLogger("uvicorn.error")

router.include_router(proxy_router)
router.include_router(search_router)
router.include_router(storage_router)

logger.info(f"Serving API under {API_BASE_PATH or '/'}")
