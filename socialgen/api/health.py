"""
Health endpoints for the socialgen API.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from socialgen.core.database import check_connection

logger = logging.getLogger("socialgen")

root_router = APIRouter(tags=["health"])


@root_router.get("/healthz")
def healthz():
    """Liveness plus a database probe. 503 when the store is unreachable."""
    if not check_connection():
        logger.warning("[healthz] database unreachable")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
    return {"status": "ok"}
