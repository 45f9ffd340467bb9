"""
Premium Router - access status resolution for the signed-in user
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth_utils import email_from_authorization
from backend.utils.errors import AccessError, AuthError
from backend.utils.responses import safe_default_response
from database import get_db
from services.premium_service import PremiumStatusService

logger = logging.getLogger(__name__)

premium_router = APIRouter(prefix="/api/premium", tags=["premium"])


def get_premium_status_service(db: AsyncSession = Depends(get_db)) -> PremiumStatusService:
    return PremiumStatusService(db)


@premium_router.get("/status")
async def check_premium_status(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    service: PremiumStatusService = Depends(get_premium_status_service),
):
    """
    Resolve the caller's access tier.

    Failures still return the fail-closed payload so the client never hangs,
    with `resolutionError` telling "resolved to free" apart from "could not
    resolve".
    """
    try:
        email = email_from_authorization(authorization)
    except AuthError as e:
        logger.warning(f"[CHECK-PREMIUM] Authentication failed: {e.message}")
        return safe_default_response(e.message, e.code, status=e.status_code)

    try:
        resolved = await service.resolve_status(email)
    except AccessError as e:
        logger.error(f"[CHECK-PREMIUM] Resolution failed for {email}: {e.message}")
        return safe_default_response(e.message, e.code)
    except Exception as e:
        logger.error(f"[CHECK-PREMIUM] Unexpected error for {email}: {e}", exc_info=True)
        return safe_default_response("Internal Server Error", "internal_error", status=500)

    return JSONResponse(status_code=200, content=resolved.to_payload())
