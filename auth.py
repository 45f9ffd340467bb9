"""
Authentication dependencies
"""

import logging
from typing import Optional

from fastapi import Header

from auth_utils import email_from_authorization

logger = logging.getLogger(__name__)


async def get_current_email(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    """
    Dependency resolving the caller's email from the bearer token.

    Raises AuthError; routers decide how that is rendered.
    """
    email = email_from_authorization(authorization)
    logger.info(f"User authenticated: {email}")
    return email
