"""
Billing Router - payment webhook reconciliation and Stripe sessions
Webhook is defined FIRST to avoid middleware conflicts
"""

import hmac
import json
import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_email
from backend.utils.errors import AuthError, NotFoundError, PersistenceError, ValidationError
from backend.utils.responses import (
    ack_response,
    error_response,
    success_response,
    webhook_error_response,
)
from config.settings import settings
from database import get_db
from services.billing_service import BillingService
from services.reconcile_service import PaymentReconciler, PaymentUpdate

logger = logging.getLogger(__name__)

# Create billing router
billing_router = APIRouter(prefix="/api/billing", tags=["billing"])


def _check_webhook_secret(provided: Optional[str]) -> None:
    expected = settings.payment_webhook_secret
    if not expected:
        return
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise AuthError("Invalid webhook secret")


# WEBHOOK ENDPOINT - MUST BE DEFINED FIRST TO AVOID MIDDLEWARE CONFLICTS
@billing_router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_webhook_secret: Optional[str] = Header(None, alias="X-Webhook-Secret"),
    db: AsyncSession = Depends(get_db)
):
    """
    Apply a payment status report from the payment processor.

    Status codes let the caller tell bad data (400/404) from infrastructure
    trouble (500, retried by the caller).
    """
    logger.info("[STRIPE-WEBHOOK] Webhook received")

    try:
        _check_webhook_secret(x_webhook_secret)
    except AuthError as e:
        logger.warning(f"[STRIPE-WEBHOOK] Rejected: {e.message}")
        return webhook_error_response(e.message, e.status_code)

    try:
        try:
            payload = json.loads(await request.body() or b"null")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError("Request body must be valid JSON") from e
        update = PaymentUpdate.from_payload(payload)
    except ValidationError as e:
        logger.warning(f"[STRIPE-WEBHOOK] Invalid payload: {e.message}")
        return webhook_error_response(e.message, e.status_code)

    try:
        message = await PaymentReconciler(db).reconcile(update)
    except NotFoundError as e:
        return webhook_error_response(e.message, e.status_code)
    except PersistenceError as e:
        logger.error(f"[STRIPE-WEBHOOK] Error updating user {update.email}: {e.message}")
        return webhook_error_response(e.message, e.status_code)

    return ack_response(message)


@billing_router.post("/create-checkout-session")
async def create_checkout_session(email: str = Depends(get_current_email)):
    """
    Create a Stripe Checkout session for the signed-in user.

    Returns:
        JSON response with checkout session URL
    """
    result = await BillingService().create_checkout_session(email)
    if result.get("is_error"):
        return error_response("checkout_failed", message=result.get("error", "Unknown error"))
    return success_response({"url": result["data"]})


@billing_router.post("/portal")
async def create_billing_portal_session(email: str = Depends(get_current_email)):
    """
    Create a Stripe Billing Portal session for the signed-in user.

    Returns:
        JSON response with portal session URL
    """
    result = await BillingService().create_billing_portal_session(email)
    if result.get("is_error"):
        return error_response("portal_failed", message=result.get("error", "Unknown error"))
    return success_response({"url": result["data"]})
