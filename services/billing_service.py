"""
Billing Service - Stripe checkout, customer portal and subscription lookups
"""

import asyncio
import logging
from typing import Optional

import stripe

from backend.utils.errors import UpstreamError
from config.settings import settings

logger = logging.getLogger(__name__)


class BillingService:
    """
    Service class for the payment processor side of billing.
    Works with customer emails; the local account is only read by callers.
    """

    def __init__(self, api_key: Optional[str] = None, price_id: Optional[str] = None):
        """
        Args:
            api_key: Stripe secret key, defaults to STRIPE_SECRET_KEY
            price_id: Stripe price for the premium plan, defaults to STRIPE_PRICE_ID
        """
        self.api_key = api_key if api_key is not None else settings.stripe_secret_key
        self.price_id = price_id if price_id is not None else settings.stripe_price_id

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _find_customer_id(self, email: str) -> Optional[str]:
        customers = stripe.Customer.list(email=email, limit=1, api_key=self.api_key)
        if customers.data:
            return customers.data[0].id
        return None

    def _lookup_active_subscription(self, email: str) -> bool:
        customer_id = self._find_customer_id(email)
        if not customer_id:
            logger.info(f"No Stripe customer for {email}")
            return False
        subscriptions = stripe.Subscription.list(
            customer=customer_id,
            status="active",
            limit=1,
            api_key=self.api_key,
        )
        return bool(subscriptions.data)

    async def has_active_subscription(self, email: str) -> bool:
        """
        Ask Stripe whether `email` has an active subscription.

        Returns False without a network call when Stripe is not configured.

        Raises:
            UpstreamError: If any Stripe request fails
        """
        if not self.configured:
            logger.debug("STRIPE_SECRET_KEY is not set. Skipping subscription lookup.")
            return False

        try:
            return await asyncio.to_thread(self._lookup_active_subscription, email)
        except stripe.StripeError as e:
            raise UpstreamError(f"Stripe subscription lookup failed: {e}") from e

    async def create_checkout_session(self, email: str):
        """
        Create a Stripe Checkout session for the premium subscription.

        Returns:
            Normalized response: {"data": url, "is_error": False} or {"error": str(e), "is_error": True}
        """
        if not self.configured:
            logger.error("STRIPE_SECRET_KEY is not set. Cannot create checkout session.")
            return {"error": "STRIPE_SECRET_KEY is not set. Cannot create checkout session.", "is_error": True}

        if not self.price_id:
            logger.error("STRIPE_PRICE_ID is not set. Cannot create checkout session.")
            return {"error": "STRIPE_PRICE_ID is not set. Cannot create checkout session.", "is_error": True}

        def _create():
            customer_id = self._find_customer_id(email)
            if not customer_id:
                customer = stripe.Customer.create(
                    email=email,
                    metadata={"email": email},
                    api_key=self.api_key,
                )
                customer_id = customer.id

            frontend_url = settings.frontend_url or "http://localhost:5173"
            return stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{
                    "price": self.price_id,
                    "quantity": 1,
                }],
                mode="subscription",
                success_url=f"{frontend_url}/?checkout=success",
                cancel_url=f"{frontend_url}/?checkout=cancel",
                metadata={"email": email},
                api_key=self.api_key,
            )

        try:
            checkout_session = await asyncio.to_thread(_create)
            return {"data": checkout_session.url, "is_error": False}
        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session: {e}", exc_info=True)
            return {"error": str(e), "is_error": True}

    async def create_billing_portal_session(self, email: str):
        """
        Create a Stripe Billing Portal session for the customer behind `email`.

        Returns:
            Normalized response: {"data": url, "is_error": False} or {"error": str(e), "is_error": True}
        """
        if not self.configured:
            logger.error("STRIPE_SECRET_KEY is not set. Cannot create billing portal session.")
            return {"error": "STRIPE_SECRET_KEY is not set. Cannot create billing portal session.", "is_error": True}

        def _create():
            customer_id = self._find_customer_id(email)
            if not customer_id:
                return None
            frontend_url = settings.frontend_url or "http://localhost:5173"
            return stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=f"{frontend_url}/profile",
                api_key=self.api_key,
            )

        try:
            portal_session = await asyncio.to_thread(_create)
        except stripe.StripeError as e:
            logger.error(f"Failed to create billing portal session: {e}", exc_info=True)
            return {"error": str(e), "is_error": True}

        if portal_session is None:
            logger.warning(f"No Stripe customer for {email}. Cannot open billing portal.")
            return {"error": "No Stripe customer found for this account.", "is_error": True}
        return {"data": portal_session.url, "is_error": False}
