"""
Premium status resolution: trial countdown plus payment state
"""
import asyncio
import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.errors import NotFoundError, UpstreamError
from config.settings import settings
from crud.user import UserRepository, normalize_email
from database_models import utcnow
from services.billing_service import BillingService
from services.trial_service import compute_trial_window, derive_status, is_subscription_expired

logger = logging.getLogger(__name__)

SubscriptionLookup = Callable[[str], Awaitable[bool]]


@dataclass(frozen=True)
class ResolvedAccessStatus:
    is_premium: bool
    status: str
    trial_days_left: int
    trial_expired: bool
    is_paying: bool
    next_due_date: Optional[date]

    def to_payload(self) -> dict:
        """JSON body served by the status endpoint."""
        data = asdict(self)
        return {
            "isPremium": data["is_premium"],
            "status": data["status"],
            "trialDaysLeft": data["trial_days_left"],
            "trialExpired": data["trial_expired"],
            "isPaying": data["is_paying"],
            "nextDueDate": self.next_due_date.isoformat() if self.next_due_date else None,
        }


class PremiumStatusService:
    """
    Derives a user's access tier. Read-only: never writes the account.
    """

    def __init__(
        self,
        db: AsyncSession,
        subscription_lookup: Optional[SubscriptionLookup] = None,
        lookup_timeout: Optional[float] = None,
    ):
        """
        Args:
            db: AsyncSession instance for database operations
            subscription_lookup: Async callable answering "does this email have an
                active processor subscription"; defaults to Stripe
            lookup_timeout: Seconds to wait for that answer before giving up
        """
        self.user_repo = UserRepository(db)
        self.subscription_lookup = subscription_lookup or BillingService().has_active_subscription
        self.lookup_timeout = (
            lookup_timeout if lookup_timeout is not None else settings.premium_lookup_timeout_seconds
        )

    async def _external_active_subscription(self, email: str) -> bool:
        try:
            return await asyncio.wait_for(self.subscription_lookup(email), timeout=self.lookup_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[CHECK-PREMIUM] Processor lookup timed out after {self.lookup_timeout}s for {email}")
        except UpstreamError as e:
            logger.warning(f"[CHECK-PREMIUM] Processor lookup failed for {email}: {e}")
        except Exception as e:
            logger.warning(f"[CHECK-PREMIUM] Unexpected processor lookup error for {email}: {e}", exc_info=True)
        return False

    async def resolve_status(self, email: str, now: Optional[datetime] = None) -> ResolvedAccessStatus:
        """
        Compute the current access tier for `email`.

        Raises:
            NotFoundError: If no account exists for the email
            PersistenceError: If the account could not be read
        """
        email = normalize_email(email)
        now = now or utcnow()

        user = await self.user_repo.get_user_by_email(email)
        if user is None:
            logger.info(f"[CHECK-PREMIUM] No account for {email}")
            raise NotFoundError(f"No account found for {email}")

        trial = compute_trial_window(user.trial_start_date, now)
        logger.info(
            f"[CHECK-PREMIUM] Trial calculation for {email}: "
            f"days_left={trial.trial_days_left} expired={trial.trial_expired}"
        )

        is_paying = bool(user.is_paying)
        paid_access = is_paying and not is_subscription_expired(user.next_due_date, now)

        # The processor is only asked when local state does not already grant access
        external_active = False
        if not paid_access:
            external_active = await self._external_active_subscription(email)

        has_premium_access = paid_access or external_active
        status = derive_status(has_premium_access, trial.trial_expired)

        logger.info(
            f"[CHECK-PREMIUM] Final status for {email}: status={status} "
            f"is_paying={is_paying} external_active={external_active}"
        )

        return ResolvedAccessStatus(
            is_premium=has_premium_access,
            status=status,
            trial_days_left=trial.trial_days_left,
            trial_expired=trial.trial_expired,
            is_paying=is_paying,
            next_due_date=user.next_due_date,
        )
