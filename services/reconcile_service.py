"""
Payment reconciliation - the single writer of an account's payment state
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.errors import NotFoundError, ValidationError
from crud.user import UserRepository, normalize_email
from database_models import SUBSCRIPTION_ACTIVE, SUBSCRIPTION_CANCELLED

logger = logging.getLogger(__name__)

PAID = "paid"


@dataclass(frozen=True)
class PaymentUpdate:
    email: str
    status: str
    next_due_date: Optional[date] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "PaymentUpdate":
        """
        Validate a webhook body.

        Raises:
            ValidationError: If the body is not an object, `email` or `status`
                is missing, or `next_due_date` is not an ISO date
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("Payload must be a JSON object")

        email = payload.get("email")
        status = payload.get("status")
        if not email or not status or not isinstance(email, str) or not isinstance(status, str):
            raise ValidationError("Missing required fields: email, status")

        raw_due = payload.get("next_due_date")
        next_due_date = None
        if raw_due:
            try:
                # Accept full timestamps too, only the day matters
                next_due_date = date.fromisoformat(str(raw_due).strip()[:10])
            except ValueError as e:
                raise ValidationError(f"Invalid next_due_date: {raw_due}") from e

        return cls(email=normalize_email(email), status=status.strip(), next_due_date=next_due_date)


class PaymentReconciler:
    """
    Applies payment processor status reports to the stored account.

    Every report is a snapshot: replaying it leaves the same stored state.
    """

    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    async def reconcile(self, update: PaymentUpdate) -> str:
        """
        Persist the payment state described by `update`.

        Returns:
            Acknowledgement message

        Raises:
            NotFoundError: If no account exists for the email
            PersistenceError: If the write fails
        """
        logger.info(
            f"[STRIPE-WEBHOOK] Processing payment update: email={update.email} "
            f"status={update.status} next_due_date={update.next_due_date}"
        )

        user = await self.user_repo.get_user_by_email(update.email)
        if user is None:
            logger.warning(f"[STRIPE-WEBHOOK] User not found: {update.email}")
            raise NotFoundError("User not found")

        if update.status == PAID:
            await self.user_repo.update_payment_state(
                update.email,
                is_paying=True,
                subscription_status=SUBSCRIPTION_ACTIVE,
                next_due_date=update.next_due_date,
            )
            logger.info(f"[STRIPE-WEBHOOK] Marked {update.email} as paying")
        else:
            await self.user_repo.update_payment_state(
                update.email,
                is_paying=False,
                subscription_status=SUBSCRIPTION_CANCELLED,
            )
            logger.info(f"[STRIPE-WEBHOOK] Marked {update.email} as not paying")

        return "Payment status updated successfully"
