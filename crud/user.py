"""
UserRepository for database operations on the User model
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.errors import PersistenceError
from database_models import User, SUBSCRIPTION_TRIAL, utcnow

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address for lookups."""
    return (email or "").strip().lower()


class UserRepository:
    """
    Repository class for User database operations.
    Encapsulates all database logic for the User model and turns driver
    failures into PersistenceError.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a user by email address.

        Args:
            email: User's email address (normalized before the query)

        Returns:
            User object if found, None otherwise
        """
        try:
            result = await self.db.execute(
                select(User).where(User.email == normalize_email(email))
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load user {email}: {e}")
            raise PersistenceError(f"Failed to load user: {e}") from e
        return result.scalar_one_or_none()

    async def create_user(self, email: str, trial_start_date: Optional[datetime] = None) -> User:
        """
        Create an account at the start of its trial.

        The trial start is fixed here and never updated afterwards.
        """
        user = User(
            email=normalize_email(email),
            trial_start_date=trial_start_date or utcnow(),
            is_paying=False,
            subscription_status=SUBSCRIPTION_TRIAL,
        )
        try:
            self.db.add(user)
            await self.db.flush()
            await self.db.refresh(user)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create user {email}: {e}")
            raise PersistenceError(f"Failed to create user: {e}") from e
        return user

    async def update_payment_state(
        self,
        email: str,
        is_paying: bool,
        subscription_status: str,
        next_due_date: Optional[date] = None,
    ) -> None:
        """
        Write the payment snapshot for one account in a single UPDATE.

        `next_due_date` is left untouched when None. Commits so the write is
        durable before the webhook is acknowledged.
        """
        values = {
            "is_paying": is_paying,
            "subscription_status": subscription_status,
            "updated_at": utcnow(),
        }
        if next_due_date is not None:
            values["next_due_date"] = next_due_date

        try:
            await self.db.execute(
                update(User)
                .where(User.email == normalize_email(email))
                .values(**values)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to update payment state for {email}: {e}")
            raise PersistenceError(f"Failed to update payment state: {e}") from e
