from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime
from datetime import datetime, timezone
from database import Base


SUBSCRIPTION_TRIAL = "trial"
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_CANCELLED = "cancelled"
SUBSCRIPTION_EXPIRED = "expired"


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every stored datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """
    Account record owned by the managed backend.

    Column names are a schema contract shared with the rest of the
    application. `is_paying` and `next_due_date` are written only by the
    payment reconciler.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    trial_start_date = Column(DateTime, default=utcnow, nullable=False)
    is_paying = Column(Boolean, default=False, nullable=False)
    next_due_date = Column(Date, nullable=True)
    subscription_status = Column(String, default=SUBSCRIPTION_TRIAL, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
