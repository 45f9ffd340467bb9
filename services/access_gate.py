"""
Client-side access gate

`should_block_access` is the pure decision. `AccessGate` is the component
that owns the latest resolved status for the signed-in identity and asks the
status endpoint again only when that identity changes.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional, Union

import httpx

from database_models import utcnow
from services.trial_service import (
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    STATUS_FREE,
    TRIAL_DAYS,
    due_date_cutoff,
    trial_status_message,
)

logger = logging.getLogger(__name__)

STATUS_PATH = "/api/premium/status"


def _as_date(value: Union[date, str, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def should_block_access(
    status: str,
    is_paying: bool,
    next_due_date: Union[date, str, None],
    now: Optional[datetime] = None,
) -> bool:
    """
    Decide whether app usage is blocked.

    Only an expired trial blocks, and only when no payment is recorded or the
    recorded payment's due date has passed.
    """
    if status in (STATUS_ACTIVE, STATUS_FREE):
        return False

    if status == STATUS_EXPIRED:
        if not is_paying:
            return True
        due = _as_date(next_due_date)
        if due is not None and (now or utcnow()) > due_date_cutoff(due):
            return True

    return False


@dataclass
class PremiumState:
    is_premium: bool = False
    status: str = STATUS_FREE
    trial_days_left: int = TRIAL_DAYS
    trial_expired: bool = False
    is_paying: bool = False
    next_due_date: Optional[str] = None
    loading: bool = True
    error: Optional[str] = field(default=None)

    @classmethod
    def from_payload(cls, data: dict) -> "PremiumState":
        return cls(
            is_premium=bool(data.get("isPremium")),
            status=data.get("status") or STATUS_FREE,
            trial_days_left=int(data.get("trialDaysLeft") or 0),
            trial_expired=bool(data.get("trialExpired")),
            is_paying=bool(data.get("isPaying")),
            next_due_date=data.get("nextDueDate"),
            loading=False,
            error=data.get("resolutionError") or data.get("error"),
        )


class PremiumStatusClient:
    """Calls the status endpoint with the caller's bearer token."""

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def fetch_status(self, token: str) -> dict:
        """
        Raises:
            httpx.HTTPError: On transport failure or a non-2xx response
            ValueError: If the body is not JSON
        """
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            response = await client.get(STATUS_PATH, headers={"Authorization": f"Bearer {token}"})
            response.raise_for_status()
            return response.json()


class AccessGate:
    """
    Holds the resolved status for one identity.

    While the first resolution is pending nothing is blocked, so a block
    screen never flashes before data arrives.
    """

    def __init__(self, client: PremiumStatusClient):
        self.client = client
        self.email: Optional[str] = None
        self.token: Optional[str] = None
        self.state = PremiumState()

    async def set_identity(self, email: Optional[str], token: Optional[str]) -> PremiumState:
        """Resolve again only when the signed-in email changes."""
        if email == self.email:
            self.token = token
            return self.state

        self.email = email
        self.token = token
        self.state = PremiumState()
        return await self.refresh()

    async def refresh(self) -> PremiumState:
        email, token = self.email, self.token
        if not email or not token:
            self.state = replace(self.state, loading=False, is_premium=False)
            return self.state

        try:
            data = await self.client.fetch_status(token)
            if not isinstance(data, dict):
                raise ValueError(f"Unexpected status payload: {type(data).__name__}")
            resolved = PremiumState.from_payload(data)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            # ValueError also covers a 200 body that is not JSON
            if self.email != email:
                logger.info(f"Dropping failed premium status for {email}, identity changed")
                return self.state
            logger.error(f"Error checking premium status for {email}: {e}")
            self.state = replace(self.state, loading=False, is_premium=False, error=str(e))
            return self.state

        if self.email != email:
            logger.info(f"Dropping stale premium status for {email}, identity changed")
            return self.state

        self.state = resolved
        return self.state

    def should_block(self, now: Optional[datetime] = None) -> bool:
        if self.state.loading:
            return False
        return should_block_access(self.state.status, self.state.is_paying, self.state.next_due_date, now)

    @property
    def status_message(self) -> str:
        return trial_status_message(self.state.status, self.state.trial_days_left)
