"""
Trial window arithmetic for the fixed 7-day free trial
"""
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional


TRIAL_DAYS = 7

STATUS_FREE = "free"
STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"


@dataclass(frozen=True)
class TrialWindow:
    days_since_start: int
    trial_days_left: int
    trial_expired: bool


def compute_trial_window(trial_start_date: datetime, now: datetime) -> TrialWindow:
    """
    Work out where `now` falls in the trial that began at `trial_start_date`.

    Days are whole elapsed days (floor). The trial is over once seven full
    days have passed; until then the days left count down from 7.

    Args:
        trial_start_date: Naive UTC timestamp the account was created at
        now: Naive UTC timestamp to evaluate at

    Returns:
        TrialWindow for that instant
    """
    # Clock skew can put the start slightly in the future
    days_since_start = max(0, (now - trial_start_date).days)
    return TrialWindow(
        days_since_start=days_since_start,
        trial_days_left=max(0, TRIAL_DAYS - days_since_start),
        trial_expired=days_since_start >= TRIAL_DAYS,
    )


def due_date_cutoff(next_due_date: date) -> datetime:
    # A due date is reached at midnight UTC of that day
    return datetime.combine(next_due_date, time.min)


def is_subscription_expired(next_due_date: Optional[date], now: datetime) -> bool:
    """True once `now` is past a recorded due date. No due date never expires."""
    if next_due_date is None:
        return False
    return now > due_date_cutoff(next_due_date)


def derive_status(has_premium_access: bool, trial_expired: bool) -> str:
    """
    Access tier precedence: premium, then trial exhaustion, then free.

    A paying user past the trial is active, never expired.
    """
    if has_premium_access:
        return STATUS_ACTIVE
    if trial_expired:
        return STATUS_EXPIRED
    return STATUS_FREE


def trial_status_message(status: str, trial_days_left: int) -> str:
    if status == STATUS_EXPIRED:
        return "Trial expired"
    if status == STATUS_ACTIVE:
        return "Premium Active"
    if trial_days_left == 1:
        return "1 day free trial"
    return f"{trial_days_left} days free trial"
