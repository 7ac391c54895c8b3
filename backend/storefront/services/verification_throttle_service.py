# Overview: Lockout for repeated failed mobile verification code checks.

"""
Verification Throttling Service

WHY: A 6-digit code is easy to guess given enough tries. After too many
failed checks for one mobile number, further checks are refused for a while.

RULES:
- Failures are counted per mobile number within LOCKOUT_WINDOW
- MAX_FAILED_ATTEMPTS failures lock the number for LOCKOUT_DURATION,
  measured from the most recent failure
- A successful check starts the count again
- Attempts live in verification_attempts
"""

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import VerificationAttempt
from ..time_utils import as_naive_utc, utcnow


MAX_FAILED_ATTEMPTS = 5
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)


def _failures_since(mobile_number: str, cutoff):
    query = db.session.query(VerificationAttempt).filter(
        VerificationAttempt.mobile_number == mobile_number,
        VerificationAttempt.succeeded.is_(False),
        VerificationAttempt.occurred_at >= cutoff,
    )
    last_success = (
        db.session.query(db.func.max(VerificationAttempt.occurred_at))
        .filter(
            VerificationAttempt.mobile_number == mobile_number,
            VerificationAttempt.succeeded.is_(True),
        )
        .scalar()
    )
    if last_success is not None:
        query = query.filter(VerificationAttempt.occurred_at > last_success)
    return query


def get_recent_failed_attempts(mobile_number: str) -> int:
    """Failed checks within LOCKOUT_WINDOW since the last successful one."""
    return _failures_since(mobile_number, utcnow() - LOCKOUT_WINDOW).count()


def is_locked(mobile_number: str) -> tuple[bool, int | None]:
    """
    Returns:
    - (True, seconds_remaining) while the number is locked
    - (False, None) otherwise
    """
    recent = _failures_since(mobile_number, utcnow() - LOCKOUT_WINDOW)
    if recent.count() < MAX_FAILED_ATTEMPTS:
        return False, None

    most_recent = recent.order_by(VerificationAttempt.occurred_at.desc()).first()
    lockout_end = as_naive_utc(most_recent.occurred_at) + LOCKOUT_DURATION
    now = utcnow()
    if now < lockout_end:
        return True, int((lockout_end - now).total_seconds())
    return False, None


def _record(mobile_number: str, checked_by_user_id: int | None, succeeded: bool) -> None:
    db.session.add(VerificationAttempt(
        mobile_number=mobile_number,
        checked_by_user_id=checked_by_user_id,
        succeeded=succeeded,
        occurred_at=utcnow(),
    ))
    db.session.commit()


def record_failed_attempt(mobile_number: str, checked_by_user_id: int | None = None) -> int:
    """Record a failed check and return the number of recent failures."""
    _record(mobile_number, checked_by_user_id, False)
    return get_recent_failed_attempts(mobile_number)


def record_successful_attempt(mobile_number: str, checked_by_user_id: int | None = None) -> None:
    _record(mobile_number, checked_by_user_id, True)


def get_lockout_status(mobile_number: str) -> dict:
    failed_count = get_recent_failed_attempts(mobile_number)
    locked, seconds_remaining = is_locked(mobile_number)
    return {
        "locked": locked,
        "failed_attempts": failed_count,
        "max_attempts": MAX_FAILED_ATTEMPTS,
        "seconds_until_unlock": seconds_remaining,
    }
