"""Failed-login lockout.

The lock lives in an explicit ``LoginLockout`` row. It is re-checked on each
login attempt and ends by itself once ``locked_until`` has passed; a
successful login clears the row.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from gradeflow.core.config import LOGIN_LOCKOUT, LOGIN_MAX_FAILURES
from gradeflow.models.login_lockout import LoginLockout
from gradeflow.services.state_machine import as_utc

logger = logging.getLogger(__name__)


def _key(email: str) -> str:
    return email.strip().lower()


def locked_until(db: Session, email: str, *, now: datetime | None = None) -> datetime | None:
    """End of the active lock for ``email``, or None when logins are allowed."""
    now = now or datetime.now(timezone.utc)
    record = db.get(LoginLockout, _key(email))
    if record is None or record.locked_until is None:
        return None
    until = as_utc(record.locked_until)
    return until if until > now else None


def record_failure(db: Session, email: str, *, now: datetime | None = None) -> LoginLockout:
    now = now or datetime.now(timezone.utc)
    record = db.get(LoginLockout, _key(email))
    if record is None:
        record = LoginLockout(email=_key(email), failed_attempts=0)
        db.add(record)

    if record.locked_until is not None and as_utc(record.locked_until) <= now:
        # previous lock expired; start counting again
        record.failed_attempts = 0
        record.locked_until = None

    record.failed_attempts += 1
    if record.failed_attempts >= LOGIN_MAX_FAILURES:
        record.locked_until = now + LOGIN_LOCKOUT
        logger.warning("login locked for %s until %s", record.email, record.locked_until)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return record


def clear(db: Session, email: str) -> None:
    record = db.get(LoginLockout, _key(email))
    if record is None:
        return
    db.delete(record)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
