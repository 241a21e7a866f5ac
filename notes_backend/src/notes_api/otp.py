"""One-time passcodes for email verification.

A challenge lives on the account row (code, expiry, issue time). Issuing a
new one overwrites the previous challenge.
"""

import math
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session
from structlog import get_logger

from notes_api.exceptions import (
    AlreadyVerifiedError,
    OtpExpiredError,
    OtpMismatchError,
    OtpNotFoundError,
    RateLimitedError,
)
from notes_api.mailer import OtpMailer
from notes_database.models import User, utcnow


logger = get_logger(__name__)

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Six-digit code drawn uniformly from [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


# PUBLIC_INTERFACE
def issue_otp(db: Session, user: User, mailer: OtpMailer, ttl_minutes: int = 10) -> None:
    """Store a fresh challenge on the account, then deliver it.

    The code is committed before delivery so a failed send can be retried
    with resend; delivery errors propagate as DeliveryError.
    """
    now = utcnow()
    code = generate_otp()
    user.otp_code = code
    user.otp_expires_at = now + timedelta(minutes=ttl_minutes)
    user.otp_sent_at = now
    db.commit()
    logger.info("otp_issued", user_id=user.id, expires_at=user.otp_expires_at.isoformat())
    mailer.send_otp(user.email, code, ttl_minutes)


# PUBLIC_INTERFACE
def verify_otp(db: Session, user: User, code: str, now: Optional[datetime] = None) -> User:
    """Check code against the pending challenge and mark the account verified.

    Raises:
        OtpNotFoundError: no challenge pending (or it was consumed concurrently).
        OtpExpiredError: the challenge expired; the account is left unverified.
        OtpMismatchError: wrong code.
    """
    now = now or utcnow()
    if not user.has_pending_otp:
        raise OtpNotFoundError()
    if now >= user.otp_expires_at:
        raise OtpExpiredError()
    if not secrets.compare_digest(user.otp_code.encode(), code.encode()):
        logger.info("otp_mismatch", user_id=user.id)
        raise OtpMismatchError()

    # Conditional on the code still being the one we checked, so a racing
    # resend or a second verify cannot also succeed.
    result = db.execute(
        update(User)
        .where(User.id == user.id, User.otp_code == code)
        .values(
            is_email_verified=True,
            otp_code=None,
            otp_expires_at=None,
            otp_sent_at=None,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise OtpNotFoundError()
    db.commit()
    db.refresh(user)
    logger.info("email_verified", user_id=user.id)
    return user


# PUBLIC_INTERFACE
def resend_otp(
    db: Session,
    user: User,
    mailer: OtpMailer,
    ttl_minutes: int = 10,
    cooldown_seconds: int = 0,
) -> None:
    """Replace any pending challenge with a new one unless the account is verified."""
    if user.is_email_verified:
        raise AlreadyVerifiedError()
    if cooldown_seconds and user.otp_sent_at is not None:
        elapsed = (utcnow() - user.otp_sent_at).total_seconds()
        if elapsed < cooldown_seconds:
            retry_after = math.ceil(cooldown_seconds - elapsed)
            raise RateLimitedError(
                f"Please wait {retry_after} seconds before requesting a new OTP.",
                details={"retryAfter": retry_after},
                headers={"Retry-After": str(retry_after)},
            )
    issue_otp(db, user, mailer, ttl_minutes)
