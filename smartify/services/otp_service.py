"""Email OTP verification — identity gate for the customer wizard.

Exactly one live code exists per email: sending a new code supersedes every
earlier unverified row in the same transaction. Verification only ever looks
at that live row.

Delivery is out of scope. In dev mode the fixed code from settings is used
and echoed back in the response; otherwise a random six-digit code is
generated and written to the debug log.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import settings
from ..database import atomic
from ..exceptions import ValidationFailed
from ..models import Application, OtpVerification

log = logging.getLogger("smartify.otp")


def _generate_code() -> str:
    if settings.dev_mode:
        return settings.dev_otp_code
    return f"{secrets.randbelow(1_000_000):06d}"


def send_otp(db: Session, email: str) -> dict:
    """Issue a fresh code for email, superseding any earlier unverified ones."""
    code = _generate_code()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.otp_expiry_minutes)

    with atomic(db):
        superseded = (
            db.query(OtpVerification)
            .filter(
                OtpVerification.email == email,
                OtpVerification.verified.is_(False),
                OtpVerification.superseded.is_(False),
            )
            .update({"superseded": True}, synchronize_session=False)
        )
        db.add(OtpVerification(email=email, otp_code=code, expires_at=expires_at))

    log.info("OTP sent to %s (superseded %d earlier code(s))", email, superseded)
    if settings.dev_mode:
        return {"success": True, "message": f"OTP sent (dev mode: {code})"}
    log.debug("OTP for %s: %s", email, code)
    return {"success": True, "message": "OTP sent to your email"}


def _live_otp(db: Session, email: str) -> OtpVerification | None:
    return (
        db.query(OtpVerification)
        .filter(
            OtpVerification.email == email,
            OtpVerification.verified.is_(False),
            OtpVerification.superseded.is_(False),
        )
        .order_by(OtpVerification.created_at.desc(), OtpVerification.id.desc())
        .with_for_update()
        .populate_existing()
        .first()
    )


def _count_attempt(db: Session, otp_id: int) -> bool:
    """Add one failed attempt unless the cap is already reached."""
    counted = (
        db.query(OtpVerification)
        .filter(
            OtpVerification.id == otp_id,
            OtpVerification.attempts < settings.otp_max_attempts,
        )
        .update({"attempts": OtpVerification.attempts + 1}, synchronize_session=False)
    )
    return counted == 1


def verify_otp(db: Session, email: str, otp_code: str) -> dict:
    """Check the live code for email.

    Raises ValidationFailed when there is no live code, it has expired, the
    attempt cap is exhausted, or the code does not match. A mismatch is
    counted against the cap and committed before raising.
    """
    mismatch = False
    with atomic(db):
        otp = _live_otp(db, email)
        if otp is None:
            raise ValidationFailed("No pending OTP for this email. Request a new code.")

        if otp.expires_at <= datetime.now(timezone.utc):
            raise ValidationFailed("OTP has expired. Request a new code.")

        if otp.attempts >= settings.otp_max_attempts:
            raise ValidationFailed("Too many failed attempts. Request a new code.")

        if not secrets.compare_digest(otp.otp_code.encode("utf-8"), otp_code.encode("utf-8")):
            if not _count_attempt(db, otp.id):
                raise ValidationFailed("Too many failed attempts. Request a new code.")
            mismatch = True
        else:
            otp.verified = True
            flagged = (
                db.query(Application)
                .filter(
                    Application.email == email,
                    Application.status == "pending",
                    Application.email_verified.is_(False),
                )
                .update({"email_verified": True}, synchronize_session=False)
            )

    if mismatch:
        db.refresh(otp)
        remaining = max(settings.otp_max_attempts - otp.attempts, 0)
        log.info("OTP mismatch for %s (%d attempt(s) left)", email, remaining)
        raise ValidationFailed("Invalid OTP code", attempts_remaining=remaining)

    log.info("OTP verified for %s (%d pending application(s) flagged)", email, flagged)
    return {"success": True, "message": "Email verified"}


def email_is_verified(db: Session, email: str) -> bool:
    """True once any code for this email has been verified."""
    return (
        db.query(OtpVerification.id)
        .filter(OtpVerification.email == email, OtpVerification.verified.is_(True))
        .first()
        is not None
    )
