"""Email OTP verification rows."""

from sqlalchemy import Boolean, Column, Index, Integer, String

from .base import Base, UTCDateTime, utcnow


class OtpVerification(Base):
    __tablename__ = "otp_verifications"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False)
    otp_code = Column(String(10), nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    superseded = Column(Boolean, default=False, nullable=False)  # replaced by a newer send
    created_at = Column(UTCDateTime, default=utcnow)

    __table_args__ = (Index("ix_otp_email_live", "email", "verified", "superseded"),)
