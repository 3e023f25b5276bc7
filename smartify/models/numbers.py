"""MSISDN pool — phone numbers available for assignment."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow

# available → assigned (once). "reserved" is declared for the schema but no
# operation moves a number into it.
NUMBER_STATUSES = ("available", "reserved", "assigned")


class AvailableNumber(Base):
    __tablename__ = "available_numbers"
    id = Column(Integer, primary_key=True)
    msisdn = Column(String(20), unique=True, nullable=False)
    status = Column(String(20), default="available", nullable=False)
    assigned_to = Column(Integer, ForeignKey("applications.id"))
    assigned_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    application = relationship("Application", foreign_keys=[assigned_to])

    __table_args__ = (Index("ix_available_numbers_status", "status", "id"),)
