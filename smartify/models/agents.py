"""Agent (store staff) accounts."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow


class Agent(Base):
    __tablename__ = "agents"
    id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255))
    store_id = Column(Integer, ForeignKey("stores.id"))
    role = Column(String(20), default="agent", nullable=False)  # agent | admin
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)

    store = relationship("Store", foreign_keys=[store_id])
