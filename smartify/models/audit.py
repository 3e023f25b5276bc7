"""Append-only audit trail of state-changing actions on applications."""

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(Integer, primary_key=True)
    application_id = Column(Integer, ForeignKey("applications.id"))
    agent_id = Column(Integer, ForeignKey("agents.id"))  # NULL for customer actions
    action = Column(String(100), nullable=False)
    changes = Column(JSON, default=dict)
    ip_address = Column(String(64))
    created_at = Column(UTCDateTime, default=utcnow)

    agent = relationship("Agent", foreign_keys=[agent_id])

    __table_args__ = (
        Index("ix_audit_logs_app_created", "application_id", "created_at"),
        Index("ix_audit_logs_agent", "agent_id"),
    )
