"""Audit log — append-only record of state-changing actions on an application.

Entries are written inside the caller's transaction so an audit row exists
if and only if the change it describes was committed. Nothing here updates
or deletes a row.

Usage:
    audit_service.record(db, app.id, "application_verified",
                         {"status": "verified"}, agent_id=agent.id, ip_address=ip)
"""

import logging

from sqlalchemy.orm import Session

from ..models import AuditLog

log = logging.getLogger("smartify.audit")


def record(
    db: Session,
    application_id: int,
    action: str,
    changes: dict | None = None,
    agent_id: int | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """Add an audit entry to the session. The caller commits."""
    entry = AuditLog(
        application_id=application_id,
        agent_id=agent_id,
        action=action,
        changes=changes or {},
        ip_address=ip_address,
    )
    db.add(entry)
    log.info("Audit %s app=%s agent=%s", action, application_id, agent_id)
    return entry


def trail_for_application(db: Session, application_id: int) -> list[AuditLog]:
    """Audit entries for one application, oldest first."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.application_id == application_id)
        .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        .all()
    )


def audit_to_dict(entry: AuditLog) -> dict:
    return {
        "id": entry.id,
        "application_id": entry.application_id,
        "agent_id": entry.agent_id,
        "agent_name": entry.agent.full_name if entry.agent else None,
        "action": entry.action,
        "changes": entry.changes or {},
        "ip_address": entry.ip_address,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }
