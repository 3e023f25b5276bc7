"""MSISDN ledger — the pool of phone numbers and their one-time assignment.

A number moves available → assigned exactly once and never comes back;
there is no release path, including when its application is rejected.

Assignment is a single transaction: the number flip (a conditional UPDATE
on status = 'available'), the application's assigned_number write and the
audit entry commit together or not at all.
"""

import logging

from sqlalchemy.orm import Session

from ..config import settings
from ..database import atomic
from ..exceptions import Conflict, Forbidden, InvalidState, NotFound
from ..models import Application, AvailableNumber
from ..models.base import utcnow
from . import audit_service

log = logging.getLogger("smartify.numbers")


def clamp_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return settings.msisdn_default_limit
    return min(limit, settings.msisdn_max_limit)


def list_available(db: Session, limit: int | None = None) -> list[AvailableNumber]:
    """Up to limit available numbers in insertion order."""
    return (
        db.query(AvailableNumber)
        .filter(AvailableNumber.status == "available")
        .order_by(AvailableNumber.id.asc())
        .limit(clamp_limit(limit))
        .all()
    )


def get_number(db: Session, number_id: int) -> AvailableNumber:
    number = db.get(AvailableNumber, number_id)
    if number is None:
        raise NotFound("Phone number not found", msisdn_id=number_id)
    return number


def assign_number(
    db: Session,
    number_id: int,
    application_id: int,
    agent_id: int,
    ip_address: str | None = None,
) -> tuple[AvailableNumber, Application]:
    """Give an available number to an application.

    Raises NotFound for an unknown number or application, InvalidState when
    the number is taken or the application is verified/rejected, Forbidden
    when another agent owns the application, and Conflict when the
    application already holds a number.
    """
    with atomic(db):
        number = (
            db.query(AvailableNumber)
            .filter(AvailableNumber.id == number_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if number is None:
            raise NotFound("Phone number not found", msisdn_id=number_id)

        app = (
            db.query(Application)
            .filter(Application.id == application_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if app is None:
            raise NotFound("Application not found", application_id=application_id)

        if number.status != "available":
            raise InvalidState("Phone number is not available", msisdn=number.msisdn, number_status=number.status)
        if app.is_locked:
            raise InvalidState(
                f"Application is {app.status} and can no longer be changed",
                current_status=app.status,
            )
        if app.assigned_agent_id is not None and app.assigned_agent_id != agent_id:
            raise Forbidden(
                "Application is not assigned to this agent",
                assigned_agent_id=app.assigned_agent_id,
            )
        if app.assigned_number:
            raise Conflict(
                "Application already has a phone number",
                assigned_number=app.assigned_number,
            )

        now = utcnow()
        flipped = (
            db.query(AvailableNumber)
            .filter(AvailableNumber.id == number.id, AvailableNumber.status == "available")
            .update(
                {"status": "assigned", "assigned_to": app.id, "assigned_at": now, "updated_at": now},
                synchronize_session=False,
            )
        )
        if flipped != 1:
            raise InvalidState("Phone number was taken by another request", msisdn=number.msisdn)

        written = (
            db.query(Application)
            .filter(
                Application.id == app.id,
                Application.assigned_number.is_(None),
                Application.status.in_(("pending", "submitted")),
            )
            .update({"assigned_number": number.msisdn, "updated_at": now}, synchronize_session=False)
        )
        if written != 1:
            raise Conflict("Application changed while assigning a number; reload and retry")

        audit_service.record(
            db, app.id, "number_assigned",
            {"assigned_number": number.msisdn, "msisdn_id": number.id},
            agent_id=agent_id,
            ip_address=ip_address,
        )

    db.refresh(number)
    db.refresh(app)
    log.info("Assigned %s to application %s (agent %s)", number.msisdn, application_id, agent_id)
    return number, app


def seed_numbers(db: Session, msisdns) -> int:
    """Insert new available numbers, skipping ones already in the pool.

    Returns how many rows were added.
    """
    wanted = []
    seen = set()
    for raw in msisdns:
        msisdn = str(raw).strip()
        if msisdn and msisdn not in seen:
            seen.add(msisdn)
            wanted.append(msisdn)
    if not wanted:
        return 0

    existing = set()
    for start in range(0, len(wanted), 500):
        chunk = wanted[start:start + 500]
        existing.update(
            m for (m,) in db.query(AvailableNumber.msisdn).filter(AvailableNumber.msisdn.in_(chunk))
        )

    new = [AvailableNumber(msisdn=m, status="available") for m in wanted if m not in existing]
    with atomic(db):
        db.add_all(new)
    log.info("Seeded %d number(s) (%d already present)", len(new), len(existing))
    return len(new)


def number_to_dict(number: AvailableNumber) -> dict:
    return {
        "id": number.id,
        "msisdn": number.msisdn,
        "status": number.status,
        "assigned_to": number.assigned_to,
        "assigned_at": number.assigned_at.isoformat() if number.assigned_at else None,
    }
