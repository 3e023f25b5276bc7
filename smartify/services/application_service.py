"""Application lifecycle — the single owner of Application status.

Status workflow:
    pending ──submit (customer)──► submitted ──verify──► verified
    pending ──assign (agent)─────► submitted ──reject──► rejected
    submitted, no owner ──assign──► submitted (claimed)

verified and rejected are terminal: every mutating operation here refuses
them with InvalidState.

Every status transition is a compare-and-swap: the row is read with
SELECT ... FOR UPDATE, preconditions are checked, and the write is a
conditional UPDATE on the expected status (and owner) whose rowcount is
checked. A request that loses a race fails instead of double-assigning.
Each operation runs in one transaction together with its audit entry.

Usage:
    app = create_application(db, email="u@x.com", sim_type="esim")
    assign_to_agent(db, app.id, agent_id=3, store_id=1)
    verify_application(db, app.id, agent_id=3)
"""

import logging
import secrets
import time

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..database import atomic
from ..exceptions import Conflict, Forbidden, InvalidState, NotFound, ValidationFailed
from ..models import (
    Address,
    Application,
    CustomerInformation,
    EmploymentInformation,
    OrderItem,
    PrivacyPreferences,
)
from ..models.base import utcnow
from . import audit_service, catalog_service, otp_service

log = logging.getLogger("smartify.applications")

EDITABLE_FIELDS = ("email", "sim_type", "customer_id_type", "customer_id_number")
SECTIONS = ("customer-information", "addresses", "employment", "order-items", "privacy-preferences")
DEFAULT_LISTING_ORDER = ("pending", "submitted", "verified")


def generate_cart_id() -> str:
    """Prefix + epoch millis + random 0-9999. Unique with high probability only."""
    return f"{settings.cart_id_prefix}{int(time.time() * 1000)}{secrets.randbelow(10000)}"


# ═══════════════════════════════════════════════════════════════════════
#  LOOKUPS
# ═══════════════════════════════════════════════════════════════════════


def get_application(db: Session, application_id: int) -> Application:
    app = db.get(Application, application_id)
    if app is None:
        raise NotFound("Application not found", application_id=application_id)
    return app


def get_by_cart_id(db: Session, cart_id: str) -> Application:
    app = db.query(Application).filter(Application.cart_id == cart_id).first()
    if app is None:
        raise NotFound("Application not found", cart_id=cart_id)
    return app


def _lock(db: Session, application_id: int) -> Application:
    app = (
        db.query(Application)
        .filter(Application.id == application_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if app is None:
        raise NotFound("Application not found", application_id=application_id)
    return app


def _ensure_unlocked(app: Application) -> None:
    if app.is_locked:
        raise InvalidState(
            f"Application is {app.status} and can no longer be changed",
            current_status=app.status,
        )


def _pending_for_email(db: Session, email: str, exclude_id: int | None = None) -> Application | None:
    q = db.query(Application).filter(Application.email == email, Application.status == "pending")
    if exclude_id is not None:
        q = q.filter(Application.id != exclude_id)
    return q.first()


def _duplicate_pending(existing: Application) -> Conflict:
    return Conflict(
        f"A pending application ({existing.cart_id}) already exists for this email",
        existing_cart_id=existing.cart_id,
        existing_application_id=existing.id,
    )


# ═══════════════════════════════════════════════════════════════════════
#  CUSTOMER INTAKE
# ═══════════════════════════════════════════════════════════════════════


def create_application(
    db: Session,
    email: str,
    sim_type: str = "physical",
    customer_id_type: str | None = None,
    customer_id_number: str | None = None,
    ip_address: str | None = None,
) -> Application:
    """Start a new pending application for email.

    Raises Conflict (with the existing cart id) if one is already pending.
    A cart id collision is retried once with a fresh id.
    """
    existing = _pending_for_email(db, email)
    if existing:
        raise _duplicate_pending(existing)

    email_verified = otp_service.email_is_verified(db, email)

    for attempt in (1, 2):
        app = Application(
            cart_id=generate_cart_id(),
            status="pending",
            email=email,
            email_verified=email_verified,
            sim_type=sim_type,
            customer_id_type=customer_id_type,
            customer_id_number=customer_id_number,
        )
        db.add(app)
        try:
            db.flush()
            audit_service.record(
                db, app.id, "application_created",
                {"status": "pending", "cart_id": app.cart_id},
                ip_address=ip_address,
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            # the partial unique index on pending email or the cart id index fired
            existing = _pending_for_email(db, email)
            if existing:
                raise _duplicate_pending(existing)
            if attempt == 2:
                raise
            log.warning("Cart id collision for %s; retrying with a new id", email)
            continue
        log.info("Created application %s for %s", app.cart_id, email)
        return app


def update_application(
    db: Session,
    application_id: int,
    fields: dict,
    ip_address: str | None = None,
) -> Application:
    """Merge customer-editable fields onto the application.

    Changing the email re-derives email_verified for the new address and is
    refused if another pending application already uses it.
    """
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Fields not editable: {', '.join(sorted(unknown))}")

    with atomic(db):
        app = _lock(db, application_id)
        _ensure_unlocked(app)

        changes = {}
        for key, value in fields.items():
            if getattr(app, key) != value:
                changes[key] = value

        if "email" in changes:
            if not changes["email"]:
                raise ValidationFailed("Email must not be empty")
            if app.status == "pending":
                clash = _pending_for_email(db, changes["email"], exclude_id=app.id)
                if clash:
                    raise _duplicate_pending(clash)
            app.email_verified = otp_service.email_is_verified(db, changes["email"])

        for key, value in changes.items():
            setattr(app, key, value)

        if changes:
            audit_service.record(db, app.id, "application_updated", changes, ip_address=ip_address)

    log.info("Updated application %s: %s", app.cart_id, sorted(changes) or "no changes")
    return app


def add_section(
    db: Session,
    application_id: int,
    section: str,
    payload: dict,
    ip_address: str | None = None,
) -> None:
    """Persist one validated wizard section.

    One-to-one sections (and one address per address_type) raise Conflict
    when already saved.
    """
    if section not in SECTIONS:
        raise NotFound("Unknown section", section=section)

    with atomic(db):
        app = _lock(db, application_id)
        _ensure_unlocked(app)
        row = _SECTION_BUILDERS[section](db, app, payload)
        db.add(row)
        try:
            db.flush()
        except IntegrityError:
            raise Conflict(f"Section {section} already saved", section=section)
        audit_service.record(db, app.id, "section_added", {"section": section}, ip_address=ip_address)

    db.expire(app)
    log.info("Saved %s for application %s", section, application_id)


def _build_customer_information(db: Session, app: Application, payload: dict) -> CustomerInformation:
    if app.customer_information is not None:
        raise Conflict("Customer information already saved", section="customer-information")
    return CustomerInformation(application_id=app.id, **payload)


def _build_address(db: Session, app: Application, payload: dict) -> Address:
    if any(a.address_type == payload["address_type"] for a in app.addresses):
        raise Conflict(
            f"A {payload['address_type']} address is already saved",
            section="addresses",
            address_type=payload["address_type"],
        )
    barangay = catalog_service.validate_address_location(
        db, payload.get("province_id"), payload.get("city_id"), payload.get("barangay_id")
    )
    data = dict(payload)
    if not data.get("zip_code") and barangay is not None:
        data["zip_code"] = barangay.zip_code
    return Address(application_id=app.id, **data)


def _build_employment(db: Session, app: Application, payload: dict) -> EmploymentInformation:
    if app.employment_information is not None:
        raise Conflict("Employment information already saved", section="employment")
    return EmploymentInformation(application_id=app.id, **payload)


def _build_order_item(db: Session, app: Application, payload: dict) -> OrderItem:
    priced = catalog_service.price_order_item(
        db,
        plan_id=payload["plan_id"],
        device_id=payload["device_id"],
        device_config_id=payload.get("device_config_id"),
        one_time_cashout=payload.get("one_time_cashout"),
    )
    return OrderItem(application_id=app.id, **priced)


def _build_privacy_preferences(db: Session, app: Application, payload: dict) -> PrivacyPreferences:
    if app.privacy_preferences is not None:
        raise Conflict("Privacy preferences already saved", section="privacy-preferences")
    return PrivacyPreferences(application_id=app.id, **payload)


_SECTION_BUILDERS = {
    "customer-information": _build_customer_information,
    "addresses": _build_address,
    "employment": _build_employment,
    "order-items": _build_order_item,
    "privacy-preferences": _build_privacy_preferences,
}


def capture_signature(
    db: Session,
    application_id: int,
    signature_data_url: str,
    ip_address: str | None = None,
) -> Application:
    if not (signature_data_url or "").strip():
        raise ValidationFailed("Signature data is required")

    with atomic(db):
        app = _lock(db, application_id)
        _ensure_unlocked(app)
        app.signature_url = signature_data_url
        audit_service.record(db, app.id, "signature_captured", {}, ip_address=ip_address)

    log.info("Signature captured for application %s", app.cart_id)
    return app


def submit_application(
    db: Session,
    application_id: int,
    signature_url: str | None = None,
    ip_address: str | None = None,
) -> Application:
    """Customer self-submit: pending → submitted.

    Needs a signature (in the request or captured earlier) and a verified email.
    """
    with atomic(db):
        app = _lock(db, application_id)
        if app.status != "pending":
            raise InvalidState(
                "Only pending applications can be submitted",
                current_status=app.status,
            )
        signature = (signature_url or "").strip() or app.signature_url
        if not signature:
            raise ValidationFailed("A signature is required to submit")
        if not app.email_verified:
            raise ValidationFailed("Email must be verified before submitting")

        now = utcnow()
        updated = (
            db.query(Application)
            .filter(Application.id == app.id, Application.status == "pending")
            .update(
                {"status": "submitted", "signature_url": signature, "submitted_at": now, "updated_at": now},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise InvalidState("Application status changed; reload and retry")
        audit_service.record(
            db, app.id, "application_submitted", {"status": "submitted"}, ip_address=ip_address
        )

    db.refresh(app)
    log.info("Application %s submitted by customer", app.cart_id)
    return app


# ═══════════════════════════════════════════════════════════════════════
#  AGENT REVIEW
# ═══════════════════════════════════════════════════════════════════════


def assign_to_agent(
    db: Session,
    application_id: int,
    agent_id: int,
    store_id: int,
    ip_address: str | None = None,
) -> Application:
    """Take ownership of an application.

    pending → submitted with owner and store set. An unowned submitted
    application (customer self-submit) is claimed without a status change.
    Re-assigning to the current owner is a no-op. Another agent's
    application raises Conflict; terminal ones raise InvalidState.
    """
    with atomic(db):
        app = _lock(db, application_id)
        if app.is_locked:
            raise InvalidState(
                "Application is not open for assignment",
                current_status=app.status,
            )
        if app.assigned_agent_id is not None and app.assigned_agent_id != agent_id:
            raise Conflict(
                "Application is already assigned to another agent",
                assigned_agent_id=app.assigned_agent_id,
            )
        if app.status == "submitted" and app.assigned_agent_id == agent_id:
            log.info("Application %s already assigned to agent %s", app.cart_id, agent_id)
            return app

        store = catalog_service.get_active_store(db, store_id)
        if store is None:
            raise NotFound("Store not found", store_id=store_id)

        expected = app.status
        updated = (
            db.query(Application)
            .filter(
                Application.id == app.id,
                Application.status == expected,
                or_(Application.assigned_agent_id.is_(None), Application.assigned_agent_id == agent_id),
            )
            .update(
                {
                    "status": "submitted",
                    "assigned_agent_id": agent_id,
                    "store_id": store.id,
                    "updated_at": utcnow(),
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise Conflict("Application was assigned concurrently; reload and retry")
        audit_service.record(
            db, app.id, "application_assigned",
            {"status": "submitted", "previous_status": expected, "agent_id": agent_id, "store_id": store.id},
            agent_id=agent_id,
            ip_address=ip_address,
        )

    db.refresh(app)
    log.info("Application %s assigned to agent %s at store %s", app.cart_id, agent_id, store_id)
    return app


def verify_application(
    db: Session,
    application_id: int,
    agent_id: int,
    ip_address: str | None = None,
) -> Application:
    """submitted → verified by the owning agent. Terminal."""
    with atomic(db):
        app = _lock(db, application_id)
        if app.status != "submitted":
            raise InvalidState(
                "Application must be in submitted status to verify",
                current_status=app.status,
            )
        if app.assigned_agent_id != agent_id:
            raise Forbidden(
                "Application is not assigned to this agent",
                assigned_agent_id=app.assigned_agent_id,
            )

        now = utcnow()
        updated = (
            db.query(Application)
            .filter(
                Application.id == app.id,
                Application.status == "submitted",
                Application.assigned_agent_id == agent_id,
            )
            .update({"status": "verified", "submitted_at": now, "updated_at": now}, synchronize_session=False)
        )
        if updated != 1:
            raise InvalidState("Application status changed; reload and retry")
        audit_service.record(
            db, app.id, "application_verified",
            {"status": "verified", "submitted_at": now.isoformat()},
            agent_id=agent_id,
            ip_address=ip_address,
        )

    db.refresh(app)
    log.info("Application %s verified by agent %s", app.cart_id, agent_id)
    return app


def reject_application(
    db: Session,
    application_id: int,
    agent_id: int,
    reason: str,
    ip_address: str | None = None,
) -> Application:
    """submitted → rejected by the owning agent. An assigned number stays assigned."""
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("Rejection reason is required")

    with atomic(db):
        app = _lock(db, application_id)
        if app.status != "submitted":
            raise InvalidState(
                "Application must be in submitted status to reject",
                current_status=app.status,
            )
        if app.assigned_agent_id != agent_id:
            raise Forbidden(
                "Application is not assigned to this agent",
                assigned_agent_id=app.assigned_agent_id,
            )

        updated = (
            db.query(Application)
            .filter(
                Application.id == app.id,
                Application.status == "submitted",
                Application.assigned_agent_id == agent_id,
            )
            .update(
                {"status": "rejected", "rejection_reason": reason, "updated_at": utcnow()},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise InvalidState("Application status changed; reload and retry")
        audit_service.record(
            db, app.id, "application_rejected",
            {"status": "rejected", "reason": reason},
            agent_id=agent_id,
            ip_address=ip_address,
        )

    db.refresh(app)
    log.info("Application %s rejected by agent %s", app.cart_id, agent_id)
    return app


# ═══════════════════════════════════════════════════════════════════════
#  LISTING & SEARCH
# ═══════════════════════════════════════════════════════════════════════


def _newest_first(q):
    return q.order_by(Application.created_at.desc(), Application.id.desc())


def search_by_agent_scope(db: Session, agent_id: int) -> list[Application]:
    """Everything an agent can act on: all pending, their own submitted and
    verified applications, and unowned submitted ones."""
    q = db.query(Application).filter(
        or_(
            Application.status == "pending",
            Application.status.in_(("submitted", "verified")) & (Application.assigned_agent_id == agent_id),
            (Application.status == "submitted") & Application.assigned_agent_id.is_(None),
        )
    )
    return _newest_first(q).all()


def _like_pattern(term: str) -> str:
    escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search(db: Session, term: str) -> list[Application]:
    """Substring match on cart id, email or customer id number. LIKE wildcards
    in the term match literally."""
    pattern = _like_pattern(term)
    q = db.query(Application).filter(
        or_(
            Application.cart_id.ilike(pattern, escape="\\"),
            Application.email.ilike(pattern, escape="\\"),
            Application.customer_id_number.ilike(pattern, escape="\\"),
        )
    )
    return _newest_first(q).all()


def list_by_status(db: Session, status: str) -> list[Application]:
    return _newest_first(db.query(Application).filter(Application.status == status)).all()


def default_listing(db: Session) -> list[Application]:
    """Pending, then submitted, then verified; newest first within each."""
    results = []
    for status in DEFAULT_LISTING_ORDER:
        results.extend(list_by_status(db, status))
    return results


def audit_trail(db: Session, application_id: int) -> list:
    get_application(db, application_id)
    return audit_service.trail_for_application(db, application_id)


# ═══════════════════════════════════════════════════════════════════════
#  SERIALIZERS
# ═══════════════════════════════════════════════════════════════════════


def _iso(dt) -> str | None:
    return dt.isoformat() if dt else None


def _money(value) -> str | None:
    return str(value) if value is not None else None


def application_to_dict(app: Application) -> dict:
    return {
        "id": app.id,
        "cart_id": app.cart_id,
        "status": app.status,
        "email": app.email,
        "email_verified": app.email_verified,
        "customer_id_type": app.customer_id_type,
        "customer_id_number": app.customer_id_number,
        "assigned_number": app.assigned_number,
        "sim_type": app.sim_type,
        "signature_url": app.signature_url,
        "rejection_reason": app.rejection_reason,
        "assigned_agent_id": app.assigned_agent_id,
        "store_id": app.store_id,
        "submitted_at": _iso(app.submitted_at),
        "created_at": _iso(app.created_at),
        "updated_at": _iso(app.updated_at),
    }


def _customer_information_to_dict(ci: CustomerInformation | None) -> dict | None:
    if ci is None:
        return None
    return {
        "id": ci.id,
        "id_type": ci.id_type,
        "id_front_url": ci.id_front_url,
        "id_back_url": ci.id_back_url,
        "national_id": ci.national_id,
        "id_verification_status": ci.id_verification_status,
    }


def _address_to_dict(a: Address, enrich: bool = False) -> dict:
    d = {
        "id": a.id,
        "address_type": a.address_type,
        "type_detail": a.type_detail,
        "house_lot_number": a.house_lot_number,
        "street_name": a.street_name,
        "village_subdivision": a.village_subdivision,
        "province_id": a.province_id,
        "city_id": a.city_id,
        "barangay_id": a.barangay_id,
        "zip_code": a.zip_code,
    }
    if enrich:
        d["barangay"] = catalog_service.barangay_to_dict(a.barangay) if a.barangay else None
    return d


def _employment_to_dict(e: EmploymentInformation | None) -> dict | None:
    if e is None:
        return None
    return {
        "id": e.id,
        "employment_type": e.employment_type,
        "employer_name": e.employer_name,
        "employer_contact": e.employer_contact,
        "job_title": e.job_title,
        "position_level": e.position_level,
        "monthly_income_range": e.monthly_income_range,
        "employment_start_date": _iso(e.employment_start_date),
        "same_as_residential": e.same_as_residential,
    }


def _order_item_to_dict(item: OrderItem, enrich: bool = False) -> dict:
    d = {
        "id": item.id,
        "plan_id": item.plan_id,
        "device_id": item.device_id,
        "device_config_id": item.device_config_id,
        "device_price": _money(item.device_price),
        "plan_price": _money(item.plan_price),
        "one_time_cashout": _money(item.one_time_cashout),
        "monthly_payment": _money(item.monthly_payment),
    }
    if enrich:
        d["plan"] = catalog_service.plan_to_dict(item.plan) if item.plan else None
        d["device"] = catalog_service.device_to_dict(item.device) if item.device else None
        d["device_configuration"] = (
            catalog_service.configuration_to_dict(item.device_configuration)
            if item.device_configuration
            else None
        )
    return d


def _privacy_to_dict(p: PrivacyPreferences | None) -> dict | None:
    if p is None:
        return None
    return {
        "id": p.id,
        "product_offers": p.product_offers,
        "trusted_partners": p.trusted_partners,
        "customization": p.customization,
        "sister_companies": p.sister_companies,
        "business_partners": p.business_partners,
        "partner_solutions": p.partner_solutions,
        "terms_accepted": p.terms_accepted,
        "privacy_notice_accepted": p.privacy_notice_accepted,
        "subscriber_declaration_accepted": p.subscriber_declaration_accepted,
    }


def application_with_sections(app: Application, enrich: bool = False) -> dict:
    """Application plus every wizard section. enrich=True adds catalog and
    barangay details for the agent review screen."""
    d = application_to_dict(app)
    d["customer_information"] = _customer_information_to_dict(app.customer_information)
    d["addresses"] = [_address_to_dict(a, enrich) for a in sorted(app.addresses, key=lambda a: a.id)]
    d["employment_information"] = _employment_to_dict(app.employment_information)
    d["order_items"] = [_order_item_to_dict(i, enrich) for i in sorted(app.order_items, key=lambda i: i.id)]
    d["privacy_preferences"] = _privacy_to_dict(app.privacy_preferences)
    return d
