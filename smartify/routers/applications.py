"""
routers/applications.py — Customer intake wizard

Create an application, save each wizard section, capture the signature and
self-submit. All rules live in application_service; these handlers only
translate HTTP to service calls.

Business Rules:
- One pending application per email (409 carries existing_cart_id)
- Verified and rejected applications are read-only (400)
- Sections are typed; validation errors return 422
- Submit needs a signature and a verified email

Called by: main.py (router mount)
Depends on: services/application_service, schemas/applications
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import client_ip
from ..schemas.applications import (
    AddressCreate,
    ApplicationCreate,
    ApplicationUpdate,
    CustomerInformationCreate,
    EmploymentCreate,
    OrderItemCreate,
    PrivacyPreferencesCreate,
    SignatureCreate,
    SubmitRequest,
)
from ..services import application_service as svc

router = APIRouter(tags=["applications"])


@router.post("/api/applications")
async def create_application(
    payload: ApplicationCreate, request: Request, db: Session = Depends(get_db)
):
    app = svc.create_application(
        db,
        email=payload.email,
        sim_type=payload.sim_type,
        customer_id_type=payload.customer_id_type,
        customer_id_number=payload.customer_id_number,
        ip_address=client_ip(request),
    )
    return svc.application_to_dict(app)


@router.get("/api/applications/{cart_id}")
async def get_application(cart_id: str, db: Session = Depends(get_db)):
    return svc.application_with_sections(svc.get_by_cart_id(db, cart_id))


@router.put("/api/applications/{application_id}")
async def update_application(
    application_id: int,
    payload: ApplicationUpdate,
    request: Request,
    db: Session = Depends(get_db),
):
    app = svc.update_application(
        db, application_id, payload.model_dump(exclude_unset=True), ip_address=client_ip(request)
    )
    return svc.application_to_dict(app)


# ── Sections ─────────────────────────────────────────────────────────


def _save(db: Session, request: Request, application_id: int, section: str, payload) -> dict:
    svc.add_section(db, application_id, section, payload.model_dump(), ip_address=client_ip(request))
    return {"success": True}


@router.post("/api/applications/{application_id}/customer-information")
async def add_customer_information(
    application_id: int,
    payload: CustomerInformationCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    return _save(db, request, application_id, "customer-information", payload)


@router.post("/api/applications/{application_id}/addresses")
async def add_address(
    application_id: int, payload: AddressCreate, request: Request, db: Session = Depends(get_db)
):
    return _save(db, request, application_id, "addresses", payload)


@router.post("/api/applications/{application_id}/employment")
async def add_employment(
    application_id: int, payload: EmploymentCreate, request: Request, db: Session = Depends(get_db)
):
    return _save(db, request, application_id, "employment", payload)


@router.post("/api/applications/{application_id}/order-items")
async def add_order_item(
    application_id: int, payload: OrderItemCreate, request: Request, db: Session = Depends(get_db)
):
    return _save(db, request, application_id, "order-items", payload)


@router.post("/api/applications/{application_id}/privacy-preferences")
async def add_privacy_preferences(
    application_id: int,
    payload: PrivacyPreferencesCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    return _save(db, request, application_id, "privacy-preferences", payload)


# ── Signature & submit ───────────────────────────────────────────────


@router.post("/api/applications/{application_id}/signature")
async def capture_signature(
    application_id: int, payload: SignatureCreate, request: Request, db: Session = Depends(get_db)
):
    app = svc.capture_signature(
        db, application_id, payload.signature_data_url, ip_address=client_ip(request)
    )
    return {"success": True, "signature_url": app.signature_url}


@router.post("/api/applications/{application_id}/submit")
async def submit_application(
    application_id: int, payload: SubmitRequest, request: Request, db: Session = Depends(get_db)
):
    app = svc.submit_application(
        db, application_id, payload.signature_url, ip_address=client_ip(request)
    )
    return svc.application_to_dict(app)
