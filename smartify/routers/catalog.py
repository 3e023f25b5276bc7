"""
routers/catalog.py — Locations, Plans, Devices & Stores

Read-only lookups that back the wizard's selection and address screens.

Business Rules:
- Only active plans, devices, configurations and stores are listed
- Unknown parent ids return an empty list, not 404

Called by: main.py (router mount)
Depends on: services/catalog_service
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..services import catalog_service

router = APIRouter(tags=["catalog"])


# ── Locations ────────────────────────────────────────────────────────


@router.get("/api/locations/provinces")
async def list_provinces(db: Session = Depends(get_db)):
    return [catalog_service.province_to_dict(p) for p in catalog_service.list_provinces(db)]


@router.get("/api/locations/cities/{province_id}")
async def list_cities(province_id: int, db: Session = Depends(get_db)):
    return [catalog_service.city_to_dict(c) for c in catalog_service.list_cities(db, province_id)]


@router.get("/api/locations/barangays/{city_id}")
async def list_barangays(city_id: int, db: Session = Depends(get_db)):
    return [catalog_service.barangay_to_dict(b) for b in catalog_service.list_barangays(db, city_id)]


# ── Products & stores ────────────────────────────────────────────────


@router.get("/api/plans")
async def list_plans(db: Session = Depends(get_db)):
    return [catalog_service.plan_to_dict(p) for p in catalog_service.list_plans(db)]


@router.get("/api/devices")
async def list_devices(db: Session = Depends(get_db)):
    return [catalog_service.device_to_dict(d) for d in catalog_service.list_devices(db)]


@router.get("/api/devices/{device_id}/configurations")
async def list_configurations(device_id: int, db: Session = Depends(get_db)):
    return [
        catalog_service.configuration_to_dict(c)
        for c in catalog_service.list_configurations(db, device_id)
    ]


@router.get("/api/stores")
async def list_stores(db: Session = Depends(get_db)):
    return [catalog_service.store_to_dict(s) for s in catalog_service.list_stores(db)]
