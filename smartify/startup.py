"""
startup.py — Database Startup Migrations & Reference Data (Idempotent)

Tables and indexes are defined in the ORM models and created via
Base.metadata.create_all(checkfirst=True). This file adds what the ORM
does not express (PostgreSQL CHECK constraints on status columns) and seeds
the reference tables the wizard needs on an empty database: locations,
stores, plans, devices and device configurations.

Agents are never seeded here; use scripts/create_agent.py.

Called by: main.py lifespan
Depends on: database.py (engine, SessionLocal), models
"""

import logging
import os
from decimal import Decimal

from sqlalchemy import text as sqltext
from sqlalchemy.orm import Session

from .config import settings
from .database import SessionLocal, engine
from .models import Barangay, City, Device, DeviceConfiguration, Plan, Province, Store

log = logging.getLogger(__name__)


def run_startup_migrations() -> None:
    """Execute all idempotent startup operations. Safe to call on every app boot."""
    if os.environ.get("TESTING"):
        log.info("TESTING mode, skipping startup migrations")
        return

    from .models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)
    log.info("ORM schema sync complete (create_all checkfirst=True)")

    if engine.dialect.name == "postgresql":
        with engine.connect() as conn:
            _add_check_constraints(conn)

    if settings.seed_reference_data:
        db = SessionLocal()
        try:
            seed_reference_data(db)
        finally:
            db.close()
    log.info("Startup migrations complete")


def _exec(conn, stmt: str) -> None:
    """Execute a single DDL statement with rollback on failure."""
    try:
        conn.execute(sqltext(stmt))
        conn.commit()
    except Exception as e:
        log.warning("DDL failed: %s", e)
        conn.rollback()


# ── CHECK constraints (PostgreSQL) ──────────────────────────────────


_CHECKS = {
    ("applications", "chk_applications_status"):
        "status IN ('pending', 'submitted', 'verified', 'rejected')",
    ("available_numbers", "chk_available_numbers_status"):
        "status IN ('available', 'reserved', 'assigned')",
    ("available_numbers", "chk_available_numbers_assigned_to"):
        "status <> 'assigned' OR assigned_to IS NOT NULL",
}


def _add_check_constraints(conn) -> None:
    for (table, name), expr in _CHECKS.items():
        exists = conn.execute(
            sqltext("SELECT 1 FROM pg_constraint WHERE conname = :name"), {"name": name}
        ).first()
        if exists:
            continue
        _exec(conn, f"ALTER TABLE {table} ADD CONSTRAINT {name} CHECK ({expr})")
        log.info("Added constraint %s", name)


# ── Reference data ──────────────────────────────────────────────────


_LOCATIONS = {
    ("Metro Manila", "NCR"): {
        ("Quezon City", "QC"): [
            ("Barangay Commonwealth", "1121"),
            ("Barangay Batasan Hills", "1126"),
            ("Barangay Cubao", "1109"),
        ],
        ("Manila", "MNL"): [
            ("Barangay Ermita", "1000"),
            ("Barangay Malate", "1004"),
        ],
        ("Pasig", "PAS"): [
            ("Barangay Ugong", "1604"),
        ],
    },
    ("Cavite", "CAV"): {},
}

_STORES = [
    ("Main Store - Quezon City", "QC", "Commonwealth Avenue, Quezon City, Metro Manila"),
    ("Manila Store", "MNL", "Ermita, Manila, Metro Manila"),
]

_PLANS = [
    ("PLAN 1299", "1299", 12, {
        "data": "25GB DATA",
        "calls": "Unli All-Net Mobile Calls & Texts",
        "landline": "Unli Landline Calls",
        "streaming": "Netflix Mobile",
    }),
    ("PLAN 2999", "2999", 24, {
        "data": "UNLI DATA",
        "calls": "Unli All-Net Mobile Calls & Texts",
        "landline": "Unli Landline Calls",
        "streaming": "Netflix Premium",
    }),
]

# name, base price, description, image, [(color, storage, adjustment, stock)]
_DEVICES = [
    (
        "iPhone 17 Pro Max", "89990",
        "The ultimate iPhone with the most advanced technology, stunning display, "
        "and professional-grade camera system.",
        "/images/iphone-17-pro-max-blue.jpg",
        [
            ("Deep Blue", "128GB", "0", 10),
            ("Deep Blue", "256GB", "6000", 8),
            ("Deep Blue", "512GB", "12000", 5),
            ("Deep Blue", "1TB", "18000", 3),
            ("Orange", "128GB", "0", 12),
            ("Orange", "256GB", "6000", 10),
        ],
    ),
    (
        "iPhone 17 Pro", "79990",
        "Pro performance meets pro cameras in a stunning titanium design.",
        "/images/iphone-17-pro.jpg",
        [
            ("Silver", "128GB", "0", 15),
            ("Silver", "256GB", "5000", 12),
            ("Deep Blue", "128GB", "0", 10),
        ],
    ),
    (
        "iPhone 17", "59990",
        "A beautiful design with powerful performance for everyday tasks.",
        "/images/iphone-17.jpg",
        [
            ("Purple", "128GB", "0", 20),
            ("Purple", "256GB", "4000", 15),
            ("Black", "128GB", "0", 18),
        ],
    ),
    (
        "iPhone Air", "69990",
        "Incredibly thin and light, yet powerful enough for everything you love.",
        "/images/iphone-air.jpg",
        [
            ("Sky Blue", "128GB", "0", 15),
            ("Sky Blue", "256GB", "4500", 12),
            ("Gold", "128GB", "0", 10),
        ],
    ),
]


def seed_reference_data(db: Session) -> dict:
    """Seed each reference group only when its table is empty.

    Returns {group: rows_added}.
    """
    added = {"locations": 0, "stores": 0, "plans": 0, "devices": 0}

    if db.query(Province.id).first() is None:
        for (pname, pcode), cities in _LOCATIONS.items():
            province = Province(name=pname, code=pcode)
            db.add(province)
            db.flush()
            added["locations"] += 1
            for (cname, ccode), barangays in cities.items():
                city = City(province_id=province.id, name=cname, code=ccode)
                db.add(city)
                db.flush()
                added["locations"] += 1
                for bname, zip_code in barangays:
                    db.add(Barangay(city_id=city.id, name=bname, zip_code=zip_code))
                    added["locations"] += 1

    if db.query(Store.id).first() is None:
        db.flush()
        for name, city_code, address in _STORES:
            city = db.query(City).filter(City.code == city_code).first()
            db.add(Store(name=name, city_id=city.id if city else None, address=address))
            added["stores"] += 1

    if db.query(Plan.id).first() is None:
        for name, price, months, features in _PLANS:
            db.add(Plan(name=name, price=Decimal(price), duration_months=months, features=features))
            added["plans"] += 1

    if db.query(Device.id).first() is None:
        for name, base_price, description, image, configs in _DEVICES:
            device = Device(
                name=name,
                brand="Apple",
                model=name,
                base_price=Decimal(base_price),
                description=description,
                images=[image],
            )
            db.add(device)
            db.flush()
            added["devices"] += 1
            for color, storage, adjustment, stock in configs:
                db.add(
                    DeviceConfiguration(
                        device_id=device.id,
                        color=color,
                        storage=storage,
                        price_adjustment=Decimal(adjustment),
                        stock_quantity=stock,
                    )
                )

    db.commit()
    if any(added.values()):
        log.info("Seeded reference data: %s", added)
    return added
