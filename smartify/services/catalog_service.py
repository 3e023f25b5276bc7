"""Catalog & locations — read-only lookups plus order-item pricing.

Pricing is always derived from the catalog rows, never from client input
(the one exception being the customer's chosen one-time cashout):

    device_price    = device.base_price + configuration.price_adjustment
    plan_price      = plan.price
    monthly_payment = (device_price - one_time_cashout) / plan.duration_months

Amounts are Decimal and rounded half-up to centavos.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from ..exceptions import ValidationFailed
from ..models import Barangay, City, Device, DeviceConfiguration, Plan, Province, Store

log = logging.getLogger("smartify.catalog")

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENT, rounding=ROUND_HALF_UP)


def _price_str(value) -> str | None:
    return str(_money(value)) if value is not None else None


# ═══════════════════════════════════════════════════════════════════════
#  LOCATIONS
# ═══════════════════════════════════════════════════════════════════════


def list_provinces(db: Session) -> list[Province]:
    return db.query(Province).order_by(Province.name).all()


def list_cities(db: Session, province_id: int) -> list[City]:
    return db.query(City).filter(City.province_id == province_id).order_by(City.name).all()


def list_barangays(db: Session, city_id: int) -> list[Barangay]:
    return db.query(Barangay).filter(Barangay.city_id == city_id).order_by(Barangay.name).all()


def validate_address_location(
    db: Session,
    province_id: int | None,
    city_id: int | None,
    barangay_id: int | None,
) -> Barangay | None:
    """Check that the chosen city sits in the province and the barangay in the city.

    Returns the barangay (when given) so the caller can default the zip code.
    """
    province = db.get(Province, province_id) if province_id is not None else None
    if province_id is not None and province is None:
        raise ValidationFailed("Unknown province", province_id=province_id)

    city = db.get(City, city_id) if city_id is not None else None
    if city_id is not None and city is None:
        raise ValidationFailed("Unknown city", city_id=city_id)
    if city and province and city.province_id != province.id:
        raise ValidationFailed("City is not in the selected province", city_id=city_id)

    barangay = db.get(Barangay, barangay_id) if barangay_id is not None else None
    if barangay_id is not None and barangay is None:
        raise ValidationFailed("Unknown barangay", barangay_id=barangay_id)
    if barangay and city and barangay.city_id != city.id:
        raise ValidationFailed("Barangay is not in the selected city", barangay_id=barangay_id)
    return barangay


# ═══════════════════════════════════════════════════════════════════════
#  PRODUCTS & STORES
# ═══════════════════════════════════════════════════════════════════════


def list_plans(db: Session) -> list[Plan]:
    return db.query(Plan).filter(Plan.is_active.is_(True)).order_by(Plan.price, Plan.id).all()


def list_devices(db: Session) -> list[Device]:
    return db.query(Device).filter(Device.is_active.is_(True)).order_by(Device.brand, Device.name).all()


def list_configurations(db: Session, device_id: int) -> list[DeviceConfiguration]:
    return (
        db.query(DeviceConfiguration)
        .filter(
            DeviceConfiguration.device_id == device_id,
            DeviceConfiguration.is_active.is_(True),
        )
        .order_by(DeviceConfiguration.id)
        .all()
    )


def list_stores(db: Session) -> list[Store]:
    return db.query(Store).filter(Store.is_active.is_(True)).order_by(Store.name).all()


def get_active_store(db: Session, store_id: int) -> Store | None:
    store = db.get(Store, store_id)
    if store is None or not store.is_active:
        return None
    return store


# ═══════════════════════════════════════════════════════════════════════
#  PRICING
# ═══════════════════════════════════════════════════════════════════════


def price_order_item(
    db: Session,
    plan_id: int,
    device_id: int,
    device_config_id: int | None = None,
    one_time_cashout: Decimal | None = None,
) -> dict:
    """Resolve the selection against the catalog and compute its prices.

    Raises ValidationFailed for unknown or inactive rows, a configuration
    that belongs to another device, or a cashout above the device price.
    """
    plan = db.get(Plan, plan_id)
    if plan is None or not plan.is_active:
        raise ValidationFailed("Plan is not available", plan_id=plan_id)
    if not plan.duration_months or plan.duration_months <= 0:
        raise ValidationFailed("Plan has no payment term", plan_id=plan_id)

    device = db.get(Device, device_id)
    if device is None or not device.is_active:
        raise ValidationFailed("Device is not available", device_id=device_id)

    adjustment = Decimal("0")
    if device_config_id is not None:
        config = db.get(DeviceConfiguration, device_config_id)
        if config is None or not config.is_active:
            raise ValidationFailed("Device configuration is not available", device_config_id=device_config_id)
        if config.device_id != device.id:
            raise ValidationFailed(
                "Configuration does not belong to the selected device",
                device_config_id=device_config_id,
            )
        adjustment = Decimal(config.price_adjustment or 0)

    device_price = _money(Decimal(device.base_price) + adjustment)
    cashout = _money(one_time_cashout)
    if cashout < 0:
        raise ValidationFailed("one_time_cashout must not be negative")
    if cashout > device_price:
        raise ValidationFailed(
            "one_time_cashout cannot exceed the device price",
            device_price=str(device_price),
        )

    monthly = ((device_price - cashout) / Decimal(plan.duration_months)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )
    return {
        "plan_id": plan.id,
        "device_id": device.id,
        "device_config_id": device_config_id,
        "device_price": device_price,
        "plan_price": _money(plan.price),
        "one_time_cashout": cashout,
        "monthly_payment": monthly,
    }


# ═══════════════════════════════════════════════════════════════════════
#  SERIALIZERS
# ═══════════════════════════════════════════════════════════════════════


def province_to_dict(p: Province) -> dict:
    return {"id": p.id, "name": p.name, "code": p.code}


def city_to_dict(c: City) -> dict:
    return {"id": c.id, "province_id": c.province_id, "name": c.name, "code": c.code}


def barangay_to_dict(b: Barangay) -> dict:
    return {"id": b.id, "city_id": b.city_id, "name": b.name, "zip_code": b.zip_code}


def store_to_dict(s: Store) -> dict:
    return {"id": s.id, "name": s.name, "city_id": s.city_id, "address": s.address}


def plan_to_dict(p: Plan) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "price": _price_str(p.price),
        "duration_months": p.duration_months,
        "features": p.features or {},
    }


def device_to_dict(d: Device) -> dict:
    return {
        "id": d.id,
        "name": d.name,
        "brand": d.brand,
        "model": d.model,
        "base_price": _price_str(d.base_price),
        "description": d.description,
        "images": d.images or [],
    }


def configuration_to_dict(c: DeviceConfiguration) -> dict:
    return {
        "id": c.id,
        "device_id": c.device_id,
        "color": c.color,
        "storage": c.storage,
        "price_adjustment": _price_str(c.price_adjustment),
        "stock_quantity": c.stock_quantity,
    }
