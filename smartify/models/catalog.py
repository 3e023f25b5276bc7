"""Product catalog and store models — Plans, Devices, Configurations, Stores."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow


class Store(Base):
    __tablename__ = "stores"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    city_id = Column(Integer, ForeignKey("cities.id"))
    address = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)


class Plan(Base):
    __tablename__ = "plans"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    duration_months = Column(Integer, nullable=False)
    features = Column(JSON, default=dict)  # {data, calls, landline, streaming}
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)


class Device(Base):
    __tablename__ = "devices"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    brand = Column(String(100), nullable=False)
    model = Column(String(255), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text)
    images = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    configurations = relationship(
        "DeviceConfiguration", back_populates="device", cascade="all, delete-orphan"
    )


class DeviceConfiguration(Base):
    __tablename__ = "device_configurations"
    id = Column(Integer, primary_key=True)
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False)
    color = Column(String(100))
    storage = Column(String(50))
    price_adjustment = Column(Numeric(10, 2), default=0, nullable=False)
    stock_quantity = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    device = relationship("Device", back_populates="configurations")

    __table_args__ = (Index("ix_device_configs_device", "device_id"),)
