"""Address lookup hierarchy — Province → City → Barangay."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String

from .base import Base


class Province(Base):
    __tablename__ = "provinces"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(20))


class City(Base):
    __tablename__ = "cities"
    id = Column(Integer, primary_key=True)
    province_id = Column(Integer, ForeignKey("provinces.id"), nullable=False)
    name = Column(String(255), nullable=False)
    code = Column(String(20))

    __table_args__ = (Index("ix_cities_province", "province_id"),)


class Barangay(Base):
    __tablename__ = "barangays"
    id = Column(Integer, primary_key=True)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=False)
    name = Column(String(255), nullable=False)
    zip_code = Column(String(10))

    __table_args__ = (Index("ix_barangays_city", "city_id"),)
