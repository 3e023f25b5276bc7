"""Application record and its owned intake sections."""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow

# Status workflow: pending → submitted → verified | rejected
APPLICATION_STATUSES = ("pending", "submitted", "verified", "rejected")
LOCKED_STATUSES = ("verified", "rejected")


class Application(Base):
    """One customer's financing request, identified externally by cart_id."""

    __tablename__ = "applications"
    id = Column(Integer, primary_key=True)
    cart_id = Column(String(50), unique=True, nullable=False)
    status = Column(String(20), default="pending", nullable=False)
    email = Column(String(255), nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)

    customer_id_type = Column(String(50))  # passport | national_id | drivers_license ...
    customer_id_number = Column(String(100))

    assigned_number = Column(String(20))
    sim_type = Column(String(20))  # physical | esim
    signature_url = Column(Text)
    rejection_reason = Column(Text)
    submitted_at = Column(UTCDateTime)

    assigned_agent_id = Column(Integer, ForeignKey("agents.id"))
    store_id = Column(Integer, ForeignKey("stores.id"))

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    assigned_agent = relationship("Agent", foreign_keys=[assigned_agent_id])
    store = relationship("Store", foreign_keys=[store_id])

    customer_information = relationship(
        "CustomerInformation",
        back_populates="application",
        uselist=False,
        cascade="all, delete-orphan",
    )
    addresses = relationship(
        "Address", back_populates="application", cascade="all, delete-orphan"
    )
    employment_information = relationship(
        "EmploymentInformation",
        back_populates="application",
        uselist=False,
        cascade="all, delete-orphan",
    )
    order_items = relationship(
        "OrderItem", back_populates="application", cascade="all, delete-orphan"
    )
    privacy_preferences = relationship(
        "PrivacyPreferences",
        back_populates="application",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_applications_email_status", "email", "status"),
        Index("ix_applications_status_created", "status", "created_at"),
        Index("ix_applications_agent", "assigned_agent_id"),
        Index("ix_applications_id_number", "customer_id_number"),
        # one pending application per email
        Index(
            "uq_applications_pending_email",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    @property
    def is_locked(self) -> bool:
        return self.status in LOCKED_STATUSES


class CustomerInformation(Base):
    __tablename__ = "customer_information"
    id = Column(Integer, primary_key=True)
    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    id_type = Column(String(50), nullable=False)
    id_front_url = Column(Text, nullable=False)
    id_back_url = Column(Text, nullable=False)
    national_id = Column(String(100))
    id_verification_status = Column(String(20), default="pending", nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    application = relationship("Application", back_populates="customer_information")


class Address(Base):
    __tablename__ = "addresses"
    id = Column(Integer, primary_key=True)
    application_id = Column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    address_type = Column(String(20), nullable=False)  # residential | employment
    type_detail = Column(String(50))  # house | condominium | building
    house_lot_number = Column(String(100), nullable=False)
    street_name = Column(String(255), nullable=False)
    village_subdivision = Column(String(255))
    province_id = Column(Integer, ForeignKey("provinces.id"))
    city_id = Column(Integer, ForeignKey("cities.id"))
    barangay_id = Column(Integer, ForeignKey("barangays.id"))
    zip_code = Column(String(10))
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    application = relationship("Application", back_populates="addresses")
    barangay = relationship("Barangay", foreign_keys=[barangay_id])

    __table_args__ = (
        UniqueConstraint("application_id", "address_type", name="uq_addresses_app_type"),
    )


class EmploymentInformation(Base):
    __tablename__ = "employment_information"
    id = Column(Integer, primary_key=True)
    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    employment_type = Column(String(30), nullable=False)
    employer_name = Column(String(255))
    employer_contact = Column(String(100))
    job_title = Column(String(255))
    position_level = Column(String(100))
    monthly_income_range = Column(String(100))
    employment_start_date = Column(UTCDateTime)
    same_as_residential = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    application = relationship("Application", back_populates="employment_information")


class OrderItem(Base):
    """A (plan, device, configuration) selection with server-computed pricing."""

    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True)
    application_id = Column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False)
    device_config_id = Column(Integer, ForeignKey("device_configurations.id"))
    device_price = Column(Numeric(10, 2), nullable=False)
    plan_price = Column(Numeric(10, 2), nullable=False)
    one_time_cashout = Column(Numeric(10, 2), nullable=False)
    monthly_payment = Column(Numeric(10, 2), nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)

    application = relationship("Application", back_populates="order_items")
    plan = relationship("Plan", foreign_keys=[plan_id])
    device = relationship("Device", foreign_keys=[device_id])
    device_configuration = relationship("DeviceConfiguration", foreign_keys=[device_config_id])

    __table_args__ = (Index("ix_order_items_app", "application_id"),)


class PrivacyPreferences(Base):
    __tablename__ = "privacy_preferences"
    id = Column(Integer, primary_key=True)
    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    product_offers = Column(Boolean, default=False, nullable=False)
    trusted_partners = Column(Boolean, default=False, nullable=False)
    customization = Column(Boolean, default=False, nullable=False)
    sister_companies = Column(Boolean, default=False, nullable=False)
    business_partners = Column(Boolean, default=False, nullable=False)
    partner_solutions = Column(Boolean, default=False, nullable=False)
    terms_accepted = Column(Boolean, default=False, nullable=False)
    privacy_notice_accepted = Column(Boolean, default=False, nullable=False)
    subscriber_declaration_accepted = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)

    application = relationship("Application", back_populates="privacy_preferences")
