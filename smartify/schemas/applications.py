"""
schemas/applications.py — Pydantic models for the customer intake endpoints

Each wizard section is a typed body validated here before anything is
persisted. Pricing fields on order items are never accepted from the client;
the catalog service computes them.

Business Rules:
- Email is normalized to lowercase
- sim_type is physical or esim
- Update accepts only customer-editable fields; anything else is a 422
- Employed applicants (full-time / part-time) must name an employer
- Privacy: terms, privacy notice and subscriber declaration must all be accepted
- one_time_cashout is optional and never negative

Called by: routers/applications.py
Depends on: pydantic, email-validator
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

SimType = Literal["physical", "esim"]


def _lower_email(v: str) -> str:
    return v.strip().lower()


# ── Application ──────────────────────────────────────────────────────


class ApplicationCreate(BaseModel):
    email: EmailStr
    sim_type: SimType = "physical"
    customer_id_type: str | None = Field(default=None, max_length=50)
    customer_id_number: str | None = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _lower_email(v)


class ApplicationUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr | None = None
    sim_type: SimType | None = None
    customer_id_type: str | None = Field(default=None, max_length=50)
    customer_id_number: str | None = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return _lower_email(v) if v else v


# ── Sections ─────────────────────────────────────────────────────────


class CustomerInformationCreate(BaseModel):
    id_type: str = Field(..., min_length=1, max_length=50)
    id_front_url: str = Field(..., min_length=1)
    id_back_url: str = Field(..., min_length=1)
    national_id: str | None = Field(default=None, max_length=100)


class AddressCreate(BaseModel):
    address_type: Literal["residential", "employment"]
    type_detail: str | None = Field(default=None, max_length=50)
    house_lot_number: str = Field(..., min_length=1, max_length=100)
    street_name: str = Field(..., min_length=1, max_length=255)
    village_subdivision: str | None = Field(default=None, max_length=255)
    province_id: int | None = None
    city_id: int | None = None
    barangay_id: int | None = None
    zip_code: str | None = Field(default=None, max_length=10)

    @field_validator("house_lot_number", "street_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class EmploymentCreate(BaseModel):
    employment_type: Literal["full-time", "part-time", "self-employed", "unemployed"]
    employer_name: str | None = Field(default=None, max_length=255)
    employer_contact: str | None = Field(default=None, max_length=100)
    job_title: str | None = Field(default=None, max_length=255)
    position_level: str | None = Field(default=None, max_length=100)
    monthly_income_range: str | None = Field(default=None, max_length=100)
    employment_start_date: datetime | None = None
    same_as_residential: bool = False

    @model_validator(mode="after")
    def employer_required_when_employed(self):
        if self.employment_type in ("full-time", "part-time"):
            if not (self.employer_name or "").strip():
                raise ValueError("employer_name is required for full-time and part-time employment")
        return self


class OrderItemCreate(BaseModel):
    plan_id: int
    device_id: int
    device_config_id: int | None = None
    one_time_cashout: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)


class PrivacyPreferencesCreate(BaseModel):
    product_offers: bool = False
    trusted_partners: bool = False
    customization: bool = False
    sister_companies: bool = False
    business_partners: bool = False
    partner_solutions: bool = False
    terms_accepted: bool
    privacy_notice_accepted: bool
    subscriber_declaration_accepted: bool

    @model_validator(mode="after")
    def acceptances_required(self):
        missing = [
            name
            for name in ("terms_accepted", "privacy_notice_accepted", "subscriber_declaration_accepted")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"Must be accepted: {', '.join(missing)}")
        return self


# ── Signature / submit ───────────────────────────────────────────────


class SignatureCreate(BaseModel):
    signature_data_url: str = Field(..., min_length=1)


class SubmitRequest(BaseModel):
    signature_url: str | None = None
