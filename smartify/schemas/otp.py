"""
schemas/otp.py — Pydantic models for email OTP endpoints

Business Rules:
- Email is normalized to lowercase before lookup
- OTP codes are ASCII digits only

Called by: routers/otp.py
Depends on: pydantic, email-validator
"""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator


class OtpSendRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class OtpVerifyRequest(BaseModel):
    email: EmailStr
    otp_code: str = Field(..., min_length=4, max_length=10, pattern=r"^[0-9]+$")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()
