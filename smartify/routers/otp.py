"""
routers/otp.py — Email OTP send & verify

Business Rules:
- Both endpoints are rate limited per client address
- Sending supersedes any earlier unverified code for the email
- Verification failures return 400 with a reason

Called by: main.py (router mount)
Depends on: services/otp_service, rate_limit
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..rate_limit import limiter
from ..schemas.otp import OtpSendRequest, OtpVerifyRequest
from ..services import otp_service

router = APIRouter(tags=["otp"])


@router.post("/api/otp/send")
@limiter.limit(settings.rate_limit_otp)
async def send_otp(request: Request, payload: OtpSendRequest, db: Session = Depends(get_db)):
    return otp_service.send_otp(db, payload.email)


@router.post("/api/otp/verify")
@limiter.limit(settings.rate_limit_otp)
async def verify_otp(request: Request, payload: OtpVerifyRequest, db: Session = Depends(get_db)):
    return otp_service.verify_otp(db, payload.email, payload.otp_code)
