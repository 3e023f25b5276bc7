"""
routers/numbers.py — MSISDN pool and number assignment

Business Rules:
- Listing returns available numbers only, oldest first, capped by settings
- Assignment is atomic with the application write and its audit entry
- A number is never released once assigned

Called by: main.py (router mount)
Depends on: services/number_service, dependencies
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import acting_agent_id, client_ip, require_agent
from ..models import Agent
from ..schemas.agent import AssignNumberRequest
from ..services import number_service
from ..services.application_service import application_to_dict

router = APIRouter(tags=["numbers"])


@router.get("/api/msisdn/available")
async def list_available_numbers(
    limit: int | None = Query(None, ge=1),
    agent: Agent = Depends(require_agent),
    db: Session = Depends(get_db),
):
    return [number_service.number_to_dict(n) for n in number_service.list_available(db, limit)]


@router.post("/api/agent/applications/{application_id}/assign-number")
async def assign_number(
    application_id: int,
    payload: AssignNumberRequest,
    request: Request,
    agent: Agent = Depends(require_agent),
    db: Session = Depends(get_db),
):
    number, app = number_service.assign_number(
        db,
        payload.msisdn_id,
        application_id,
        agent_id=acting_agent_id(agent, payload.agent_id),
        ip_address=client_ip(request),
    )
    return {
        "success": True,
        "assigned_number": number.msisdn,
        "application": application_to_dict(app),
    }
