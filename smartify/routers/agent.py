"""
routers/agent.py — Agent portal: login, review queue, assign / verify / reject

Business Rules:
- Login stores agent_id in the signed session cookie
- Every review endpoint requires a logged-in, active agent
- The acting agent is the session agent; a different body agent_id is 403
- Listing precedence: search, then agent_id scope, then status, then default
- Number assignment lives in routers/numbers.py

Called by: main.py (router mount)
Depends on: services/application_service, services/agent_service, dependencies
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import acting_agent_id, client_ip, require_agent
from ..models import Agent
from ..rate_limit import limiter
from ..schemas.agent import AgentLogin, AssignRequest, RejectRequest, VerifyRequest
from ..services import agent_service
from ..services import application_service as svc
from ..services.audit_service import audit_to_dict

router = APIRouter(tags=["agent"])


# ── Session ──────────────────────────────────────────────────────────


@router.post("/api/agent/login")
@limiter.limit(settings.rate_limit_login)
async def login(request: Request, payload: AgentLogin, db: Session = Depends(get_db)):
    agent = agent_service.authenticate(db, payload.username, payload.password)
    request.session.clear()
    request.session["agent_id"] = agent.id
    return agent_service.agent_to_dict(agent)


@router.post("/api/agent/logout")
async def logout(request: Request):
    request.session.clear()
    return {"ok": True}


@router.get("/api/agent/me")
async def me(agent: Agent = Depends(require_agent)):
    return agent_service.agent_to_dict(agent)


# ── Review queue ─────────────────────────────────────────────────────


@router.get("/api/agent/applications")
async def list_applications(
    search: str = "",
    agent_id: int | None = None,
    status: str = "",
    agent: Agent = Depends(require_agent),
    db: Session = Depends(get_db),
):
    if search.strip():
        apps = svc.search(db, search)
    elif agent_id is not None:
        apps = svc.search_by_agent_scope(db, acting_agent_id(agent, agent_id))
    elif status.strip():
        apps = svc.list_by_status(db, status.strip())
    else:
        apps = svc.default_listing(db)
    return [svc.application_to_dict(a) for a in apps]


@router.get("/api/agent/applications/{application_id}")
async def get_application_detail(
    application_id: int,
    agent: Agent = Depends(require_agent),
    db: Session = Depends(get_db),
):
    return svc.application_with_sections(svc.get_application(db, application_id), enrich=True)


@router.get("/api/agent/applications/{application_id}/audit")
async def get_audit_trail(
    application_id: int,
    agent: Agent = Depends(require_agent),
    db: Session = Depends(get_db),
):
    return [audit_to_dict(e) for e in svc.audit_trail(db, application_id)]


# ── Transitions ──────────────────────────────────────────────────────


@router.post("/api/agent/applications/{application_id}/assign")
async def assign_application(
    application_id: int,
    payload: AssignRequest,
    request: Request,
    agent: Agent = Depends(require_agent),
    db: Session = Depends(get_db),
):
    app = svc.assign_to_agent(
        db,
        application_id,
        agent_id=acting_agent_id(agent, payload.agent_id),
        store_id=payload.store_id,
        ip_address=client_ip(request),
    )
    return svc.application_to_dict(app)


@router.post("/api/agent/applications/{application_id}/verify")
async def verify_application(
    application_id: int,
    payload: VerifyRequest,
    request: Request,
    agent: Agent = Depends(require_agent),
    db: Session = Depends(get_db),
):
    app = svc.verify_application(
        db,
        application_id,
        agent_id=acting_agent_id(agent, payload.agent_id),
        ip_address=client_ip(request),
    )
    return svc.application_to_dict(app)


@router.post("/api/agent/applications/{application_id}/reject")
async def reject_application(
    application_id: int,
    payload: RejectRequest,
    request: Request,
    agent: Agent = Depends(require_agent),
    db: Session = Depends(get_db),
):
    app = svc.reject_application(
        db,
        application_id,
        agent_id=acting_agent_id(agent, payload.agent_id),
        reason=payload.reason,
        ip_address=client_ip(request),
    )
    return svc.application_to_dict(app)
