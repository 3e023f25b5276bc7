"""
dependencies.py — Shared FastAPI Dependencies

Authentication for the agent portal and small request helpers. All routers
import from here instead of reading the session themselves.

Business Rules:
- get_agent returns None if not logged in (non-throwing)
- require_agent raises 401 if not logged in, 403 if deactivated
- A body agent_id, when sent, must be the logged-in agent (403 otherwise)
- client_ip prefers X-Forwarded-For (first hop) behind the proxy

Called by: routers/agent.py, routers/numbers.py, routers/applications.py
Depends on: models, database
"""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .database import get_db
from .exceptions import Forbidden
from .models import Agent

log = logging.getLogger(__name__)


# ── Authentication ────────────────────────────────────────────────────


def get_agent(request: Request, db: Session) -> Agent | None:
    """Return current agent from session, or None if not logged in."""
    agent_id = request.session.get("agent_id")
    if not agent_id:
        return None
    agent = db.get(Agent, agent_id)
    if agent is None:
        request.session.clear()
    return agent


def require_agent(request: Request, db: Session = Depends(get_db)) -> Agent:
    """Dependency: raises 401 if no agent is logged in, 403 if deactivated."""
    agent = get_agent(request, db)
    if not agent:
        raise HTTPException(401, "Not authenticated")
    if not agent.is_active:
        request.session.clear()
        raise HTTPException(403, "Account deactivated, contact admin")
    return agent


def acting_agent_id(agent: Agent, body_agent_id: int | None) -> int:
    """The agent id to act as: always the session agent."""
    if body_agent_id is not None and body_agent_id != agent.id:
        log.warning("Agent %s tried to act as agent %s", agent.id, body_agent_id)
        raise Forbidden("Cannot act on behalf of another agent", agent_id=body_agent_id)
    return agent.id


# ── Request helpers ───────────────────────────────────────────────────


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
