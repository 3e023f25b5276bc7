"""Agent accounts — password login, profile serialization, account scripts.

Passwords are stored as bcrypt hashes. The profile returned to clients never
includes the hash.
"""

import logging

import bcrypt
from sqlalchemy.orm import Session

from ..exceptions import Conflict, NotFound, Unauthorized, ValidationFailed
from ..models import Agent, Store

log = logging.getLogger("smartify.agents")


def hash_password(password: str, rounds: int = 12) -> str:
    raw = password.encode("utf-8")
    if len(raw) > 72:
        # bcrypt only reads the first 72 bytes
        raise ValidationFailed("Password must be at most 72 bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the row
        log.warning("Unreadable password hash; treating as mismatch")
        return False


def authenticate(db: Session, username: str, password: str) -> Agent:
    """Return the active agent for these credentials or raise Unauthorized.

    Unknown user, inactive account and wrong password share one message.
    """
    agent = db.query(Agent).filter(Agent.username == username.strip()).first()
    if agent is None or not agent.is_active or not check_password(password, agent.password_hash):
        log.info("Failed agent login for %r", username)
        raise Unauthorized("Invalid username or password")
    log.info("Agent %s logged in", agent.username)
    return agent


def create_agent(
    db: Session,
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    store_id: int | None = None,
    role: str = "agent",
) -> Agent:
    username = username.strip()
    email = email.strip().lower()
    existing = (
        db.query(Agent)
        .filter((Agent.username == username) | (Agent.email == email))
        .first()
    )
    if existing:
        raise Conflict("Agent with this username or email already exists", agent_id=existing.id)
    if store_id is not None and db.get(Store, store_id) is None:
        raise NotFound("Store not found", store_id=store_id)

    agent = Agent(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        store_id=store_id,
        role=role,
    )
    db.add(agent)
    db.commit()
    db.refresh(agent)
    log.info("Created agent %s (id=%s, role=%s)", agent.username, agent.id, agent.role)
    return agent


def set_password(db: Session, username: str, password: str) -> Agent:
    agent = db.query(Agent).filter(Agent.username == username.strip()).first()
    if agent is None:
        raise NotFound("Agent not found", username=username)
    agent.password_hash = hash_password(password)
    db.commit()
    log.info("Password reset for agent %s", agent.username)
    return agent


def agent_to_dict(agent: Agent) -> dict:
    return {
        "id": agent.id,
        "username": agent.username,
        "email": agent.email,
        "full_name": agent.full_name,
        "store_id": agent.store_id,
        "store_name": agent.store.name if agent.store else None,
        "role": agent.role,
        "is_active": agent.is_active,
    }
