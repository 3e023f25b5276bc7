"""
schemas/agent.py — Pydantic models for agent review endpoints

Business Rules:
- agent_id in a body is optional; the acting agent comes from the session
  and a mismatching agent_id is refused by the router
- Rejections must carry a reason

Called by: routers/agent.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class AgentLogin(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=200)


class AssignRequest(BaseModel):
    store_id: int
    agent_id: int | None = None


class VerifyRequest(BaseModel):
    agent_id: int | None = None


class RejectRequest(BaseModel):
    reason: str = Field(..., max_length=2000)
    agent_id: int | None = None

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Rejection reason is required")
        return v


class AssignNumberRequest(BaseModel):
    msisdn_id: int
    agent_id: int | None = None
