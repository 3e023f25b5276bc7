"""
test_services_agents.py — Tests for services/agent_service.py and audit_service.py

Covers bcrypt hashing, login outcomes, agent creation and password reset,
profile serialization without secrets, and audit entry serialization.

Called by: pytest
Depends on: smartify.services.agent_service, smartify.services.audit_service
"""

from unittest.mock import patch

import pytest

from smartify.exceptions import Conflict, NotFound, Unauthorized, ValidationFailed
from smartify.services import agent_service, audit_service
from tests.conftest import AGENT_PASSWORD


class TestPasswords:
    def test_hash_and_check(self):
        hashed = agent_service.hash_password("s3cret", rounds=4)
        assert hashed != "s3cret"
        assert agent_service.check_password("s3cret", hashed) is True
        assert agent_service.check_password("wrong", hashed) is False

    def test_malformed_hash_is_mismatch(self):
        assert agent_service.check_password("x", "not-a-bcrypt-hash") is False

    def test_missing_hash(self):
        assert agent_service.check_password("x", None) is False

    def test_overlong_password_refused(self):
        with pytest.raises(ValidationFailed):
            agent_service.hash_password("x" * 73, rounds=4)


class TestAuthenticate:
    def test_valid_credentials(self, db_session, agent):
        assert agent_service.authenticate(db_session, "agent1", AGENT_PASSWORD).id == agent.id

    def test_wrong_password(self, db_session, agent):
        with pytest.raises(Unauthorized):
            agent_service.authenticate(db_session, "agent1", "nope")

    def test_unknown_user(self, db_session):
        with pytest.raises(Unauthorized):
            agent_service.authenticate(db_session, "ghost", "whatever")

    def test_inactive_agent(self, db_session, agent):
        agent.is_active = False
        db_session.commit()
        with pytest.raises(Unauthorized):
            agent_service.authenticate(db_session, "agent1", AGENT_PASSWORD)


class TestAccounts:
    def test_create_agent(self, db_session, store):
        with patch.object(agent_service, "hash_password", lambda p: f"hashed:{p}"):
            created = agent_service.create_agent(
                db_session, "Agent3 ", "Agent3@Smartify.test", "pw", full_name="Agent Three", store_id=store.id
            )
        assert created.username == "Agent3"
        assert created.email == "agent3@smartify.test"
        assert created.password_hash == "hashed:pw"

    def test_create_duplicate(self, db_session, agent):
        with pytest.raises(Conflict):
            agent_service.create_agent(db_session, "agent1", "fresh@smartify.test", "pw")

    def test_create_with_unknown_store(self, db_session):
        with pytest.raises(NotFound):
            agent_service.create_agent(db_session, "agent9", "a9@smartify.test", "pw", store_id=99999)

    def test_set_password(self, db_session, agent):
        agent_service.set_password(db_session, "agent1", "brand-new-password")
        assert agent_service.authenticate(db_session, "agent1", "brand-new-password").id == agent.id

    def test_set_password_unknown(self, db_session):
        with pytest.raises(NotFound):
            agent_service.set_password(db_session, "ghost", "pw")

    def test_profile_has_no_secret(self, agent):
        profile = agent_service.agent_to_dict(agent)
        assert "password_hash" not in profile
        assert profile["username"] == "agent1"
        assert profile["store_name"] == "Main Store - Quezon City"


def test_audit_record_and_serialize(db_session, pending_application, agent):
    entry = audit_service.record(
        db_session, pending_application.id, "application_assigned", {"status": "submitted"},
        agent_id=agent.id, ip_address="127.0.0.1",
    )
    db_session.commit()
    d = audit_service.audit_to_dict(entry)
    assert d["action"] == "application_assigned"
    assert d["agent_name"] == "Agent One"
    assert d["changes"] == {"status": "submitted"}
    assert d["created_at"] is not None
