"""
test_routers_applications.py — Tests for routers/applications.py

Drives the customer wizard over HTTP: create, fetch by cart id, update,
the five sections, signature and self-submit. Checks status codes and the
error body shape for the refusal paths.

Called by: pytest
Depends on: conftest.py fixtures (public_client, db_session, catalog rows)
"""

from smartify.models import Application, AuditLog
from tests.conftest import make_application

ADDRESS = {
    "address_type": "residential",
    "house_lot_number": "Lot 4",
    "street_name": "Commonwealth Ave",
}

PRIVACY = {
    "terms_accepted": True,
    "privacy_notice_accepted": True,
    "subscriber_declaration_accepted": True,
    "product_offers": True,
}


def _create(client, email="juan@gmail.com", **extra):
    resp = client.post("/api/applications", json={"email": email, **extra})
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestCreate:
    def test_creates_pending(self, public_client):
        data = _create(public_client, email="Juan@Gmail.com", sim_type="esim")
        assert data["status"] == "pending"
        assert data["email"] == "juan@gmail.com"
        assert data["sim_type"] == "esim"
        assert data["cart_id"].startswith("CART-")
        assert data["email_verified"] is False

    def test_default_sim_type(self, public_client):
        assert _create(public_client)["sim_type"] == "physical"

    def test_duplicate_pending_returns_existing_cart(self, public_client):
        first = _create(public_client)
        resp = public_client.post("/api/applications", json={"email": "juan@gmail.com"})
        assert resp.status_code == 409
        body = resp.json()
        assert body["existing_cart_id"] == first["cart_id"]
        assert body["status_code"] == 409
        assert "request_id" in body

    def test_invalid_email(self, public_client):
        resp = public_client.post("/api/applications", json={"email": "not-an-email"})
        assert resp.status_code == 422
        assert resp.json()["error"] == "Validation error"

    def test_invalid_sim_type(self, public_client):
        resp = public_client.post("/api/applications", json={"email": "a@gmail.com", "sim_type": "nano"})
        assert resp.status_code == 422


class TestFetchAndUpdate:
    def test_get_by_cart_id_with_sections(self, public_client):
        created = _create(public_client)
        resp = public_client.get(f"/api/applications/{created['cart_id']}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == created["id"]
        assert data["addresses"] == []
        assert data["order_items"] == []
        assert data["customer_information"] is None

    def test_unknown_cart_id(self, public_client):
        resp = public_client.get("/api/applications/CART-NOPE")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Application not found"

    def test_update_editable_fields(self, public_client):
        created = _create(public_client)
        resp = public_client.put(
            f"/api/applications/{created['id']}",
            json={"sim_type": "esim", "customer_id_number": "N01-23-456789"},
        )
        assert resp.status_code == 200
        assert resp.json()["sim_type"] == "esim"
        assert resp.json()["customer_id_number"] == "N01-23-456789"

    def test_update_rejects_status(self, public_client):
        created = _create(public_client)
        resp = public_client.put(f"/api/applications/{created['id']}", json={"status": "verified"})
        assert resp.status_code == 422

    def test_update_locked_application(self, public_client, db_session):
        app = make_application(db_session, status="verified")
        resp = public_client.put(f"/api/applications/{app.id}", json={"sim_type": "esim"})
        assert resp.status_code == 400
        assert resp.json()["current_status"] == "verified"


class TestSections:
    def test_customer_information(self, public_client, db_session):
        created = _create(public_client)
        resp = public_client.post(
            f"/api/applications/{created['id']}/customer-information",
            json={"id_type": "passport", "id_front_url": "/u/front.jpg", "id_back_url": "/u/back.jpg"},
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        again = public_client.post(
            f"/api/applications/{created['id']}/customer-information",
            json={"id_type": "passport", "id_front_url": "/u/front.jpg", "id_back_url": "/u/back.jpg"},
        )
        assert again.status_code == 409

    def test_address_defaults_zip_from_barangay(self, public_client, locations):
        created = _create(public_client)
        body = dict(
            ADDRESS,
            province_id=locations["province"].id,
            city_id=locations["city"].id,
            barangay_id=locations["barangay"].id,
        )
        resp = public_client.post(f"/api/applications/{created['id']}/addresses", json=body)
        assert resp.status_code == 200
        data = public_client.get(f"/api/applications/{created['cart_id']}").json()
        assert data["addresses"][0]["zip_code"] == "1121"

    def test_address_wrong_city(self, public_client, locations):
        created = _create(public_client)
        body = dict(ADDRESS, city_id=locations["other_city"].id, barangay_id=locations["barangay"].id)
        resp = public_client.post(f"/api/applications/{created['id']}/addresses", json=body)
        assert resp.status_code == 400

    def test_employment_requires_employer(self, public_client):
        created = _create(public_client)
        resp = public_client.post(
            f"/api/applications/{created['id']}/employment", json={"employment_type": "full-time"}
        )
        assert resp.status_code == 422

    def test_self_employed_without_employer(self, public_client):
        created = _create(public_client)
        resp = public_client.post(
            f"/api/applications/{created['id']}/employment",
            json={"employment_type": "self-employed", "monthly_income_range": "50,000 - 100,000"},
        )
        assert resp.status_code == 200

    def test_order_item_priced_server_side(self, public_client, plan, device, device_config):
        created = _create(public_client)
        resp = public_client.post(
            f"/api/applications/{created['id']}/order-items",
            json={
                "plan_id": plan.id,
                "device_id": device.id,
                "device_config_id": device_config.id,
                "one_time_cashout": "3990",
                "monthly_payment": "1.00",
            },
        )
        assert resp.status_code == 200
        item = public_client.get(f"/api/applications/{created['cart_id']}").json()["order_items"][0]
        assert item["device_price"] == "63990.00"
        assert item["monthly_payment"] == "5000.00"

    def test_order_item_negative_cashout(self, public_client, plan, device):
        created = _create(public_client)
        resp = public_client.post(
            f"/api/applications/{created['id']}/order-items",
            json={"plan_id": plan.id, "device_id": device.id, "one_time_cashout": "-1"},
        )
        assert resp.status_code == 422

    def test_privacy_requires_acceptances(self, public_client):
        created = _create(public_client)
        resp = public_client.post(
            f"/api/applications/{created['id']}/privacy-preferences",
            json=dict(PRIVACY, terms_accepted=False),
        )
        assert resp.status_code == 422

    def test_privacy_saved(self, public_client):
        created = _create(public_client)
        resp = public_client.post(f"/api/applications/{created['id']}/privacy-preferences", json=PRIVACY)
        assert resp.status_code == 200
        prefs = public_client.get(f"/api/applications/{created['cart_id']}").json()["privacy_preferences"]
        assert prefs["product_offers"] is True
        assert prefs["sister_companies"] is False

    def test_section_on_unknown_application(self, public_client):
        resp = public_client.post("/api/applications/99999/privacy-preferences", json=PRIVACY)
        assert resp.status_code == 404

    def test_section_on_rejected_application(self, public_client, db_session):
        app = make_application(db_session, status="rejected", rejection_reason="Bad ID")
        resp = public_client.post(f"/api/applications/{app.id}/addresses", json=ADDRESS)
        assert resp.status_code == 400


class TestSignatureAndSubmit:
    def test_signature(self, public_client):
        created = _create(public_client)
        resp = public_client.post(
            f"/api/applications/{created['id']}/signature",
            json={"signature_data_url": "data:image/png;base64,iVBORw0KGgo="},
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "signature_url": "data:image/png;base64,iVBORw0KGgo="}

    def test_submit_requires_verified_email(self, public_client):
        created = _create(public_client)
        resp = public_client.post(
            f"/api/applications/{created['id']}/submit", json={"signature_url": "data:image/png;base64,x"}
        )
        assert resp.status_code == 400
        assert "verified" in resp.json()["error"]

    def test_submit_requires_signature(self, public_client, db_session):
        app = make_application(db_session, email_verified=True)
        resp = public_client.post(f"/api/applications/{app.id}/submit", json={})
        assert resp.status_code == 400
        assert "signature" in resp.json()["error"]

    def test_submit(self, public_client, db_session):
        app = make_application(db_session, email_verified=True)
        resp = public_client.post(
            f"/api/applications/{app.id}/submit", json={"signature_url": "data:image/png;base64,x"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "submitted"
        assert data["submitted_at"] is not None
        assert data["assigned_agent_id"] is None
        actions = [e.action for e in db_session.query(AuditLog).filter_by(application_id=app.id)]
        assert "application_submitted" in actions

    def test_submit_twice(self, public_client, db_session):
        app = make_application(db_session, email_verified=True, signature_url="data:image/png;base64,x")
        assert public_client.post(f"/api/applications/{app.id}/submit", json={}).status_code == 200
        resp = public_client.post(f"/api/applications/{app.id}/submit", json={})
        assert resp.status_code == 400
        assert resp.json()["current_status"] == "submitted"
        assert db_session.get(Application, app.id).status == "submitted"
