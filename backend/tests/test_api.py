"""
HTTP API tests.

Verifies:
- Token issue and validation endpoints
- Bearer token enforcement on admin routes (401)
- Paged sales/subscriptions and single-order responses
- User management, including the websocket logout on delete
"""

import json

import pytest

from storefront.models import User
from storefront.realtime import InboundEvent
from storefront.routes.ws import ws_endpoint

from .conftest import FakeTransport


PASSWORD = "Password123!"


class TestAuthentication:
    def test_issue_token(self, client, staff_user):
        resp = client.post("/api/authenticate", json={"email": "admin@example.com", "password": PASSWORD})

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["error"] is False
        assert len(body["authentication_token"]["token"]) == 26
        assert body["authentication_token"]["expiry"].endswith("Z")

    def test_issued_token_authenticates(self, client, staff_user):
        token = client.post(
            "/api/authenticate", json={"email": "admin@example.com", "password": PASSWORD}
        ).get_json()["authentication_token"]["token"]

        resp = client.post("/api/is-authenticated", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 200
        assert resp.get_json()["message"] == "authenticated admin@example.com"

    def test_reissue_invalidates_previous_token(self, client, staff_user):
        creds = {"email": "admin@example.com", "password": PASSWORD}
        first = client.post("/api/authenticate", json=creds).get_json()["authentication_token"]["token"]
        client.post("/api/authenticate", json=creds)

        resp = client.post("/api/is-authenticated", headers={"Authorization": f"Bearer {first}"})

        assert resp.status_code == 401

    @pytest.mark.parametrize("payload", [
        {"email": "admin@example.com", "password": "Wrong123!"},
        {"email": "nobody@example.com", "password": PASSWORD},
    ])
    def test_bad_credentials(self, client, staff_user, payload):
        assert client.post("/api/authenticate", json=payload).status_code == 401

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/authenticate", json={"email": "admin@example.com"}).status_code == 400

    def test_non_object_body(self, client, db_session):
        assert client.post("/api/authenticate", json=["admin@example.com", PASSWORD]).status_code == 400

    def test_is_authenticated_without_header(self, client, db_session):
        assert client.post("/api/is-authenticated").status_code == 401


class TestUnauthenticatedAccess:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/admin/all-sales"),
            ("POST", "/api/admin/all-subscriptions"),
            ("GET", "/api/admin/get-sale/1"),
            ("POST", "/api/admin/orders/1/status"),
            ("GET", "/api/admin/all-users"),
            ("GET", "/api/admin/all-users/1"),
            ("POST", "/api/admin/all-users/edit/0"),
            ("POST", "/api/admin/all-users/delete/1"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/admin/all-users", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestOrders:
    def test_all_sales_paged(self, client, auth_headers, widgets, make_order):
        for _ in range(12):
            make_order(widgets["one_off"])
        make_order(widgets["recurring"])

        resp = client.post("/api/admin/all-sales", json={"page_size": 5, "page": 3}, headers=auth_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["current_page"] == 3
        assert body["page_size"] == 5
        assert body["total_records"] == 12
        assert body["last_page"] == 2
        assert len(body["orders"]) == 2

    def test_all_subscriptions(self, client, auth_headers, widgets, make_order):
        make_order(widgets["one_off"])
        make_order(widgets["recurring"])

        body = client.post("/api/admin/all-subscriptions", json={}, headers=auth_headers).get_json()

        assert body["total_records"] == 1
        assert body["orders"][0]["widget"]["name"] == "Bronze Plan"

    @pytest.mark.parametrize("payload", [
        {"page_size": 0, "page": 1},
        {"page_size": 10, "page": 0},
        {"page_size": "ten", "page": 1},
    ])
    def test_invalid_paging(self, client, auth_headers, payload):
        resp = client.post("/api/admin/all-sales", json=payload, headers=auth_headers)
        assert resp.status_code == 400

    def test_get_sale(self, client, auth_headers, widgets, make_order):
        order = make_order(widgets["one_off"])

        resp = client.get(f"/api/admin/get-sale/{order.id}", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.get_json()["customer"]["first_name"] == "Jane"

    def test_get_missing_sale(self, client, auth_headers):
        assert client.get("/api/admin/get-sale/9999", headers=auth_headers).status_code == 404

    def test_update_status(self, client, auth_headers, widgets, make_order):
        order = make_order(widgets["one_off"])

        resp = client.post(f"/api/admin/orders/{order.id}/status", json={"status_id": 3}, headers=auth_headers)

        assert resp.status_code == 200
        assert client.get(f"/api/admin/get-sale/{order.id}", headers=auth_headers).get_json()["status_id"] == 3

    def test_update_status_requires_int(self, client, auth_headers):
        resp = client.post("/api/admin/orders/1/status", json={"status_id": "3"}, headers=auth_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("path", [
        "/api/admin/all-sales",
        "/api/admin/all-subscriptions",
        "/api/admin/orders/1/status",
        "/api/admin/all-users/edit/0",
    ])
    def test_non_object_body_rejected(self, client, auth_headers, path):
        resp = client.post(path, json=[1], headers=auth_headers)
        assert resp.status_code == 400


class TestUsers:
    def test_list_users(self, client, auth_headers):
        body = client.get("/api/admin/all-users", headers=auth_headers).get_json()

        assert body["count"] == 1
        assert "password_hash" not in body["users"][0]

    def test_create_user(self, client, auth_headers):
        resp = client.post("/api/admin/all-users/edit/0", json={
            "first_name": "New", "last_name": "Hire", "email": "New@Example.com", "password": PASSWORD,
        }, headers=auth_headers)

        assert resp.status_code == 201
        assert resp.get_json()["user"]["email"] == "new@example.com"

    def test_create_user_weak_password(self, client, auth_headers):
        resp = client.post("/api/admin/all-users/edit/0", json={
            "first_name": "New", "last_name": "Hire", "email": "new@example.com", "password": "weak",
        }, headers=auth_headers)

        assert resp.status_code == 400

    def test_create_user_duplicate_email(self, client, auth_headers):
        resp = client.post("/api/admin/all-users/edit/0", json={
            "first_name": "Dup", "last_name": "User", "email": "admin@example.com", "password": PASSWORD,
        }, headers=auth_headers)

        assert resp.status_code == 409

    def test_get_missing_user(self, client, auth_headers):
        assert client.get("/api/admin/all-users/9999", headers=auth_headers).status_code == 404

    def test_delete_user_broadcasts_logout(self, client, db_session, auth_headers, hub):
        victim = User(first_name="Gone", last_name="Soon", email="gone@example.com", password_hash="unused")
        db_session.add(victim)
        db_session.commit()
        victim_id = victim.id

        resp = client.post(f"/api/admin/all-users/delete/{victim_id}", headers=auth_headers)

        assert resp.status_code == 200
        assert db_session.query(User).filter_by(id=victim_id).first() is None
        kind, event = hub._inbox.get_nowait()
        assert event == InboundEvent(action="deleteUser", user_id=victim_id)

    def test_cannot_delete_self(self, client, auth_headers, staff_user):
        resp = client.post(f"/api/admin/all-users/delete/{staff_user.id}", headers=auth_headers)
        assert resp.status_code == 400


class TestSystem:
    def test_health(self, client, db_session, hub):
        resp = client.get("/health")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "ok"
        assert body["database"]["status"] == "healthy"
        assert body["broadcast_hub"]["running"] is False


class TestWebsocketEndpoint:
    def test_route_registered(self, app):
        assert "/ws" in {rule.rule for rule in app.url_map.iter_rules()}

    def test_greets_registers_and_listens(self, app, hub):
        transport = FakeTransport(incoming=[json.dumps({"action": "deleteUser", "user_id": 5})])
        with app.test_request_context("/ws", environ_base={"REMOTE_ADDR": "10.0.0.1"}):
            ws_endpoint(transport)

        assert json.loads(transport.sent[0]) == {"action": "", "message": "Connected to server", "user_id": 0}

        hub.process_pending()
        # register -> event (delivered back to this client) -> unregister
        assert json.loads(transport.sent[1])["action"] == "logout"
        assert len(hub.registry) == 0

    def test_failed_greeting_never_registers(self, app, hub):
        transport = FakeTransport(closed=True)
        with app.test_request_context("/ws"):
            ws_endpoint(transport)

        assert hub.process_pending() == 0


class TestCatalog:
    def test_public_widget(self, client, widgets):
        resp = client.get(f"/api/widget/{widgets['recurring'].id}")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["name"] == "Bronze Plan"
        assert body["is_recurring"] is True
        assert body["plan_id"] == "price_bronze"

    def test_missing_widget(self, client, db_session):
        assert client.get("/api/widget/9999").status_code == 404
