"""
API tests for the staff dashboard.

Verifies:
- Unauthenticated requests return 401, missing roles 403
- Manager-only writes are denied to staff
- Floor table numbers are unique; deleting a table is never blocked
- The change stream pushes committed order inserts
- Finance report, export queueing and role management
"""

import uuid
from datetime import date, timedelta

import pytest
from starlette.websockets import WebSocketDisconnect

from app.models import Profile
from app.realtime import get_broker
from tests.conftest import _add, run


def _order(menu, table_number="5"):
    return {
        "table_number": table_number,
        "items": [{"menu_item_id": str(menu["pizza"].id), "quantity": 1, "price": 12.5}],
    }


# =============================================================================
# AUTHENTICATION & ROLES
# =============================================================================


class TestAccessControl:

    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/orders"),
        ("GET", "/api/menu"),
        ("GET", "/api/tables"),
        ("GET", "/api/reservations"),
        ("GET", "/api/staff"),
        ("GET", "/api/inventory"),
        ("GET", "/api/transactions"),
        ("GET", "/api/finances/report"),
        ("GET", "/api/users"),
        ("GET", "/api/dashboard"),
        ("GET", "/api/me"),
    ])
    def test_requires_auth(self, client, method, path):
        resp = client.request(method, path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json() == {"error": "Please sign in to continue."}

    def test_garbage_token(self, client):
        resp = client.get("/api/orders", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_signed_in_without_role(self, client, roleless_headers):
        assert client.get("/api/orders", headers=roleless_headers).status_code == 403

        me = client.get("/api/me", headers=roleless_headers)
        assert me.status_code == 200
        assert me.json()["role"] is None

    @pytest.mark.parametrize("method,path,body", [
        ("POST", "/api/menu", {"name": "Soup", "price": 5, "category": "Starters"}),
        ("POST", "/api/tables", {"table_number": 3}),
        ("POST", "/api/staff", {"full_name": "A", "email": "a@b.c", "role": "Waiter"}),
        ("POST", "/api/inventory", {"name": "Flour", "category": "Dry", "unit": "kg"}),
        ("GET", "/api/finances/report", None),
        ("GET", "/api/users", None),
    ])
    def test_staff_denied_manager_operations(self, client, staff_headers, method, path, body):
        resp = client.request(method, path, json=body, headers=staff_headers)
        assert resp.status_code == 403

    def test_manager_is_not_admin(self, client, manager_headers):
        assert client.get("/api/users", headers=manager_headers).status_code == 403


# =============================================================================
# FLOOR TABLES
# =============================================================================


class TestFloorTables:

    def test_create_and_list_in_number_order(self, client, manager_headers):
        for number in (12, 3, 7):
            resp = client.post("/api/tables", json={"table_number": number, "seats": 2}, headers=manager_headers)
            assert resp.status_code == 201

        tables = client.get("/api/tables", headers=manager_headers).json()
        assert [t["table_number"] for t in tables] == [3, 7, 12]
        assert all(t["status"] == "available" for t in tables)

    def test_duplicate_number(self, client, manager_headers):
        client.post("/api/tables", json={"table_number": 4}, headers=manager_headers)
        resp = client.post("/api/tables", json={"table_number": 4}, headers=manager_headers)

        assert resp.status_code == 409
        assert resp.json() == {"error": "A table with this number already exists"}

    def test_renumber_onto_existing(self, client, manager_headers):
        client.post("/api/tables", json={"table_number": 1}, headers=manager_headers)
        second = client.post("/api/tables", json={"table_number": 2}, headers=manager_headers).json()

        resp = client.patch(f"/api/tables/{second['id']}", json={"table_number": 1}, headers=manager_headers)
        assert resp.status_code == 409

    def test_staff_can_change_status(self, client, manager_headers, staff_headers):
        table = client.post("/api/tables", json={"table_number": 9}, headers=manager_headers).json()

        resp = client.patch(f"/api/tables/{table['id']}/status", json={"status": "occupied"}, headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "occupied"

    def test_delete_is_not_blocked_by_orders(self, client, menu, manager_headers):
        table = client.post("/api/tables", json={"table_number": 5}, headers=manager_headers).json()
        client.post("/api/orders", json=_order(menu, "5"))

        events = []
        with get_broker().subscribe("floor_tables", events.append):
            resp = client.delete(f"/api/tables/{table['id']}", headers=manager_headers)

        assert resp.status_code == 200
        assert client.get("/api/tables", headers=manager_headers).json() == []
        assert events[0].event_type.value == "DELETE"
        assert events[0].old["table_number"] == 5

    def test_missing_table(self, client, manager_headers):
        resp = client.delete(f"/api/tables/{uuid.uuid4()}", headers=manager_headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Table not found"}


# =============================================================================
# ORDERS (STAFF SIDE)
# =============================================================================


class TestOrderManagement:

    def test_status_update_and_filter(self, client, menu, staff_headers):
        order = client.post("/api/orders", json=_order(menu)).json()["order"]
        client.post("/api/orders", json=_order(menu))

        resp = client.patch(f"/api/orders/{order['id']}/status", json={"status": "preparing"}, headers=staff_headers)
        assert resp.status_code == 200

        preparing = client.get("/api/orders?status=preparing", headers=staff_headers).json()
        assert [o["id"] for o in preparing] == [order["id"]]

    def test_invalid_status(self, client, menu, staff_headers):
        order = client.post("/api/orders", json=_order(menu)).json()["order"]
        resp = client.patch(f"/api/orders/{order['id']}/status", json={"status": "eaten"}, headers=staff_headers)
        assert resp.status_code == 400

    def test_delete_needs_manager(self, client, menu, staff_headers, manager_headers):
        order = client.post("/api/orders", json=_order(menu)).json()["order"]

        assert client.delete(f"/api/orders/{order['id']}", headers=staff_headers).status_code == 403
        assert client.delete(f"/api/orders/{order['id']}", headers=manager_headers).status_code == 200
        assert client.get(f"/api/orders/{order['id']}", headers=manager_headers).status_code == 404


# =============================================================================
# CHANGE STREAM
# =============================================================================


class TestChangeStream:

    def test_order_insert_is_pushed(self, client, menu, staff_headers):
        token = staff_headers["Authorization"].split()[1]

        with client.websocket_connect(f"/ws/orders?token={token}") as ws:
            client.post("/api/orders", json=_order(menu, "T-1"))
            message = ws.receive_json()

        assert message["table"] == "orders"
        assert message["eventType"] == "INSERT"
        assert message["new"]["table_number"] == "T-1"

    def test_rejects_missing_token(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/orders"):
                pass

    def test_rejects_unknown_table(self, client, staff_headers):
        token = staff_headers["Authorization"].split()[1]
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect(f"/ws/user_roles?token={token}"):
                pass


# =============================================================================
# RESERVATIONS
# =============================================================================


class TestReservations:

    def test_filter_by_day(self, client, staff_headers):
        today = date.today()
        for day, hour in ((today, "19:00"), (today, "18:00"), (today + timedelta(days=1), "20:00")):
            resp = client.post("/api/reservations", json={
                "customer_name": "Ada",
                "customer_phone": "555-0100",
                "reservation_date": day.isoformat(),
                "reservation_time": hour,
                "guests": 2,
            }, headers=staff_headers)
            assert resp.status_code == 201

        todays = client.get(f"/api/reservations?date={today.isoformat()}", headers=staff_headers).json()
        assert [r["reservation_time"] for r in todays] == ["18:00:00", "19:00:00"]
        assert all(r["status"] == "pending" for r in todays)

    def test_edit_and_cancel(self, client, staff_headers):
        booking = client.post("/api/reservations", json={
            "customer_name": "Lin",
            "customer_phone": "555-0111",
            "reservation_date": date.today().isoformat(),
            "reservation_time": "19:30",
            "guests": 4,
        }, headers=staff_headers).json()

        resp = client.patch(
            f"/api/reservations/{booking['id']}",
            json={"guests": 6, "status": "confirmed", "table_number": "12"},
            headers=staff_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["guests"] == 6
        assert resp.json()["status"] == "confirmed"
        assert resp.json()["customer_name"] == "Lin"

        assert client.delete(f"/api/reservations/{booking['id']}", headers=staff_headers).status_code == 200
        assert client.get("/api/reservations", headers=staff_headers).json() == []
        assert client.delete(f"/api/reservations/{booking['id']}", headers=staff_headers).status_code == 404


# =============================================================================
# MENU
# =============================================================================


class TestMenuCatalog:

    def test_public_menu_lists_available_only(self, client, menu):
        resp = client.get("/api/menu/public")
        assert resp.status_code == 200
        assert [m["name"] for m in resp.json()] == ["Margherita", "Caesar Salad"]

    def test_manager_creates_updates_and_deletes(self, client, manager_headers):
        created = client.post("/api/menu", json={
            "name": "Tomato Soup",
            "price": 6.5,
            "category": "Starters",
        }, headers=manager_headers)
        assert created.status_code == 201
        item = created.json()
        assert item["available"] is True
        assert item["popular"] is False

        updated = client.patch(
            f"/api/menu/{item['id']}",
            json={"price": 7.0, "available": False},
            headers=manager_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["price"] == 7.0
        assert updated.json()["name"] == "Tomato Soup"
        assert client.get("/api/menu/public").json() == []

        assert client.delete(f"/api/menu/{item['id']}", headers=manager_headers).status_code == 200
        assert client.get("/api/menu", headers=manager_headers).json() == []

    def test_staff_sees_full_catalog(self, client, menu, staff_headers):
        items = client.get("/api/menu", headers=staff_headers).json()
        assert len(items) == 3


# =============================================================================
# STAFF
# =============================================================================


class TestStaffRoster:

    def test_manager_maintains_roster(self, client, manager_headers):
        created = client.post("/api/staff", json={
            "full_name": "Maria Lopez",
            "email": "maria@example.com",
            "role": "Head Chef",
        }, headers=manager_headers)
        assert created.status_code == 201
        member = created.json()
        assert member["status"] == "active"

        client.post("/api/staff", json={
            "full_name": "Ben Cole",
            "email": "ben@example.com",
            "role": "Waiter",
            "status": "vacation",
        }, headers=manager_headers)

        on_leave = client.get("/api/staff?status=vacation", headers=manager_headers).json()
        assert [s["full_name"] for s in on_leave] == ["Ben Cole"]

        updated = client.patch(f"/api/staff/{member['id']}", json={"status": "off"}, headers=manager_headers)
        assert updated.json()["status"] == "off"
        assert updated.json()["role"] == "Head Chef"

        assert client.delete(f"/api/staff/{member['id']}", headers=manager_headers).status_code == 200
        roster = client.get("/api/staff", headers=manager_headers).json()
        assert [s["full_name"] for s in roster] == ["Ben Cole"]

    def test_invalid_email(self, client, manager_headers):
        resp = client.post("/api/staff", json={
            "full_name": "Maria Lopez",
            "email": "not-an-email",
            "role": "Head Chef",
        }, headers=manager_headers)
        assert resp.status_code == 400


# =============================================================================
# INVENTORY
# =============================================================================


class TestInventory:

    def _stock(self, client, headers, name, current, minimum, cost=None):
        resp = client.post("/api/inventory", json={
            "name": name,
            "category": "Dry Goods",
            "unit": "kg",
            "current_stock": current,
            "minimum_stock": minimum,
            "cost_per_unit": cost,
        }, headers=headers)
        assert resp.status_code == 201
        return resp.json()

    def test_alerts_most_depleted_first(self, client, manager_headers, staff_headers):
        self._stock(client, manager_headers, "Flour", 8, 10, cost=2.0)
        self._stock(client, manager_headers, "Basil", 1, 10, cost=10.0)
        self._stock(client, manager_headers, "Olive Oil", 20, 10)

        resp = client.get("/api/inventory/alerts", headers=staff_headers)
        assert resp.status_code == 200

        body = resp.json()
        assert [(a["name"], a["stock_status"]) for a in body["alerts"]] == [
            ("Basil", "critical"),
            ("Flour", "low"),
        ]
        assert body["critical"] == 1
        assert body["total_value"] == 26.0

    def test_restock_clears_alert(self, client, manager_headers):
        flour = self._stock(client, manager_headers, "Flour", 2, 10)

        updated = client.patch(f"/api/inventory/{flour['id']}", json={"current_stock": 25}, headers=manager_headers)
        assert updated.status_code == 200
        assert updated.json()["current_stock"] == 25
        assert client.get("/api/inventory/alerts", headers=manager_headers).json()["alerts"] == []

        assert client.delete(f"/api/inventory/{flour['id']}", headers=manager_headers).status_code == 200
        assert client.get("/api/inventory", headers=manager_headers).json() == []


# =============================================================================
# FINANCES
# =============================================================================


class TestFinances:

    def test_report(self, client, ledger, manager_headers):
        resp = client.get("/api/finances/report?range=week", headers=manager_headers)
        assert resp.status_code == 200

        report = resp.json()
        assert report["granularity"] == "day"
        assert len(report["time_series"]) == 7
        assert report["totals"]["revenue"] == 400
        assert report["totals"]["expenses"] == 150
        assert report["totals"]["margin"] == 62.5
        assert report["income_by_category"][0] == {"category": "Food Sales", "amount": 300, "percentage": 75.0}
        assert len(report["transactions"]) == 3

    def test_custom_range_validation(self, client, manager_headers):
        resp = client.get(
            "/api/finances/report?range=custom&start=2024-02-01&end=2024-01-01",
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Start date must be on or before end date"}

    def test_export_is_queued(self, client, ledger, manager_headers, monkeypatch):
        queued = []

        class FakeTask:
            def delay(self, report):
                queued.append(report)
                return type("AsyncResult", (), {"id": "task-123"})()

        monkeypatch.setattr("app.api.finances.export_financial_report", FakeTask())

        resp = client.post("/api/finances/export?range=month", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json()["task_id"] == "task-123"
        assert queued[0]["totals"]["transaction_count"] == 3

    def test_transaction_records_author(self, client, manager_headers):
        resp = client.post("/api/transactions", json={
            "type": "expense",
            "category": "Utilities",
            "description": "Electricity",
            "amount": 120.5,
            "transaction_date": date.today().isoformat(),
        }, headers=manager_headers)

        assert resp.status_code == 201
        assert resp.json()["created_by"] is not None


# =============================================================================
# USERS & ROLES
# =============================================================================


class TestUserRoles:

    def test_admin_assigns_changes_and_removes(self, client, admin_headers):
        user_id = uuid.uuid4()
        run(_add(Profile(id=user_id, full_name="Grace", email="grace@example.com")))

        granted = client.put(f"/api/users/{user_id}/role", json={"role": "staff"}, headers=admin_headers)
        assert granted.status_code == 200
        assert granted.json()["role"] == "staff"

        changed = client.put(f"/api/users/{user_id}/role", json={"role": "manager"}, headers=admin_headers)
        assert changed.json()["role"] == "manager"
        assert changed.json()["role_id"] == granted.json()["role_id"]

        removed = client.put(f"/api/users/{user_id}/role", json={"role": None}, headers=admin_headers)
        assert removed.json()["role"] is None

        users = client.get("/api/users", headers=admin_headers).json()
        assert [u["full_name"] for u in users] == ["Grace"]


# =============================================================================
# DASHBOARD & HEALTH
# =============================================================================


class TestDashboardSummary:

    def test_counts(self, client, menu, staff_headers):
        client.post("/api/orders", json=_order(menu))

        summary = client.get("/api/dashboard", headers=staff_headers).json()
        assert summary["active_orders"] == 1
        assert summary["orders_by_status"]["pending"] == 1
        assert summary["orders_by_status"]["completed"] == 0


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200

    body = resp.json()
    assert body["database"] == "healthy"
    assert body["rate_limiter"] == "healthy"
    assert body["image_service"] == "healthy"
