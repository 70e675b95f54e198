"""
Dashboard Client

Python client for the staff dashboard. Reads go through the QueryCache;
every mutation invalidates the queries it affects and reports its outcome
as a toast. Table status and menu availability changes are optimistic:
the cache shows the new value at once and is restored if the server
refuses.

Usage:
    with httpx.Client(base_url="http://localhost:8001") as http:
        client = DashboardClient(http, token=token)
        orders = client.list_orders()
"""

import logging
from datetime import date
from typing import Any, Callable, Iterable, Optional, Union

import httpx

from app.client.cache import KeyLike, OptimisticUpdate, QueryCache
from app.client.notifications import ToastNotifier
from app.core.errors import safe_error_message

logger = logging.getLogger(__name__)

FailureMessage = Union[str, Callable[["DashboardError"], str], None]

ORDERS = ("orders",)
MENU_ITEMS = ("menu_items",)
FLOOR_TABLES = ("floor-tables",)
RESERVATIONS = ("reservations",)
STAFF_MEMBERS = ("staff_members",)
INVENTORY_ITEMS = ("inventory_items",)
TRANSACTIONS = ("transactions",)
FINANCE_REPORT = ("finance-report",)
USERS_WITH_ROLES = ("users-with-roles",)
USER_ROLE = ("user-role",)


class DashboardError(Exception):
    """A request failed; ``message`` is safe to show."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _replace_row(rows: Optional[list], row_id: str, **changes: Any) -> list:
    return [
        {**row, **changes} if str(row.get("id")) == str(row_id) else row
        for row in rows or []
    ]


class DashboardClient:
    """Cached, toast-reporting access to the floor manager API."""

    def __init__(
        self,
        http: httpx.Client,
        token: Optional[str] = None,
        cache: Optional[QueryCache] = None,
        notifier: Optional[ToastNotifier] = None,
    ):
        self.http = http
        self.token = token
        self.cache = cache or QueryCache()
        self.notifier = notifier or ToastNotifier()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send one request and return the decoded JSON body.

        Raises:
            DashboardError: Transport failure or non-2xx response
        """
        try:
            response = self.http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise DashboardError(safe_error_message(e)) from e

        if response.is_error:
            try:
                message = response.json()["error"]
            except (ValueError, KeyError, TypeError):
                message = safe_error_message(None)
            raise DashboardError(message, response.status_code)

        return response.json()

    def _query(self, key: KeyLike, path: str, **kwargs: Any) -> Any:
        return self.cache.fetch(key, lambda: self.request("GET", path, **kwargs))

    def _mutate(
        self,
        method: str,
        path: str,
        invalidates: Iterable[KeyLike],
        success: Optional[str] = None,
        failure: FailureMessage = None,
        **kwargs: Any,
    ) -> Any:
        try:
            result = self.request(method, path, **kwargs)
        except DashboardError as e:
            self._report_failure(e, failure)
            raise
        finally:
            for key in invalidates:
                self.cache.invalidate(key)

        if success:
            self.notifier.success(success)
        return result

    def _report_failure(self, error: DashboardError, failure: FailureMessage) -> None:
        if callable(failure):
            self.notifier.error(failure(error))
        else:
            self.notifier.error(failure or error.message)

    def _optimistic(
        self,
        key: KeyLike,
        row_id: Any,
        changes: dict[str, Any],
        method: str,
        path: str,
        success: Optional[str],
        failure: FailureMessage,
        **kwargs: Any,
    ) -> Any:
        update = OptimisticUpdate(
            self.cache, key, lambda rows: _replace_row(rows, row_id, **changes)
        )
        try:
            result = update.run(lambda: self.request(method, path, **kwargs))
        except DashboardError as e:
            self._report_failure(e, failure)
            raise
        if success:
            self.notifier.success(success)
        return result

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def list_orders(self) -> list[dict]:
        return self._query(ORDERS, "/api/orders")

    def get_order(self, order_id: str) -> dict:
        return self._query(ORDERS + (str(order_id),), f"/api/orders/{order_id}")

    def create_order(
        self,
        table_number: str,
        items: list[dict],
        notes: Optional[str] = None,
    ) -> dict:
        body = {"table_number": table_number, "notes": notes, "items": items}
        result = self._mutate(
            "POST", "/api/orders", [ORDERS],
            success="Order created successfully", json=body,
        )
        return result["order"]

    def update_order_status(self, order_id: str, status: str) -> dict:
        return self._mutate(
            "PATCH", f"/api/orders/{order_id}/status", [ORDERS],
            success="Order status updated", json={"status": status},
        )

    # -------------------------------------------------------------------------
    # Menu
    # -------------------------------------------------------------------------

    def list_menu_items(self) -> list[dict]:
        return self._query(MENU_ITEMS, "/api/menu")

    def create_menu_item(self, **fields: Any) -> dict:
        return self._mutate(
            "POST", "/api/menu", [MENU_ITEMS],
            success="Menu item added successfully", json=fields,
        )

    def update_menu_item(self, item_id: str, **fields: Any) -> dict:
        return self._mutate(
            "PATCH", f"/api/menu/{item_id}", [MENU_ITEMS],
            success="Menu item updated successfully", json=fields,
        )

    def set_menu_item_availability(self, item_id: str, available: bool) -> dict:
        return self._optimistic(
            MENU_ITEMS, item_id, {"available": available},
            "PATCH", f"/api/menu/{item_id}",
            success="Menu item updated successfully", failure=None,
            json={"available": available},
        )

    def delete_menu_item(self, item_id: str) -> None:
        self._mutate(
            "DELETE", f"/api/menu/{item_id}", [MENU_ITEMS],
            success="Menu item deleted successfully",
        )

    def generate_menu_image(
        self,
        item_id: str,
        name: str,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> str:
        body = {"menuItemId": str(item_id), "name": name, "description": description, "category": category}
        result = self._mutate(
            "POST", "/api/menu/generate-image", [MENU_ITEMS],
            success="Image generated successfully", json=body,
        )
        return result["image_url"]

    # -------------------------------------------------------------------------
    # Floor tables
    # -------------------------------------------------------------------------

    def list_tables(self) -> list[dict]:
        return self._query(FLOOR_TABLES, "/api/tables")

    def update_table_status(self, table_id: str, status: str) -> dict:
        return self._optimistic(
            FLOOR_TABLES, table_id, {"status": status},
            "PATCH", f"/api/tables/{table_id}/status",
            success=None, failure="Failed to update table status",
            json={"status": status},
        )

    def create_table(self, table_number: int, seats: int = 4) -> dict:
        return self._mutate(
            "POST", "/api/tables", [FLOOR_TABLES],
            success="Table added successfully",
            failure=lambda e: e.message if e.status_code == 409 else "Failed to add table",
            json={"table_number": table_number, "seats": seats},
        )

    def update_table(self, table_id: str, **fields: Any) -> dict:
        return self._mutate(
            "PATCH", f"/api/tables/{table_id}", [FLOOR_TABLES],
            success="Table updated successfully",
            failure=lambda e: e.message if e.status_code == 409 else "Failed to update table",
            json=fields,
        )

    def delete_table(self, table_id: str) -> None:
        self._mutate(
            "DELETE", f"/api/tables/{table_id}", [FLOOR_TABLES],
            success="Table removed successfully", failure="Failed to remove table",
        )

    # -------------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------------

    def list_reservations(self, on: Optional[date] = None) -> list[dict]:
        day = on.isoformat() if on else None
        params = {"date": day} if day else {}
        return self._query(RESERVATIONS + (day,), "/api/reservations", params=params)

    def create_reservation(self, **fields: Any) -> dict:
        return self._mutate(
            "POST", "/api/reservations", [RESERVATIONS],
            success="Reservation created successfully",
            failure=lambda e: f"Failed to create reservation: {e.message}",
            json=fields,
        )

    def update_reservation(self, reservation_id: str, **fields: Any) -> dict:
        return self._mutate(
            "PATCH", f"/api/reservations/{reservation_id}", [RESERVATIONS],
            success="Reservation updated successfully",
            failure=lambda e: f"Failed to update reservation: {e.message}",
            json=fields,
        )

    def delete_reservation(self, reservation_id: str) -> None:
        self._mutate(
            "DELETE", f"/api/reservations/{reservation_id}", [RESERVATIONS],
            success="Reservation deleted successfully",
            failure=lambda e: f"Failed to delete reservation: {e.message}",
        )

    # -------------------------------------------------------------------------
    # Staff & inventory
    # -------------------------------------------------------------------------

    def list_staff(self) -> list[dict]:
        return self._query(STAFF_MEMBERS, "/api/staff")

    def create_staff_member(self, **fields: Any) -> dict:
        return self._mutate(
            "POST", "/api/staff", [STAFF_MEMBERS],
            success="Staff member added successfully", json=fields,
        )

    def list_inventory(self) -> list[dict]:
        return self._query(INVENTORY_ITEMS, "/api/inventory")

    def inventory_alerts(self) -> dict:
        return self._query(INVENTORY_ITEMS + ("alerts",), "/api/inventory/alerts")

    def create_inventory_item(self, **fields: Any) -> dict:
        return self._mutate(
            "POST", "/api/inventory", [INVENTORY_ITEMS],
            success="Inventory item added successfully",
            failure=lambda e: f"Failed to add inventory item: {e.message}",
            json=fields,
        )

    # -------------------------------------------------------------------------
    # Finances
    # -------------------------------------------------------------------------

    def list_transactions(self, start: Optional[date] = None, end: Optional[date] = None) -> list[dict]:
        params = {k: v.isoformat() for k, v in (("start", start), ("end", end)) if v}
        key = TRANSACTIONS + (params.get("start"), params.get("end"))
        return self._query(key, "/api/transactions", params=params)

    def create_transaction(self, **fields: Any) -> dict:
        return self._mutate(
            "POST", "/api/transactions", [TRANSACTIONS, FINANCE_REPORT],
            success="Transaction added successfully", json=fields,
        )

    def finance_report(
        self,
        range_: str = "month",
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> dict:
        params = {"range": range_}
        params.update({k: v.isoformat() for k, v in (("start", start), ("end", end)) if v})
        key = FINANCE_REPORT + (range_, params.get("start"), params.get("end"))
        return self._query(key, "/api/finances/report", params=params)

    # -------------------------------------------------------------------------
    # Users & roles
    # -------------------------------------------------------------------------

    def me(self) -> dict:
        return self._query(USER_ROLE, "/api/me")

    def is_manager(self) -> bool:
        return bool(self.me().get("is_manager"))

    def list_users(self) -> list[dict]:
        return self._query(USERS_WITH_ROLES, "/api/users")

    def set_user_role(self, user_id: str, role: Optional[str]) -> dict:
        return self._mutate(
            "PUT", f"/api/users/{user_id}/role", [USERS_WITH_ROLES, USER_ROLE],
            success="User role updated successfully",
            failure=lambda e: (
                "Only admins can manage user roles" if e.status_code == 403
                else "Failed to update user role"
            ),
            json={"role": role},
        )
