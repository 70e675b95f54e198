"""
HTTP and WebSocket routers.
"""

from app.api.dashboard import router as dashboard_router
from app.api.finances import finances_router, transactions_router
from app.api.inventory import router as inventory_router
from app.api.menu import router as menu_router
from app.api.orders import router as orders_router
from app.api.realtime import router as realtime_router
from app.api.reservations import router as reservations_router
from app.api.staff import router as staff_router
from app.api.tables import router as tables_router
from app.api.users import router as users_router

routers = [
    orders_router,
    menu_router,
    tables_router,
    reservations_router,
    staff_router,
    inventory_router,
    transactions_router,
    finances_router,
    users_router,
    dashboard_router,
    realtime_router,
]

__all__ = ["routers"]
