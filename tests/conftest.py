"""
Pytest fixtures for the floor manager tests.

The app runs against a throwaway SQLite database with the mock image
service and the in-memory rate limiter. The environment is set before
``app`` is imported because settings are read once per process.
"""

import asyncio
import os
import tempfile
import uuid
from datetime import date

_TMP = tempfile.mkdtemp(prefix="floor-manager-tests-")
os.environ.update({
    "ENV_MODE": "development",
    "DATABASE_URL": f"sqlite+aiosqlite:///{_TMP}/test.db",
    "RATE_LIMIT_BACKEND": "memory",
    "RATE_LIMIT_MAX_ORDERS": "10",
    "STORAGE_DIRECTORY": os.path.join(_TMP, "storage"),
    "DATA_DIRECTORY": os.path.join(_TMP, "data"),
    "REDIS_URL": "redis://127.0.0.1:1/0",
    "APP_BASE_URL": "http://testserver",
})

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.database import async_session_maker, drop_db, init_db
from app.main import app
from app.models import AppRole, MenuItem, Transaction, TransactionType, UserRole
from app.services.imaging import reset_image_service
from app.services.rate_limit import reset_rate_limiter
from app.services.storage import reset_storage


def run(coro):
    """Run a coroutine outside the app's event loop."""
    return asyncio.run(coro)


async def _add(*rows):
    async with async_session_maker() as db:
        db.add_all(rows)
        await db.commit()
        for row in rows:
            await db.refresh(row)
    return rows


@pytest.fixture(scope='function')
def client():
    """Fresh schema, fresh services, running app."""
    run(drop_db())
    run(init_db())
    reset_rate_limiter()
    reset_image_service()
    reset_storage()

    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# USERS
# =============================================================================


def _user_headers(role):
    user_id = uuid.uuid4()
    if role is not None:
        run(_add(UserRole(user_id=user_id, role=role)))
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture(scope='function')
def staff_headers(client):
    return _user_headers(AppRole.STAFF)


@pytest.fixture(scope='function')
def manager_headers(client):
    return _user_headers(AppRole.MANAGER)


@pytest.fixture(scope='function')
def admin_headers(client):
    return _user_headers(AppRole.ADMIN)


@pytest.fixture(scope='function')
def roleless_headers(client):
    """Signed in, but no row in user_roles."""
    return _user_headers(None)


# =============================================================================
# CATALOG & LEDGER
# =============================================================================


@pytest.fixture(scope='function')
def menu(client):
    """Two available dishes and one that is off the menu."""
    pizza, salad, special = run(_add(
        MenuItem(name="Margherita", price=12.50, category="Main Courses", available=True),
        MenuItem(name="Caesar Salad", price=8.00, category="Starters", available=True),
        MenuItem(name="Truffle Risotto", price=24.00, category="Specials", available=False),
    ))
    return {"pizza": pizza, "salad": salad, "special": special}


def make_transaction(kind, amount, day, category="Food Sales", description="Entry"):
    return Transaction(
        type=kind,
        category=category,
        description=description,
        amount=amount,
        transaction_date=day,
    )


@pytest.fixture(scope='function')
def ledger(client):
    today = date.today()
    return run(_add(
        make_transaction(TransactionType.INCOME, 300.0, today, "Food Sales"),
        make_transaction(TransactionType.INCOME, 100.0, today, "Beverage Sales"),
        make_transaction(TransactionType.EXPENSE, 150.0, today, "Supplies"),
    ))
