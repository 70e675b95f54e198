"""
Error classification tests: raw backend text never reaches users.
"""

import httpx
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.errors import (
    SAFE_MESSAGES,
    Conflict,
    ErrorKind,
    RateLimited,
    UpstreamError,
    classify_error,
    safe_error_message,
    status_for_kind,
)


def db_error(cls, text):
    return cls("INSERT INTO ...", {}, Exception(text))


@pytest.mark.parametrize("error,kind", [
    (db_error(IntegrityError, 'duplicate key value violates unique constraint "floor_tables_table_number_key"'),
     ErrorKind.DUPLICATE),
    (db_error(IntegrityError, 'insert or update on table "order_items" violates foreign key constraint'),
     ErrorKind.FOREIGN_KEY),
    (db_error(IntegrityError, 'new row violates check constraint "orders_total_check"'),
     ErrorKind.CHECK_VIOLATION),
    (db_error(IntegrityError, 'null value in column "name" violates not-null constraint'),
     ErrorKind.NOT_NULL),
    (db_error(OperationalError, "new row violates row-level security policy for table orders"),
     ErrorKind.PERMISSION),
    (db_error(OperationalError, "connection refused"), ErrorKind.CONNECTIVITY),
    (db_error(OperationalError, "disk I/O error"), ErrorKind.DATABASE),
    (httpx.ConnectError("boom"), ErrorKind.CONNECTIVITY),
    (Exception("JWT expired"), ErrorKind.AUTHENTICATION),
    (Exception("something odd"), ErrorKind.UNKNOWN),
    (None, ErrorKind.UNKNOWN),
])
def test_classify_error(error, kind):
    assert classify_error(error) == kind


def test_safe_message_hides_backend_text():
    error = db_error(IntegrityError, 'duplicate key value violates unique constraint "secret_index"')
    message = safe_error_message(error)

    assert message == "This item already exists."
    assert "secret_index" not in message


def test_app_errors_keep_their_message():
    assert safe_error_message(RateLimited("Too many orders. Please try again later.")) == \
        "Too many orders. Please try again later."
    assert safe_error_message(Conflict()) == SAFE_MESSAGES[ErrorKind.DUPLICATE]


def test_upstream_error_status_override():
    assert UpstreamError("x").status_code == 502
    assert UpstreamError("x", status_code=429).status_code == 429


def test_status_for_kind():
    assert status_for_kind(ErrorKind.DUPLICATE) == 409
    assert status_for_kind(ErrorKind.PERMISSION) == 403
    assert status_for_kind(ErrorKind.DATABASE) == 500


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}


def test_body_validation_uses_error_envelope(client, manager_headers):
    resp = client.post("/api/tables", json={"table_number": 0}, headers=manager_headers)
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("table_number:")
