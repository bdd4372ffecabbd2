"""Pytest configuration and fixtures"""
import os
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

# Set test environment variables
os.environ.setdefault("CASHFREE_APP_ID", "test_app_id")
os.environ.setdefault("CASHFREE_SECRET_KEY", "test_secret_key")
os.environ.setdefault("CASHFREE_MODE", "sandbox")
os.environ.setdefault("SITE_URL", "https://gigs.test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")

from gigpay.config import GatewaySettings  # noqa: E402
from gigpay.gateway import parse_order  # noqa: E402
from gigpay.routers import deps  # noqa: E402


def make_cashfree_order(
    order_id: str = "order_user_1735689600000",
    status: str = "ACTIVE",
    amount: Any = 270,
    kind: Optional[str] = "subscription",
    subject_id: Optional[str] = "1_week",
    buyer_id: str = "user-123",
    **extra: Any,
) -> Dict[str, Any]:
    """Order entity as Cashfree returns it from POST /orders and GET /orders/{id}."""
    data: Dict[str, Any] = {
        "cf_order_id": "2149460581",
        "order_id": order_id,
        "entity": "order",
        "order_currency": "INR",
        "order_amount": amount,
        "order_status": status,
        "payment_session_id": "session_abc123",
        "customer_details": {
            "customer_id": buyer_id,
            "customer_email": "user@example.com",
            "customer_phone": "9999999999",
            "customer_name": "User",
        },
        "order_meta": {
            "return_url": "https://app.example/subscription/success?order_id={order_id}&plan_id=1_week",
        },
        "order_tags": {"type": kind, "subjectId": subject_id} if kind else None,
    }
    data.update(extra)
    return data


class FakeGateway:
    """
    Stand-in for CashfreeClient that counts calls.

    ``fetch_results`` are returned in order (the last one repeats); an
    exception instance in the list is raised instead.
    """

    def __init__(self, fetch_results: Optional[List[Any]] = None, create_error: Optional[Exception] = None):
        self.created: List[Dict[str, Any]] = []
        self.fetched: List[str] = []
        self.fetch_results = list(fetch_results or [])
        self.create_error = create_error
        self.closed = False

    async def create_order(self, payload: Dict[str, Any]):
        self.created.append(payload)
        if self.create_error is not None:
            raise self.create_error
        return parse_order(
            make_cashfree_order(
                order_id=payload["order_id"],
                amount=Decimal(str(payload["order_amount"])),
                kind=payload["order_tags"]["type"],
                subject_id=payload["order_tags"]["subjectId"],
                buyer_id=payload["customer_details"]["customer_id"],
                order_meta=payload["order_meta"],
            )
        )

    async def fetch_order(self, order_id: str):
        self.fetched.append(order_id)
        result = self.fetch_results.pop(0) if len(self.fetch_results) > 1 else self.fetch_results[0]
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self):
        self.closed = True


class _Result:
    def __init__(self, data):
        self.data = data


class FakeAPIError(Exception):
    """Mimics postgrest's APIError for a unique violation."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


class _FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self._mode: Optional[str] = None
        self._data: Optional[Dict[str, Any]] = None
        self._filters: List[tuple] = []

    def select(self, *_):
        self._mode = "select"
        return self

    def update(self, data: Dict[str, Any]):
        self._mode = "update"
        self._data = data
        return self

    def insert(self, data: Dict[str, Any]):
        self._mode = "insert"
        self._data = data
        return self

    def delete(self):
        self._mode = "delete"
        return self

    def eq(self, field: str, value: Any):
        self._filters.append((field, value))
        return self

    def limit(self, *_):
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(row.get(field) == value for field, value in self._filters)

    async def execute(self):
        rows = self.db.tables.setdefault(self.table, [])
        if self._mode == "select":
            return _Result([dict(row) for row in rows if self._matches(row)])
        if self._mode == "update":
            if self.db.update_error is not None:
                raise self.db.update_error
            matched = [row for row in rows if self._matches(row)]
            for row in matched:
                row.update(self._data)
            self.db.updates.append((self.table, self._filters, self._data))
            return _Result(matched)
        if self._mode == "insert":
            unique = self.db.unique.get(self.table)
            if unique and any(all(row.get(k) == self._data.get(k) for k in unique) for row in rows):
                raise FakeAPIError("23505", "duplicate key value violates unique constraint")
            rows.append(dict(self._data))
            self.db.inserts.append((self.table, self._data))
            return _Result([self._data])
        if self._mode == "delete":
            removed = [row for row in rows if self._matches(row)]
            rows[:] = [row for row in rows if not self._matches(row)]
            self.db.deletes.append((self.table, self._filters))
            return _Result(removed)
        return _Result([])


class _FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    async def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        if self.db.rpc_error is not None:
            raise self.db.rpc_error
        return _Result(None)


class FakeSupabase:
    """In-memory async Supabase client covering the calls the reconciler makes."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = tables or {}
        self.unique = {
            "product_purchases": ("buyer_id", "product_id"),
            "subscription_activations": ("order_id",),
        }
        self.updates: List = []
        self.inserts: List = []
        self.deletes: List = []
        self.update_error: Optional[Exception] = None
        self.rpc_calls: List = []
        self.rpc_error: Optional[Exception] = None

    def table(self, name: str):
        return _FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]):
        return _FakeRpc(self, name, params)


@pytest.fixture
def settings():
    """Sandbox gateway settings"""
    return GatewaySettings(
        app_id="test_app_id",
        secret_key="test_secret_key",
        mode="sandbox",
        site_url="https://gigs.test",
    )


@pytest.fixture
def cashfree_order():
    """Factory for Cashfree order entities"""
    return make_cashfree_order


@pytest.fixture
def fake_gateway():
    """Factory for FakeGateway instances"""
    return FakeGateway


@pytest.fixture
def fake_supabase():
    """Factory for FakeSupabase instances"""
    return FakeSupabase


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop process-wide singletons so each test builds its own."""
    deps._settings = None
    deps._gateway_client = None
    deps._order_service = None
    deps._reconciler = None
    yield
    deps._settings = None
    deps._gateway_client = None
    deps._order_service = None
    deps._reconciler = None
