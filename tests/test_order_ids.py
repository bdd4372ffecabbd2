"""Tests for order id generation"""
import pytest

from gigpay.constants import MAX_ORDER_ID_LENGTH
from gigpay.order_ids import buyer_prefix, generate_order_id, is_valid_order_id

NOW_MS = 1735689600000


def test_order_id_format():
    assert generate_order_id("user-123", now_ms=NOW_MS) == "order_user_1735689600000"


def test_order_id_uses_first_uuid_group():
    order_id = generate_order_id("3f2a9c1e-7b4d-4e8a-9c61-0d5e2f7a8b90", now_ms=NOW_MS)
    assert order_id == "order_3f2a9c1e_1735689600000"


def test_order_id_is_deterministic():
    assert generate_order_id("user-123", now_ms=NOW_MS) == generate_order_id("user-123", now_ms=NOW_MS)


def test_different_timestamps_never_collide():
    ids = {generate_order_id("user-123", now_ms=NOW_MS + offset) for offset in range(1000)}
    assert len(ids) == 1000


def test_order_id_fits_gateway_limit():
    order_id = generate_order_id("x" * 100, now_ms=NOW_MS)
    assert len(order_id) <= MAX_ORDER_ID_LENGTH
    assert order_id.endswith(f"_{NOW_MS}")
    assert is_valid_order_id(order_id)


def test_buyer_prefix_drops_unsafe_characters():
    assert buyer_prefix("a.b@c-rest") == "abc"
    assert generate_order_id("a.b@c-rest", now_ms=NOW_MS) == "order_abc_1735689600000"


def test_generated_id_uses_current_time():
    order_id = generate_order_id("user-123")
    timestamp = int(order_id.rsplit("_", 1)[1])
    assert timestamp > NOW_MS


@pytest.mark.parametrize(
    "order_id,valid",
    [
        ("order_user_1735689600000", True),
        ("order-abc_123", True),
        ("", False),
        (None, False),
        ("order user", False),
        ("order/../x", False),
        ("o" * (MAX_ORDER_ID_LENGTH + 1), False),
    ],
)
def test_is_valid_order_id(order_id, valid):
    assert is_valid_order_id(order_id) is valid
