"""Order id generation.

Format: ``order_<buyer id prefix>_<epoch milliseconds>``, e.g.
``order_user_1735689600000`` for buyer ``user-123``. Readable without a lookup;
two orders for one buyer in the same millisecond are caught by the gateway's
own uniqueness check (surfaced as DuplicateOrderError).
"""
import re
import time

from gigpay.constants import MAX_ORDER_ID_LENGTH

ORDER_ID_PREFIX = "order_"
BUYER_ID_DELIMITER = "-"

_ORDER_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def buyer_prefix(buyer_id: str) -> str:
    """First delimiter-separated token of the buyer id, limited to id-safe characters."""
    token = buyer_id.strip().split(BUYER_ID_DELIMITER)[0]
    return re.sub(r"[^A-Za-z0-9_]", "", token)


def generate_order_id(buyer_id: str, now_ms: int | None = None) -> str:
    """
    Build the order id for one purchase attempt.

    Args:
        buyer_id: Buyer identifier (UUID in practice)
        now_ms: Epoch milliseconds; defaults to the current time

    Returns:
        Order id, deterministic for a fixed buyer id and timestamp
    """
    timestamp = _now_ms() if now_ms is None else now_ms
    suffix = f"_{timestamp}"
    prefix = buyer_prefix(buyer_id)
    room = MAX_ORDER_ID_LENGTH - len(ORDER_ID_PREFIX) - len(suffix)
    return f"{ORDER_ID_PREFIX}{prefix[:room]}{suffix}"


def is_valid_order_id(order_id: str | None) -> bool:
    """Check the shape of an order id supplied by a caller."""
    if not order_id or len(order_id) > MAX_ORDER_ID_LENGTH:
        return False
    return bool(_ORDER_ID_RE.match(order_id))
