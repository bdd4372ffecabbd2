"""Gateway status -> normalized status mapping.

Nothing past this module sees the gateway's raw status strings.
"""
from decimal import Decimal, InvalidOperation
from typing import Any

from gigpay.constants import (
    SETTLED_PAYMENT_STATES,
    GatewayOrderStatus,
    VerificationStatus,
)
from gigpay.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

STATUS_MAP: dict[str, VerificationStatus] = {
    GatewayOrderStatus.PAID.value: VerificationStatus.PAID,
    GatewayOrderStatus.EXPIRED.value: VerificationStatus.FAILED,
    GatewayOrderStatus.TERMINATED.value: VerificationStatus.FAILED,
    GatewayOrderStatus.TERMINATION_REQUESTED.value: VerificationStatus.FAILED,
    GatewayOrderStatus.FAILED.value: VerificationStatus.FAILED,
    GatewayOrderStatus.CANCELLED.value: VerificationStatus.FAILED,
}


def is_settled(data: dict[str, Any]) -> bool:
    """
    Whether an order payload shows a completed payment.

    An ACTIVE order is settled when it reports a successful payment status or
    when the amount paid covers the order amount.
    """
    payment_status = data.get("payment_status")
    if isinstance(payment_status, str) and payment_status.upper() in SETTLED_PAYMENT_STATES:
        return True

    paid = data.get("order_amount_paid")
    total = data.get("order_amount")
    if paid is None or total is None or isinstance(paid, bool):
        return False
    try:
        paid_amount = Decimal(str(paid))
        total_amount = Decimal(str(total))
    except (InvalidOperation, ValueError):
        return False
    return total_amount > 0 and paid_amount >= total_amount


def normalize_status(raw_status: str, settled: bool = False, order_id: str | None = None) -> VerificationStatus:
    """
    Map a gateway status to Paid / Pending / Failed.

    PAID and settled ACTIVE orders are Paid, unsettled ACTIVE orders are
    Pending, and every other value (including ones the gateway adds later)
    is Failed.
    """
    status = (raw_status or "").strip().upper()
    if status == GatewayOrderStatus.ACTIVE.value:
        return VerificationStatus.PAID if settled else VerificationStatus.PENDING
    mapped = STATUS_MAP.get(status)
    if mapped is None:
        logger.warning(
            "Unknown gateway status '%s' for order %s, treating as Failed",
            sanitize_id_for_logging(status),
            sanitize_id_for_logging(order_id),
        )
        return VerificationStatus.FAILED
    return mapped
