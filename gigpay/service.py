"""
Order Service - creation and verification of payment orders.

Shared by both request adapters (FastAPI routes and serverless event
functions). Each operation is a linear sequence of fallible steps
(validate -> build -> call -> map); every failure is a typed GigPayError.

This service never touches entitlement storage. It only translates between
callers and the gateway, which stays the single source of truth for status.
"""

from typing import Protocol
from urllib.parse import parse_qs, urlsplit

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from gigpay.builder import TAG_SUBJECT_ID, TAG_TYPE, build_order_payload
from gigpay.constants import DEFAULT_CURRENCY, SUBJECT_PARAMS, PurchaseKind, VerificationStatus
from gigpay.errors import ERROR_MISSING_ORDER_ID, GigPayError, GatewayUnavailable, ValidationError
from gigpay.logging import get_logger, sanitize_id_for_logging
from gigpay.models import GatewayOrder, PurchaseIntent, VerificationResult
from gigpay.order_ids import generate_order_id
from gigpay.status import normalize_status

logger = get_logger(__name__)

DEFAULT_POLL_ATTEMPTS = 5


class OrderGateway(Protocol):
    """What the service needs from a gateway client."""

    async def create_order(self, payload: dict) -> GatewayOrder: ...

    async def fetch_order(self, order_id: str) -> GatewayOrder: ...


def recover_subject(order: GatewayOrder) -> tuple[PurchaseKind | None, str | None]:
    """
    Recover purchase kind and subject id from what the gateway echoed back.

    Tags come first. Orders created before tagging carry the subject only in
    the return URL query (plan_id / product_id).
    """
    kind_value = order.tags.get(TAG_TYPE)
    subject_id = order.tags.get(TAG_SUBJECT_ID)
    if kind_value and subject_id:
        try:
            return PurchaseKind(kind_value), subject_id
        except ValueError:
            logger.warning(
                "Order %s has unknown type tag '%s'",
                sanitize_id_for_logging(order.order_id),
                sanitize_id_for_logging(kind_value),
            )

    if order.return_url:
        query = parse_qs(urlsplit(order.return_url).query)
        for kind, param in SUBJECT_PARAMS.items():
            values = query.get(param)
            if values and values[0]:
                return kind, values[0]

    return None, None


def _is_pending(result: VerificationResult) -> bool:
    return result.status == VerificationStatus.PENDING


def _last_outcome(retry_state: RetryCallState) -> VerificationResult:
    # Returns the last Pending result, or re-raises the last GatewayUnavailable
    return retry_state.outcome.result()


class OrderService:
    """Creates orders and verifies their status through the gateway client."""

    def __init__(
        self,
        gateway: OrderGateway,
        currency: str = DEFAULT_CURRENCY,
        default_origin: str | None = None,
    ):
        self.gateway = gateway
        self.currency = currency
        # Return-URL origin used when neither the request nor its Origin header gives one
        self.default_origin = default_origin

    async def create_order(self, intent: PurchaseIntent, now_ms: int | None = None) -> GatewayOrder:
        """
        Submit one purchase attempt.

        States: Received -> Validated -> Submitted -> Accepted | Rejected.
        A validated intent exists only if its invariants hold, so Validated is
        reached on entry. The order id is generated once here, unless the caller
        is retrying and resubmits the id it got before.

        Raises:
            GatewayUnavailable: Retryable; nothing was committed at the gateway
            GatewayRejected: Not retryable with the same intent
            DuplicateOrderError: The order id was already used
            GatewayProtocolError: Gateway response did not match the contract
        """
        order_id = intent.order_id or generate_order_id(intent.buyer_id, now_ms)
        safe_order_id = sanitize_id_for_logging(order_id)
        logger.info(
            "Order %s validated: kind=%s, subject=%s, amount=%s",
            safe_order_id,
            intent.kind.value,
            sanitize_id_for_logging(intent.subject_id),
            intent.amount,
        )

        payload = build_order_payload(intent, order_id, self.currency)

        logger.info("Order %s submitted", safe_order_id)
        try:
            order = await self.gateway.create_order(payload)
        except GigPayError as e:
            logger.warning(
                "Order %s rejected: %s (retryable=%s)", safe_order_id, type(e).__name__, e.retryable
            )
            raise

        logger.info("Order %s accepted", safe_order_id)
        return order

    async def verify_order(self, order_id: str | None) -> VerificationResult:
        """
        Fetch an order and normalize its status.

        Read only: any number of calls for the same order have no side effect.

        Raises:
            ValidationError: Empty order id
            GatewayUnavailable: Retryable
            GatewayRejected: Gateway refused the lookup (e.g. unknown order)
            GatewayProtocolError: Gateway response did not match the contract
        """
        if not order_id or not order_id.strip():
            raise ValidationError(ERROR_MISSING_ORDER_ID)
        order_id = order_id.strip()

        order = await self.gateway.fetch_order(order_id)
        status = normalize_status(order.status, order.settled, order.order_id)
        kind, subject_id = recover_subject(order)

        logger.info(
            "Order %s verified: status=%s", sanitize_id_for_logging(order.order_id), status.value
        )
        return VerificationResult(
            order_id=order.order_id,
            status=status,
            amount=order.amount,
            currency=order.currency,
            kind=kind,
            subject_id=subject_id,
            buyer_id=order.customer_id,
        )

    async def await_settlement(
        self,
        order_id: str,
        attempts: int = DEFAULT_POLL_ATTEMPTS,
        wait: wait_base | None = None,
    ) -> VerificationResult:
        """
        Poll verification with exponential backoff while the order is Pending
        or the gateway is unavailable.

        Returns:
            The first Paid/Failed result, or the last Pending one once
            attempts run out

        Raises:
            GatewayUnavailable: If the last attempt still could not reach the gateway
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait or wait_exponential(multiplier=0.5, max=4),
            retry=retry_if_exception_type(GatewayUnavailable) | retry_if_result(_is_pending),
            retry_error_callback=_last_outcome,
        )
        return await retrying(self.verify_order, order_id)
