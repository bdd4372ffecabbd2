"""
Request handling shared by the HTTP routes and the serverless event functions.

Each handler takes an already-read request body or query value, runs one
service operation and returns a HandlerResponse. This is the only place that
maps exceptions to status codes, so both adapters answer identically:

    400  ValidationError, GatewayRejected, DuplicateOrderError
    405  wrong method (adapters only)
    500  ConfigurationError, unexpected failures
    502  GatewayProtocolError
    503  GatewayUnavailable (retryable, Retry-After set)
"""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from gigpay.errors import (
    ERROR_INTERNAL,
    ERROR_INVALID_REQUEST,
    ERROR_METHOD_NOT_ALLOWED,
    ERROR_MISSING_ORDER_ID,
    ERROR_NOT_CONFIGURED,
    ConfigurationError,
    GigPayError,
    ValidationError,
)
from gigpay.logging import get_logger
from gigpay.models import ConfirmOrderRequest, CreateOrderRequest

logger = get_logger(__name__)

RETRY_AFTER_SECONDS = "2"


@dataclass
class HandlerResponse:
    status_code: int
    body: Any
    headers: dict[str, str] = field(default_factory=dict)


def _encode_decimal(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(body: Any) -> str:
    """Serialize a response body; Decimal amounts become JSON numbers."""
    return json.dumps(body, default=_encode_decimal, ensure_ascii=False)


def parse_body(raw: bytes | str | dict | None) -> dict[str, Any]:
    """
    Decode a JSON object body, keeping fractional numbers as Decimal.

    Raises:
        ValidationError: Empty, malformed or non-object body
    """
    if isinstance(raw, dict):
        return raw
    if raw is None or (isinstance(raw, (bytes, str)) and not raw.strip()):
        raise ValidationError(ERROR_INVALID_REQUEST)
    try:
        data = json.loads(raw, parse_float=Decimal)
    except ValueError:
        raise ValidationError(ERROR_INVALID_REQUEST)
    if not isinstance(data, dict):
        raise ValidationError(ERROR_INVALID_REQUEST)
    return data


def _parse_model(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        details = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError(ERROR_INVALID_REQUEST, details=details)


def error_response(error: GigPayError) -> HandlerResponse:
    headers = {"Retry-After": RETRY_AFTER_SECONDS} if error.retryable else {}
    return HandlerResponse(error.http_status, error.to_body(), headers)


def internal_error_response() -> HandlerResponse:
    return HandlerResponse(500, {"error": ERROR_INTERNAL})


def method_not_allowed_response() -> HandlerResponse:
    return HandlerResponse(405, {"error": ERROR_METHOD_NOT_ALLOWED})


async def _guarded(operation: Callable[[], Awaitable[HandlerResponse]], name: str) -> HandlerResponse:
    try:
        return await operation()
    except ConfigurationError as e:
        logger.error("Cannot %s, configuration invalid: %s", name, e)
        return HandlerResponse(500, {"error": ERROR_NOT_CONFIGURED})
    except GigPayError as e:
        return error_response(e)
    except Exception:
        logger.exception("Unexpected error in %s", name)
        return internal_error_response()


async def handle_create_order(
    body: bytes | str | dict | None,
    get_service: Callable[[], Any],
    origin: str | None = None,
) -> HandlerResponse:
    """
    Create Order.

    Args:
        body: Raw JSON body (or an already-decoded dict)
        get_service: Returns the OrderService; may raise ConfigurationError
            (only called once the body has passed validation)
        origin: Caller's Origin header, used when the body has no returnOrigin

    Returns:
        200 with the gateway's order response passed through
    """

    async def run() -> HandlerResponse:
        request = _parse_model(CreateOrderRequest, parse_body(body))
        request.check()
        service = get_service()
        intent = request.to_intent(fallback_origin=origin or service.default_origin)
        order = await service.create_order(intent)
        return HandlerResponse(200, order.raw)

    return await _guarded(run, "create order")


async def handle_verify_order(
    order_id: str | None,
    get_service: Callable[[], Any],
) -> HandlerResponse:
    """
    Verify Order.

    Returns:
        200 with ``{orderId, status, amount, currency, kind, subjectId}``
    """

    async def run() -> HandlerResponse:
        if not order_id or not order_id.strip():
            raise ValidationError(ERROR_MISSING_ORDER_ID)
        service = get_service()
        result = await service.verify_order(order_id)
        return HandlerResponse(200, result.to_response())

    return await _guarded(run, "verify order")


async def handle_confirm_order(
    body: bytes | str | dict | None,
    get_service: Callable[[], Any],
    get_reconciler: Callable[[], Awaitable[Any]],
) -> HandlerResponse:
    """
    Confirm Order: wait for the payment to settle, then apply the entitlement.

    Returns:
        200 with ``{orderId, status, outcome}`` whatever the outcome
    """

    async def run() -> HandlerResponse:
        request = _parse_model(ConfirmOrderRequest, parse_body(body))
        if not request.order_id:
            raise ValidationError(ERROR_MISSING_ORDER_ID)
        service = get_service()
        result = await service.await_settlement(request.order_id)
        reconciler = await get_reconciler()
        outcome = await reconciler.apply(result)
        return HandlerResponse(
            200,
            {"orderId": result.order_id, "status": result.status.value, "outcome": outcome.value},
        )

    return await _guarded(run, "confirm order")
