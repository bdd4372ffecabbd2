"""
Serverless event adapter.

Runs a handler from ``gigpay.handlers`` for one ``{httpMethod, headers, body,
queryStringParameters}`` event and returns ``{statusCode, headers, body}``.

Each invocation runs in its own event loop (``asyncio.run``), so it gets its
own gateway client, closed before the invocation returns. Settings are still
read once per process.
"""

import asyncio
import base64
from collections.abc import Awaitable, Callable
from typing import Any

from gigpay.gateway import CashfreeClient
from gigpay.handlers import HandlerResponse, dumps, method_not_allowed_response
from gigpay.routers.deps import build_order_service, get_settings
from gigpay.service import OrderService

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


def event_method(event: dict[str, Any]) -> str:
    return (event.get("httpMethod") or "").upper()


def event_headers(event: dict[str, Any]) -> dict[str, str]:
    """Headers with lower-cased names."""
    return {str(k).lower(): v for k, v in (event.get("headers") or {}).items()}


def event_body(event: dict[str, Any]) -> str | bytes | None:
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body


def event_query(event: dict[str, Any]) -> dict[str, str]:
    return event.get("queryStringParameters") or {}


def to_event_response(result: HandlerResponse) -> dict[str, Any]:
    return {
        "statusCode": result.status_code,
        "headers": {**CORS_HEADERS, "Content-Type": "application/json", **result.headers},
        "body": dumps(result.body),
    }


def preflight_response() -> dict[str, Any]:
    return {"statusCode": 204, "headers": dict(CORS_HEADERS), "body": ""}


def method_not_allowed() -> dict[str, Any]:
    return to_event_response(method_not_allowed_response())


async def _with_service(
    operation: Callable[[Callable[[], OrderService]], Awaitable[HandlerResponse]],
) -> HandlerResponse:
    client: CashfreeClient | None = None

    def get_service() -> OrderService:
        nonlocal client
        settings = get_settings()
        client = CashfreeClient(settings)
        return build_order_service(client, settings)

    try:
        return await operation(get_service)
    finally:
        if client is not None:
            await client.aclose()


def run_with_service(
    operation: Callable[[Callable[[], OrderService]], Awaitable[HandlerResponse]],
) -> dict[str, Any]:
    """Run one handler with a fresh OrderService and convert its result to an event response."""
    return to_event_response(asyncio.run(_with_service(operation)))
