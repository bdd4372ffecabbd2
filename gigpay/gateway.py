"""Gateway Client - Cashfree PG Orders API.

Two operations only: create an order and fetch an order.
All methods use async/await over a shared httpx.AsyncClient.

Failure mapping:
- timeout / connection error / 5xx / 429 / unparseable 4xx -> GatewayUnavailable
- 4xx with a JSON error body                                 -> GatewayRejected
- 409 or code "order_already_exists"                         -> DuplicateOrderError
- 2xx whose body lacks the order fields                      -> GatewayProtocolError
"""

import json
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import httpx

from gigpay.config import GatewaySettings
from gigpay.constants import DUPLICATE_ORDER_CODE
from gigpay.errors import (
    ERROR_DUPLICATE_ORDER,
    ERROR_GATEWAY_PROTOCOL,
    ERROR_GATEWAY_REJECTED,
    ERROR_GATEWAY_UNAVAILABLE,
    DuplicateOrderError,
    GatewayProtocolError,
    GatewayRejected,
    GatewayUnavailable,
)
from gigpay.logging import get_logger, sanitize_id_for_logging, sanitize_payload_for_logging
from gigpay.models import GatewayOrder
from gigpay.status import is_settled

logger = get_logger(__name__)

ORDERS_PATH = "/orders"

# Required order fields and the types they must parse to
REQUIRED_ORDER_FIELDS: dict[str, tuple[type, ...]] = {
    "order_id": (str,),
    "order_amount": (Decimal, int),
    "order_currency": (str,),
    "order_status": (str,),
}


def _decode_body(response: httpx.Response) -> Any:
    """Parse a JSON body keeping numbers exact. Returns None if the body is not JSON."""
    try:
        return json.loads(response.text, parse_float=Decimal)
    except ValueError:
        return None


def parse_order(data: Any) -> GatewayOrder:
    """
    Turn a gateway order entity into a GatewayOrder.

    Raises:
        GatewayProtocolError: If the body is not an object or a required field
            is missing or has the wrong type
    """
    if not isinstance(data, dict):
        logger.error("Cashfree returned a non-object order body: %s", sanitize_payload_for_logging(data))
        raise GatewayProtocolError(ERROR_GATEWAY_PROTOCOL)

    invalid = [
        name
        for name, types in REQUIRED_ORDER_FIELDS.items()
        if not isinstance(data.get(name), types) or isinstance(data.get(name), bool)
    ]
    if invalid:
        logger.error(
            "Cashfree order body missing/invalid fields %s: %s",
            invalid,
            sanitize_payload_for_logging(data),
        )
        raise GatewayProtocolError(ERROR_GATEWAY_PROTOCOL, details={"fields": invalid})

    tags = data.get("order_tags")
    meta = data.get("order_meta")
    customer = data.get("customer_details")

    return GatewayOrder(
        order_id=data["order_id"],
        amount=Decimal(data["order_amount"]),
        currency=data["order_currency"],
        status=data["order_status"],
        settled=is_settled(data),
        tags={str(k): str(v) for k, v in tags.items()} if isinstance(tags, dict) else {},
        return_url=meta.get("return_url") if isinstance(meta, dict) else None,
        customer_id=customer.get("customer_id") if isinstance(customer, dict) else None,
        payment_session_id=data.get("payment_session_id"),
        raw=data,
    )


class CashfreeClient:
    """HTTP client for the Cashfree PG Orders API."""

    def __init__(self, settings: GatewaySettings, http_client: httpx.AsyncClient | None = None):
        # Missing credentials fail here, before any request is attempted
        self.settings = settings.validate()
        self._timeout = httpx.Timeout(
            settings.timeout_seconds, connect=min(5.0, settings.timeout_seconds)
        )
        # HTTP client (lazy init)
        self._http_client: httpx.AsyncClient | None = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-client-id": self.settings.app_id,
            "x-client-secret": self.settings.secret_key,
            "x-api-version": self.settings.api_version,
        }

    async def _request(
        self, method: str, path: str, order_id: str, payload: dict[str, Any] | None = None
    ) -> Any:
        """Send one request and return the decoded 2xx body, or raise a GatewayError."""
        url = f"{self.settings.base_url}{path}"
        safe_order_id = sanitize_id_for_logging(order_id)
        client = await self._get_http_client()

        try:
            response = await client.request(
                method, url, headers=self._headers(), json=payload, timeout=self._timeout
            )
        except httpx.TimeoutException as e:
            logger.warning("Cashfree %s %s timed out for order %s", method, path, safe_order_id)
            raise GatewayUnavailable(ERROR_GATEWAY_UNAVAILABLE) from e
        except httpx.RequestError as e:
            logger.warning(
                "Cashfree network error on %s %s for order %s: %s", method, path, safe_order_id, e
            )
            raise GatewayUnavailable(ERROR_GATEWAY_UNAVAILABLE) from e

        logger.info(
            "Cashfree API response status: %s for order %s", response.status_code, safe_order_id
        )
        data = _decode_body(response)

        if response.is_success:
            return data

        raw = sanitize_payload_for_logging(data if data is not None else response.text)
        if response.status_code >= 500 or response.status_code == 429:
            logger.error(
                "Cashfree API error %s for order %s: %s", response.status_code, safe_order_id, raw
            )
            raise GatewayUnavailable(ERROR_GATEWAY_UNAVAILABLE)

        if not isinstance(data, dict):
            logger.error(
                "Cashfree API error %s with unparseable body for order %s: %s",
                response.status_code,
                safe_order_id,
                raw,
            )
            raise GatewayUnavailable(ERROR_GATEWAY_UNAVAILABLE)

        code = data.get("code") if isinstance(data.get("code"), str) else None
        logger.error(
            "Cashfree rejected %s %s for order %s (%s): %s",
            method,
            path,
            safe_order_id,
            response.status_code,
            raw,
        )
        if response.status_code == 409 or code == DUPLICATE_ORDER_CODE:
            raise DuplicateOrderError(
                ERROR_DUPLICATE_ORDER, code=code, status_code=response.status_code, details=data
            )
        raise GatewayRejected(
            ERROR_GATEWAY_REJECTED, code=code, status_code=response.status_code, details=data
        )

    # ==================== MAIN API ====================

    async def create_order(self, payload: dict[str, Any]) -> GatewayOrder:
        """
        Create an order.

        Args:
            payload: Body built by ``gigpay.builder.build_order_payload``

        Returns:
            The created order; ``raw`` holds the gateway response verbatim
        """
        order_id = payload.get("order_id", "")
        logger.info(
            "Cashfree order creation for order %s: amount=%s %s",
            sanitize_id_for_logging(order_id),
            payload.get("order_amount"),
            payload.get("order_currency"),
        )
        data = await self._request("POST", ORDERS_PATH, order_id, payload)
        return parse_order(data)

    async def fetch_order(self, order_id: str) -> GatewayOrder:
        """Fetch the current state of an order."""
        path = f"{ORDERS_PATH}/{quote(order_id, safe='')}"
        data = await self._request("GET", path, order_id)
        return parse_order(data)

    async def aclose(self) -> None:
        """Close http client if created."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
