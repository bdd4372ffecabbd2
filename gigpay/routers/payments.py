"""
Payment order endpoints.

Thin FastAPI wrappers over ``gigpay.handlers``. Bodies are read raw so that
amounts keep their exact decimal value and validation errors use the same
``{error, details}`` shape as every other failure.
"""

from fastapi import APIRouter, Request
from fastapi.responses import Response

from gigpay.handlers import (
    HandlerResponse,
    dumps,
    handle_confirm_order,
    handle_create_order,
    handle_verify_order,
)
from gigpay.routers import deps

router = APIRouter(prefix="/api/payments", tags=["payments"])


def to_response(result: HandlerResponse) -> Response:
    return Response(
        content=dumps(result.body),
        status_code=result.status_code,
        headers=result.headers,
        media_type="application/json",
    )


@router.post("/orders")
async def create_order(request: Request):
    """Create a gateway order for a subscription plan or a product."""
    body = await request.body()
    result = await handle_create_order(
        body, deps.get_order_service, origin=request.headers.get("origin")
    )
    return to_response(result)


@router.get("/verify")
async def verify_order(request: Request):
    """Report the normalized status of an order (``orderId`` or legacy ``order_id``)."""
    params = request.query_params
    order_id = params.get("orderId") or params.get("order_id")
    result = await handle_verify_order(order_id, deps.get_order_service)
    return to_response(result)


@router.post("/confirm")
async def confirm_order(request: Request):
    """Wait for payment to settle, then grant the entitlement."""
    body = await request.body()
    result = await handle_confirm_order(body, deps.get_order_service, deps.get_reconciler)
    return to_response(result)
