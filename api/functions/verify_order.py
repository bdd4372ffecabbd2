"""
Verify Order function.

GET ``?orderId=`` (or legacy ``?order_id=``). Read only.
"""

from gigpay.events import (
    event_method,
    event_query,
    method_not_allowed,
    preflight_response,
    run_with_service,
)
from gigpay.handlers import handle_verify_order


def handler(event, context=None):
    method = event_method(event)
    if method == "OPTIONS":
        return preflight_response()
    if method != "GET":
        return method_not_allowed()

    query = event_query(event)
    order_id = query.get("orderId") or query.get("order_id")
    return run_with_service(lambda get_service: handle_verify_order(order_id, get_service))
