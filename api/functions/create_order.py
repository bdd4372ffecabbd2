"""
Create Order function.

POST only. Body: ``{subjectKind, subjectId, buyerId, amount, ...}``.
The return URL falls back to the request's Origin header, then SITE_URL.
"""

from gigpay.events import (
    event_body,
    event_headers,
    event_method,
    method_not_allowed,
    preflight_response,
    run_with_service,
)
from gigpay.handlers import handle_create_order


def handler(event, context=None):
    method = event_method(event)
    if method == "OPTIONS":
        return preflight_response()
    if method != "POST":
        return method_not_allowed()

    body = event_body(event)
    origin = event_headers(event).get("origin")
    return run_with_service(
        lambda get_service: handle_create_order(body, get_service, origin=origin)
    )
