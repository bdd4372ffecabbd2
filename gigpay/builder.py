"""
Order Request Builder.

Maps a PurchaseIntent to the gateway's create-order payload. The per-kind
return URL is what lets the client resume the right post-payment page, so all
kind-specific branching lives here.
"""
from typing import Any
from urllib.parse import quote

from gigpay.constants import (
    DEFAULT_CURRENCY,
    ORDER_ID_PLACEHOLDER,
    RETURN_PATHS,
    SUBJECT_PARAMS,
    PurchaseKind,
)
from gigpay.models import PurchaseIntent
from gigpay.money import to_wire

# Gateway limit on order_note length
MAX_NOTE_LENGTH = 200

TAG_TYPE = "type"
TAG_SUBJECT_ID = "subjectId"


def build_return_url(intent: PurchaseIntent) -> str:
    """
    Post-payment redirect, e.g.
    ``https://app.example/subscription/success?order_id={order_id}&plan_id=1_week``.

    ``{order_id}`` is left literal: the gateway fills it in on redirect.
    """
    origin = intent.return_origin.strip().rstrip("/")
    path = RETURN_PATHS[intent.kind]
    param = SUBJECT_PARAMS[intent.kind]
    subject = quote(intent.subject_id, safe="")
    return f"{origin}{path}?order_id={ORDER_ID_PLACEHOLDER}&{param}={subject}"


def build_order_note(intent: PurchaseIntent) -> str:
    if intent.kind == PurchaseKind.SUBSCRIPTION:
        note = f"Subscription for {intent.subject_id}"
    else:
        note = f"Marketplace purchase {intent.subject_id}"
    return note[:MAX_NOTE_LENGTH]


def build_order_tags(intent: PurchaseIntent) -> dict[str, str]:
    """Tags the gateway echoes back, so verification can recover the intent."""
    return {TAG_TYPE: intent.kind.value, TAG_SUBJECT_ID: intent.subject_id}


def build_order_payload(
    intent: PurchaseIntent, order_id: str, currency: str = DEFAULT_CURRENCY
) -> dict[str, Any]:
    """
    Build the create-order request body (not yet submitted).

    The intent has already been validated on construction.
    """
    contact = intent.buyer_contact.with_defaults()
    return {
        "order_id": order_id,
        "order_amount": to_wire(intent.amount),
        "order_currency": currency,
        "customer_details": {
            "customer_id": intent.buyer_id,
            "customer_email": contact.email,
            "customer_phone": contact.phone,
            "customer_name": contact.display_name,
        },
        "order_meta": {
            "return_url": build_return_url(intent),
        },
        "order_note": build_order_note(intent),
        "order_tags": build_order_tags(intent),
    }
