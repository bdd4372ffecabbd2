"""Payment constants, enums, and gateway vocabulary."""
from enum import Enum


class PurchaseKind(str, Enum):
    """What a payment order buys."""
    SUBSCRIPTION = "subscription"
    PRODUCT = "product"


class GatewayMode(str, Enum):
    """Which Cashfree environment orders go to."""
    PRODUCTION = "production"
    SANDBOX = "sandbox"


class GatewayOrderStatus(str, Enum):
    """
    Order status as reported by the gateway.

    Owned by the gateway; never set locally.
    """
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"
    TERMINATION_REQUESTED = "TERMINATION_REQUESTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class VerificationStatus(str, Enum):
    """
    Normalized order status handed to callers.

    Flow:
        Pending -> Paid
                -> Failed
    """
    PAID = "Paid"
    PENDING = "Pending"
    FAILED = "Failed"


# Mode aliases (input -> canonical)
MODE_ALIASES: dict[str, str] = {
    "production": GatewayMode.PRODUCTION.value,
    "prod": GatewayMode.PRODUCTION.value,
    "live": GatewayMode.PRODUCTION.value,
    "sandbox": GatewayMode.SANDBOX.value,
    "test": GatewayMode.SANDBOX.value,
    "testing": GatewayMode.SANDBOX.value,
}

GATEWAY_BASE_URLS: dict[str, str] = {
    GatewayMode.PRODUCTION.value: "https://api.cashfree.com/pg",
    GatewayMode.SANDBOX.value: "https://sandbox.cashfree.com/pg",
}

DEFAULT_API_VERSION = "2023-08-01"
DEFAULT_CURRENCY = "INR"
DEFAULT_SITE_URL = "http://localhost:5173"

# The gateway rejects orders with empty contact fields
DEFAULT_CUSTOMER_EMAIL = "user@example.com"
DEFAULT_CUSTOMER_PHONE = "9999999999"
DEFAULT_CUSTOMER_NAME = "User"

# Post-payment pages of the client app, per purchase kind
RETURN_PATHS: dict[PurchaseKind, str] = {
    PurchaseKind.SUBSCRIPTION: "/subscription/success",
    PurchaseKind.PRODUCT: "/marketplace/success",
}

# Query parameter carrying the subject id on the return URL
SUBJECT_PARAMS: dict[PurchaseKind, str] = {
    PurchaseKind.SUBSCRIPTION: "plan_id",
    PurchaseKind.PRODUCT: "product_id",
}

# Placeholder the gateway substitutes with the order id on redirect
ORDER_ID_PLACEHOLDER = "{order_id}"

# Gateway limit on order_id length
MAX_ORDER_ID_LENGTH = 45

# Error code the gateway returns for a reused order id
DUPLICATE_ORDER_CODE = "order_already_exists"

# Payment status inside an order that proves settlement
SETTLED_PAYMENT_STATES: set[str] = {"SUCCESS"}


def normalize_mode(mode: str | None) -> str | None:
    """Return canonical mode name, or None when the value is not recognized."""
    if mode is None:
        return None
    return MODE_ALIASES.get(mode.strip().lower())
