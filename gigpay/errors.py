"""
Payment order errors.

Error message constants (kept in one place to avoid string duplication) and the
exception taxonomy shared by the gateway client, the order handlers and both
request adapters.

Every exception carries two facts an automated caller needs:
- ``http_status``: the status code the adapters answer with
- ``retryable``: whether repeating the same call can succeed
"""

from typing import Any

# Validation errors
ERROR_MISSING_FIELDS = "Missing required fields"
ERROR_MISSING_ORDER_ID = "Missing order_id"
ERROR_INVALID_ORDER_ID = "Invalid order_id"
ERROR_INVALID_AMOUNT = "Amount must be a positive number"
ERROR_AMOUNT_PRECISION = "Amount has more decimal places than the currency allows"
ERROR_INVALID_KIND = "subjectKind must be 'subscription' or 'product'"
ERROR_MISSING_RETURN_ORIGIN = "Missing returnOrigin"
ERROR_INVALID_REQUEST = "Invalid request"

# Gateway errors
ERROR_GATEWAY_REJECTED = "Payment gateway error"
ERROR_GATEWAY_UNAVAILABLE = "Payment gateway unavailable, please retry"
ERROR_GATEWAY_PROTOCOL = "Unexpected response from payment gateway"
ERROR_DUPLICATE_ORDER = "Order already exists"

# Machine-readable codes added to error bodies
DUPLICATE_ORDER = "duplicate_order"

# Generic errors
ERROR_METHOD_NOT_ALLOWED = "Method Not Allowed"
ERROR_NOT_CONFIGURED = "Payment service not configured"
ERROR_INTERNAL = "Internal server error"


class GigPayError(Exception):
    """Base class for every error this package raises on purpose."""

    http_status = 500
    retryable = False

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict[str, Any]:
        """JSON body returned to callers."""
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        if self.retryable:
            body["retryable"] = True
        return body


class ValidationError(GigPayError):
    """Malformed or missing caller input. Never retried."""

    http_status = 400


class ConfigurationError(GigPayError):
    """Missing credentials or settings. Fatal for the process."""

    http_status = 500


class GatewayError(GigPayError):
    """Base class for failures originating at the payment gateway."""


class GatewayRejected(GatewayError):
    """The gateway declined a well-formed request."""

    http_status = 400

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message, details=details)
        self.code = code
        self.status_code = status_code


class DuplicateOrderError(GatewayRejected):
    """The gateway already holds an order with this id."""

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["code"] = DUPLICATE_ORDER
        return body


class GatewayUnavailable(GatewayError):
    """Network failure, timeout or 5xx from the gateway. Safe to retry."""

    http_status = 503
    retryable = True


class GatewayProtocolError(GatewayError):
    """The gateway answered with a shape we do not understand."""

    http_status = 502


__all__ = [
    "ConfigurationError",
    "DuplicateOrderError",
    "GatewayError",
    "GatewayProtocolError",
    "GatewayRejected",
    "GatewayUnavailable",
    "GigPayError",
    "ValidationError",
]
