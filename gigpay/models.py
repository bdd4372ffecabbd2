"""
Payment order models.

Request bodies are Pydantic models (wire format, camelCase with legacy
snake_case aliases). The domain objects passed between the builder, the
gateway client and the handlers are frozen dataclasses.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gigpay.constants import (
    DEFAULT_CUSTOMER_EMAIL,
    DEFAULT_CUSTOMER_NAME,
    DEFAULT_CUSTOMER_PHONE,
    PurchaseKind,
    VerificationStatus,
)
from gigpay.errors import (
    ERROR_INVALID_KIND,
    ERROR_INVALID_ORDER_ID,
    ERROR_MISSING_FIELDS,
    ERROR_MISSING_RETURN_ORIGIN,
    ValidationError,
)
from gigpay.money import to_wire, validate_amount
from gigpay.order_ids import is_valid_order_id


# ==================== DOMAIN MODELS ====================


@dataclass(frozen=True)
class BuyerContact:
    email: str | None = None
    phone: str | None = None
    display_name: str | None = None

    def with_defaults(self) -> "BuyerContact":
        """Fill absent fields with the placeholders the gateway accepts."""
        return BuyerContact(
            email=self.email or DEFAULT_CUSTOMER_EMAIL,
            phone=self.phone or DEFAULT_CUSTOMER_PHONE,
            display_name=self.display_name or DEFAULT_CUSTOMER_NAME,
        )


@dataclass(frozen=True)
class PurchaseIntent:
    """
    A caller's request to pay for a subscription plan or a marketplace product.

    Request scoped, never persisted. Construction validates the invariants,
    so an intent that exists is always safe to submit.
    """

    kind: PurchaseKind
    subject_id: str
    buyer_id: str
    amount: Decimal
    return_origin: str
    buyer_contact: BuyerContact = field(default_factory=BuyerContact)
    order_id: str | None = None

    def __post_init__(self):
        if not isinstance(self.kind, PurchaseKind):
            raise ValidationError(ERROR_INVALID_KIND)
        missing = [
            name
            for name, value in (
                ("subjectId", self.subject_id),
                ("buyerId", self.buyer_id),
            )
            if not isinstance(value, str) or not value.strip()
        ]
        if missing:
            raise ValidationError(ERROR_MISSING_FIELDS, details={"missing": missing})
        if not isinstance(self.return_origin, str) or not self.return_origin.strip():
            raise ValidationError(ERROR_MISSING_RETURN_ORIGIN)
        # Normalizes int/str amounts and rejects non-positive ones
        object.__setattr__(self, "amount", validate_amount(self.amount))


@dataclass(frozen=True)
class GatewayOrder:
    """An order as the gateway reports it. ``raw`` is the unmodified response body."""

    order_id: str
    amount: Decimal
    currency: str
    status: str
    settled: bool = False
    tags: dict[str, str] = field(default_factory=dict)
    return_url: str | None = None
    customer_id: str | None = None
    payment_session_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class VerificationResult:
    """
    Normalized view of an order, recomputed on every verification.

    This is the input contract of the entitlement reconciler.
    """

    order_id: str
    status: VerificationStatus
    amount: Decimal
    currency: str
    kind: PurchaseKind | None = None
    subject_id: str | None = None
    buyer_id: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == VerificationStatus.PAID

    def to_response(self) -> dict[str, Any]:
        return {
            "orderId": self.order_id,
            "status": self.status.value,
            "amount": to_wire(self.amount),
            "currency": self.currency,
            "kind": self.kind.value if self.kind else None,
            "subjectId": self.subject_id,
        }


# ==================== REQUEST MODELS ====================


# Field names sent by older clients -> current names
LEGACY_FIELD_NAMES: dict[str, str] = {
    "user_id": "buyerId",
    "user_phone": "buyerPhone",
    "user_email": "buyerEmail",
    "user_name": "buyerName",
    "price": "amount",
    "return_origin": "returnOrigin",
    "order_id": "orderId",
}

# Legacy subject field for each purchase kind
LEGACY_SUBJECT_FIELDS: dict[str, str] = {
    PurchaseKind.SUBSCRIPTION.value: "plan_id",
    PurchaseKind.PRODUCT.value: "product_id",
}


class CreateOrderRequest(BaseModel):
    """Body of the create-order call."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    subject_kind: str | None = Field(None, alias="subjectKind")
    subject_id: str | None = Field(None, alias="subjectId")
    buyer_id: str | None = Field(None, alias="buyerId")
    buyer_phone: str | None = Field(None, alias="buyerPhone")
    buyer_email: str | None = Field(None, alias="buyerEmail")
    buyer_name: str | None = Field(None, alias="buyerName")
    amount: Any = None
    return_origin: str | None = Field(None, alias="returnOrigin")
    order_id: str | None = Field(None, alias="orderId")

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_fields(cls, data: Any) -> Any:
        """Map snake_case fields sent by older clients (plan_id, user_id, price, ...)."""
        if not isinstance(data, dict):
            return data
        normalized = dict(data)
        kind = normalized.get("subjectKind") or normalized.get("subject_kind")
        if not kind:
            if normalized.get("product_id"):
                kind = normalized["subjectKind"] = PurchaseKind.PRODUCT.value
            elif normalized.get("plan_id"):
                kind = normalized["subjectKind"] = PurchaseKind.SUBSCRIPTION.value

        if normalized.get("subjectId") is None and normalized.get("subject_id") is None:
            legacy_subject = LEGACY_SUBJECT_FIELDS.get(str(kind).lower())
            if legacy_subject and normalized.get(legacy_subject):
                normalized["subjectId"] = normalized[legacy_subject]
            elif normalized.get("product_id") or normalized.get("plan_id"):
                normalized["subjectId"] = normalized.get("product_id") or normalized.get("plan_id")

        for legacy, current in LEGACY_FIELD_NAMES.items():
            if legacy in normalized and normalized.get(current) is None:
                normalized[current] = normalized.pop(legacy)
        return normalized

    def check(self) -> tuple[PurchaseKind, Decimal]:
        """
        Validate the fields that need no configuration.

        Returns:
            The parsed purchase kind and amount

        Raises:
            ValidationError: On any missing or invalid field
        """
        missing = [
            name
            for name, value in (
                ("subjectKind", self.subject_kind),
                ("subjectId", self.subject_id),
                ("buyerId", self.buyer_id),
                ("amount", self.amount),
            )
            if value is None or value == ""
        ]
        if missing:
            raise ValidationError(ERROR_MISSING_FIELDS, details={"missing": missing})

        try:
            kind = PurchaseKind(self.subject_kind.lower())
        except ValueError:
            raise ValidationError(ERROR_INVALID_KIND)

        if self.order_id is not None:
            if not is_valid_order_id(self.order_id):
                raise ValidationError(ERROR_INVALID_ORDER_ID)

        return kind, validate_amount(self.amount)

    def to_intent(self, fallback_origin: str | None = None) -> PurchaseIntent:
        """
        Build a validated PurchaseIntent.

        Args:
            fallback_origin: Used when the body carries no returnOrigin

        Raises:
            ValidationError: On any missing or invalid field
        """
        kind, amount = self.check()
        return PurchaseIntent(
            kind=kind,
            subject_id=self.subject_id,
            buyer_id=self.buyer_id,
            amount=amount,
            return_origin=self.return_origin or fallback_origin or "",
            buyer_contact=BuyerContact(
                email=self.buyer_email or None,
                phone=self.buyer_phone or None,
                display_name=self.buyer_name or None,
            ),
            order_id=self.order_id,
        )


class ConfirmOrderRequest(BaseModel):
    """Body of the confirm call (verify, then apply the entitlement)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    order_id: str | None = Field(None, alias="orderId")

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_fields(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("orderId") is None and "order_id" in data:
            data = {**data, "orderId": data["order_id"]}
        return data
