"""
Entitlement Reconciler.

Turns a verified payment into what the buyer paid for: an active subscription
on their profile, the professional-profile flag, or a marketplace purchase
record. Runs only on a VerificationResult, never on caller-supplied status, and
is safe to run any number of times for the same order.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from gigpay.constants import PurchaseKind, VerificationStatus
from gigpay.errors import ValidationError
from gigpay.logging import get_logger, sanitize_id_for_logging
from gigpay.models import VerificationResult

logger = get_logger(__name__)

PROFILES_TABLE = "profiles"
PURCHASES_TABLE = "product_purchases"
ACTIVATIONS_TABLE = "subscription_activations"
INCREMENT_PURCHASES_RPC = "increment_product_purchase"

ERROR_INCOMPLETE_ORDER = "Order is missing buyer or purchase details"
ERROR_PROFILE_NOT_FOUND = "Buyer profile not found"


class EntitlementOutcome(str, Enum):
    ACTIVATED = "activated"
    ALREADY_APPLIED = "already_applied"
    RECORDED = "recorded"
    ALREADY_RECORDED = "already_recorded"
    PENDING = "pending"
    DENIED = "denied"


@dataclass(frozen=True)
class SubscriptionPlan:
    plan_id: str
    duration_days: int
    reveals: int


# Effectively unlimited reveals for the monthly plan
UNLIMITED_REVEALS = 999999

SUBSCRIPTION_PLANS: dict[str, SubscriptionPlan] = {
    "1_day": SubscriptionPlan("1_day", duration_days=1, reveals=5),
    "1_week": SubscriptionPlan("1_week", duration_days=7, reveals=50),
    "1_month": SubscriptionPlan("1_month", duration_days=30, reveals=UNLIMITED_REVEALS),
}
DEFAULT_PLAN_ID = "1_week"
PROFESSIONAL_FEE_PLAN_ID = "professional_fee"


def resolve_plan(plan_id: str) -> SubscriptionPlan:
    """Look up a plan; unknown ids get the weekly plan."""
    plan = SUBSCRIPTION_PLANS.get(plan_id)
    if plan is None:
        logger.warning(
            "Unknown subscription plan '%s', falling back to %s",
            sanitize_id_for_logging(plan_id),
            DEFAULT_PLAN_ID,
        )
        return SUBSCRIPTION_PLANS[DEFAULT_PLAN_ID]
    return plan


def _is_duplicate_key_error(exception: Exception) -> bool:
    """Check if exception is a duplicate key constraint violation."""
    code = getattr(exception, "code", None)
    if code is not None and (code == 409 or "23505" in str(code)):
        return True
    if getattr(exception, "status_code", None) == 409:
        return True

    duplicate_keywords = ["23505", "duplicate key", "unique constraint", "already exists"]
    error_str = str(exception).lower()
    return any(keyword in error_str for keyword in duplicate_keywords)


class EntitlementReconciler:
    """Applies paid orders to Supabase tables."""

    def __init__(self, client: Any, now: Any = None):
        self.client = client
        self._now = now or (lambda: datetime.now(UTC))

    async def apply(self, result: VerificationResult) -> EntitlementOutcome:
        """
        Grant the entitlement for a verified order.

        Returns:
            The outcome; ``pending`` and ``denied`` mean nothing was written

        Raises:
            ValidationError: Paid order without buyer, kind or subject
        """
        safe_order_id = sanitize_id_for_logging(result.order_id)
        if result.status == VerificationStatus.PENDING:
            logger.info("Order %s still pending, entitlement deferred", safe_order_id)
            return EntitlementOutcome.PENDING
        if result.status != VerificationStatus.PAID:
            logger.info("Order %s not paid, no entitlement granted", safe_order_id)
            return EntitlementOutcome.DENIED

        if not result.buyer_id or not result.kind or not result.subject_id:
            logger.error("Paid order %s lacks buyer/subject details", safe_order_id)
            raise ValidationError(ERROR_INCOMPLETE_ORDER)

        if result.kind == PurchaseKind.SUBSCRIPTION:
            if result.subject_id == PROFESSIONAL_FEE_PLAN_ID:
                return await self._mark_professional_fee(result)
            return await self._activate_subscription(result)
        return await self._record_purchase(result)

    async def _load_profile(self, buyer_id: str, columns: str) -> dict[str, Any]:
        response = await (
            self.client.table(PROFILES_TABLE).select(columns).eq("id", buyer_id).limit(1).execute()
        )
        if not response.data:
            logger.error("Profile %s not found", sanitize_id_for_logging(buyer_id))
            raise ValidationError(ERROR_PROFILE_NOT_FOUND)
        return response.data[0]

    async def _mark_professional_fee(self, result: VerificationResult) -> EntitlementOutcome:
        profile = await self._load_profile(result.buyer_id, "id, has_paid_professional_fee")
        if profile.get("has_paid_professional_fee"):
            return EntitlementOutcome.ALREADY_APPLIED

        await (
            self.client.table(PROFILES_TABLE)
            .update({"has_paid_professional_fee": True})
            .eq("id", result.buyer_id)
            .execute()
        )
        logger.info(
            "Professional fee recorded for %s (order %s)",
            sanitize_id_for_logging(result.buyer_id),
            sanitize_id_for_logging(result.order_id),
        )
        return EntitlementOutcome.ACTIVATED

    async def _claim_activation(self, result: VerificationResult, plan: SubscriptionPlan) -> bool:
        """Record the order in the activation ledger. False if it was applied before."""
        try:
            await (
                self.client.table(ACTIVATIONS_TABLE)
                .insert(
                    {
                        "order_id": result.order_id,
                        "buyer_id": result.buyer_id,
                        "plan_id": plan.plan_id,
                        "amount_paid": str(result.amount),
                    }
                )
                .execute()
            )
        except Exception as e:
            if _is_duplicate_key_error(e):
                return False
            raise
        return True

    async def _release_activation(self, order_id: str) -> None:
        await self.client.table(ACTIVATIONS_TABLE).delete().eq("order_id", order_id).execute()

    async def _activate_subscription(self, result: VerificationResult) -> EntitlementOutcome:
        await self._load_profile(result.buyer_id, "id")

        plan = resolve_plan(result.subject_id)
        if not await self._claim_activation(result, plan):
            logger.info(
                "Subscription order %s already applied", sanitize_id_for_logging(result.order_id)
            )
            return EntitlementOutcome.ALREADY_APPLIED

        started_at = self._now()
        expires_at = started_at + timedelta(days=plan.duration_days)

        try:
            await (
                self.client.table(PROFILES_TABLE)
                .update(
                    {
                        "subscription_plan": plan.plan_id,
                        "subscription_status": "active",
                        "subscription_start_date": started_at.isoformat(),
                        "subscription_expires_at": expires_at.isoformat(),
                        "reveals_remaining": plan.reveals,
                        "reveals_used": 0,
                        "subscription_order_id": result.order_id,
                    }
                )
                .eq("id", result.buyer_id)
                .execute()
            )
        except Exception:
            # Unclaim so a later confirm can apply the order
            await self._release_activation(result.order_id)
            raise
        logger.info(
            "Subscription %s activated for %s until %s",
            plan.plan_id,
            sanitize_id_for_logging(result.buyer_id),
            expires_at.date().isoformat(),
        )
        return EntitlementOutcome.ACTIVATED

    async def _record_purchase(self, result: VerificationResult) -> EntitlementOutcome:
        try:
            await (
                self.client.table(PURCHASES_TABLE)
                .insert(
                    {
                        "buyer_id": result.buyer_id,
                        "product_id": result.subject_id,
                        "amount_paid": str(result.amount),
                        "status": "completed",
                        "order_id": result.order_id,
                    }
                )
                .execute()
            )
        except Exception as e:
            if _is_duplicate_key_error(e):
                logger.info(
                    "Purchase for order %s already recorded", sanitize_id_for_logging(result.order_id)
                )
                return EntitlementOutcome.ALREADY_RECORDED
            raise

        # Purchase counter is cosmetic; the purchase row above is what grants access
        try:
            await self.client.rpc(
                INCREMENT_PURCHASES_RPC, {"product_id": result.subject_id}
            ).execute()
        except Exception as e:
            logger.warning(
                "Failed to increment purchase count for product %s: %s",
                sanitize_id_for_logging(result.subject_id),
                e,
            )

        logger.info(
            "Purchase of %s recorded for %s",
            sanitize_id_for_logging(result.subject_id),
            sanitize_id_for_logging(result.buyer_id),
        )
        return EntitlementOutcome.RECORDED
