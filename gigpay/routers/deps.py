"""
Shared Dependencies for Routers

Lazy-loaded singletons: settings are read from the environment once per
process, and the gateway client keeps one pooled HTTP client.
"""

from typing import Optional

from gigpay.config import GatewaySettings, load_settings
from gigpay.database import close_database, get_database_async
from gigpay.entitlements import EntitlementReconciler
from gigpay.gateway import CashfreeClient
from gigpay.service import OrderService

# ==================== LAZY SINGLETONS ====================

_settings: Optional[GatewaySettings] = None
_gateway_client: Optional[CashfreeClient] = None
_order_service: Optional[OrderService] = None
_reconciler: Optional[EntitlementReconciler] = None


def get_settings() -> GatewaySettings:
    """Get validated gateway settings (raises ConfigurationError if incomplete)"""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def build_order_service(client: CashfreeClient, settings: GatewaySettings) -> OrderService:
    return OrderService(client, currency=settings.currency, default_origin=settings.site_url)


def get_order_service() -> OrderService:
    """Get or create OrderService singleton"""
    global _gateway_client, _order_service
    if _order_service is None:
        settings = get_settings()
        _gateway_client = CashfreeClient(settings)
        _order_service = build_order_service(_gateway_client, settings)
    return _order_service


async def get_reconciler() -> EntitlementReconciler:
    """Get or create EntitlementReconciler singleton (connects to Supabase on first use)"""
    global _reconciler
    if _reconciler is None:
        db = await get_database_async()
        _reconciler = EntitlementReconciler(db.client)
    return _reconciler


# ==================== SHUTDOWN HELPERS ====================
async def shutdown_services():
    """Cleanly close singleton services (http clients, etc.)."""
    global _gateway_client, _order_service, _reconciler
    if _gateway_client is not None:
        try:
            await _gateway_client.aclose()
        finally:
            _gateway_client = None
            _order_service = None
    if _reconciler is not None:
        _reconciler = None
        await close_database()
