"""FastAPI routers for the payment order endpoints."""

from gigpay.routers.payments import router as payments_router

__all__ = ["payments_router"]
