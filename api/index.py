"""
GigPay - Main FastAPI Application

Single entry point for the payment order API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gigpay.config import is_gateway_configured
from gigpay.errors import ConfigurationError
from gigpay.logging import get_logger
from gigpay.routers import payments_router
from gigpay.routers.deps import get_settings, shutdown_services

logger = get_logger(__name__)


# ==================== FASTAPI APP ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup: surface missing credentials in the logs before the first request
    try:
        get_settings()
    except ConfigurationError as e:
        logger.critical("Payment gateway configuration invalid: %s", e)
    yield
    # Shutdown
    await shutdown_services()


app = FastAPI(
    title="GigPay",
    description="Payment order API for subscriptions and marketplace products",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Answer framework errors (404, 405) with the same ``{error}`` body as the API."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# ==================== HEALTH CHECK ====================


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "gigpay", "gateway_configured": is_gateway_configured()}
