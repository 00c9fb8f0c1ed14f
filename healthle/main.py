"""
Healthle - FastAPI Application Entry Points

Each portal is a separate app with the same middleware, error handlers
and health check:

- ``admin_app``: platform administration (vendors, staff, products, orders)
- ``user_app``: consultations, AI interviews, checkout and orders
- ``vendor_app``: store staff sign-in, store profile and products

Run one with e.g. ``uvicorn healthle.main:user_app``.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from healthle.api import health
from healthle.api.admin import management, orders as admin_orders, products as admin_products
from healthle.api.admin import users as admin_users, vendors as admin_vendors
from healthle.api.user import (
    auth as user_auth,
    checkout,
    consultations,
    content,
    interviews,
    orders as user_orders,
    profile,
    urgency,
    webhooks,
)
from healthle.api.vendor import auth as vendor_auth, pharmacy, products as vendor_products
from healthle.core.config import settings
from healthle.core.database import close_db, init_db
from healthle.core.errors import register_error_handlers
from healthle.core.logging_config import setup_logging
from healthle.middleware.logging import LoggingMiddleware
from healthle.middleware.request_id import RequestIDMiddleware
from healthle.middleware.security_headers import SecurityHeadersMiddleware

ADMIN = "admin"
USER = "user"
VENDOR = "vendor"

PORTAL_ROUTERS = {
    ADMIN: [
        admin_orders.router,
        admin_products.router,
        admin_users.router,
        admin_vendors.router,
        management.router,
    ],
    USER: [
        user_auth.router,
        profile.router,
        consultations.router,
        urgency.router,
        interviews.router,
        checkout.router,
        user_orders.router,
        webhooks.router,
        content.router,
    ],
    VENDOR: [
        vendor_auth.router,
        pharmacy.router,
        vendor_products.router,
    ],
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Startup:
        - Set up logging
        - Initialize database

    Shutdown:
        - Close database connections
    """
    setup_logging(level=settings.log_level, json_format=settings.log_json)
    await init_db()

    yield

    await close_db()


def create_app(portal: str) -> FastAPI:
    """
    Build the FastAPI app of one portal.

    Args:
        portal: ``admin``, ``user`` or ``vendor``

    Raises:
        ValueError: Unknown portal name
    """
    if portal not in PORTAL_ROUTERS:
        raise ValueError(f"Unknown portal: {portal}")

    app = FastAPI(
        title=f"{settings.project_name} ({portal})",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Configure middleware
    # Note: Middleware is executed in reverse order of registration
    # (last registered = first executed)

    # Security headers middleware (runs last, adds headers to response)
    app.add_middleware(SecurityHeadersMiddleware, hsts=not settings.is_development)

    # Logging middleware (runs after RequestID to access request_id)
    app.add_middleware(LoggingMiddleware)

    # Request ID middleware (sets correlation ID)
    app.add_middleware(RequestIDMiddleware)

    # CORS middleware - configured from environment
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health.router, tags=["health"])
    for router in PORTAL_ROUTERS[portal]:
        app.include_router(router)

    return app


admin_app = create_app(ADMIN)
user_app = create_app(USER)
vendor_app = create_app(VENDOR)
