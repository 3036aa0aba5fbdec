"""Storefront FastAPI application.

Web server for the cart and checkout API. Every request that reaches the
cart or order routers runs inside the storefront domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay ("development", "test", "production").
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.config import environment
from storefront.domain import storefront
from storefront.utils.logging import add_context, clear_context, configure_logging

configure_logging()
storefront.init()

_DOMAIN_PREFIXES = ("/cart", "/orders")


def create_app() -> FastAPI:
    from storefront.api import cart_router, order_router, register_error_handlers

    app = FastAPI(
        title="Storefront API",
        description="Shopping cart, coupons and checkout",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context for API requests."""
        clear_context()
        add_context(
            request_id=request.headers.get("x-request-id") or uuid4().hex,
            method=request.method,
            path=request.url.path,
        )
        if request.url.path.startswith(_DOMAIN_PREFIXES):
            with storefront.domain_context():
                return await call_next(request)
        # Health check, docs, etc.
        return await call_next(request)

    app.include_router(cart_router)
    app.include_router(order_router)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "environment": environment(),
                "domain": storefront.name,
            }
        )

    return app


app = create_app()
