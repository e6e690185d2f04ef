"""Ordering service FastAPI application.

Checkout, order, shipping and webhook endpoints for the ordering domain.
Commands are processed synchronously; each request runs inside the domain
context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

import os

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the domain.toml overlay and the adapter policy.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ordering.config import get_settings
from ordering.domain import ordering
from ordering.utils.logging import bind_request_context, clear_request_context, configure_logging

configure_logging(json=os.getenv("PROTEAN_ENV") == "production")
ordering.init()
if get_settings().is_production:
    get_settings().validate()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Ordering API",
    description="Checkout-to-fulfillment order pipeline",
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
    """Push the ordering domain context and tag log lines with the request."""
    clear_request_context()
    bind_request_context(method=request.method, path=request.url.path)
    with ordering.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api import register_exception_handlers, routers  # noqa: E402

for router in routers:
    app.include_router(router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    settings = get_settings()
    return JSONResponse(
        content={
            "status": "ok",
            "domain": ordering.name,
            "environment": settings.environment,
            "adapters": {
                "payments": settings.payment_gateway,
                "carrier": settings.carrier_adapter,
                "email": settings.email_adapter,
            },
        }
    )
