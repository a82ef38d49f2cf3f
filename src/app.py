"""Grocery fulfillment FastAPI application.

Web server that processes fulfillment commands synchronously via HTTP. Every
request runs inside the grocery domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (projectors fire in UoW)
#   - "production" → event_processing = "async" (projectors fire via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from grocery.domain import grocery  # noqa: E402
from protean.integrations.fastapi import register_exception_handlers

grocery.init()

_DOMAIN_PREFIXES = ("/vendors", "/products", "/workers", "/orders", "/maintenance")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Grocery Fulfillment API",
    description="Order fulfillment and dispatch for a multi-sided grocery marketplace",
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
    """Push the grocery domain context for every domain request."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with grocery.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from grocery.api import (  # noqa: E402
    maintenance_router,
    order_router,
    product_router,
    register_fulfillment_error_handlers,
    vendor_router,
    worker_router,
)

app.include_router(vendor_router)
app.include_router(product_router)
app.include_router(worker_router)
app.include_router(order_router)
app.include_router(maintenance_router)

register_exception_handlers(app)
register_fulfillment_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": grocery.name}})
