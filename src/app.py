"""Resort Dining FastAPI application.

Staff-facing web server: order lookup, status updates from the kitchen and
delivery staff, post-delivery feedback, and the customer sync the guest
client calls after sign-in. Commands are processed synchronously and each
request runs inside the domain context its URL prefix belongs to.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from identity.domain import identity
from ordering.domain import ordering

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Domains are initialized at module level so uvicorn workers share them.
identity.init()
ordering.init()

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
# Checked in order: the identity sync endpoint shares the /customers prefix
_ROUTE_DOMAIN_MAP = (
    ("/customers/sync", identity),
    ("/customers", ordering),
    ("/orders", ordering),
)


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None.

    Prefixes match whole path segments: ``/customers/sync`` owns
    ``/customers/sync`` and ``/customers/sync/...`` but not ``/customers/syncer``.
    """
    for prefix, domain in _ROUTE_DOMAIN_MAP:
        if path == prefix or path.startswith(prefix + "/"):
            return domain
    return None


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Resort Dining API",
    description="Food and beverage ordering: Ordering and Identity domains",
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
    """Push the correct Protean domain context for each request."""
    domain = _resolve_domain(request.url.path)
    if domain is not None:
        with domain.domain_context():
            response = await call_next(request)
        return response
    # No domain match (health check, docs)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from identity.api.routes import router as identity_router  # noqa: E402
from ordering.api.routes import customer_orders_router, order_router  # noqa: E402

app.include_router(identity_router)
app.include_router(order_router)
app.include_router(customer_orders_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "ordering": {"name": ordering.name},
                "identity": {"name": identity.name},
            },
        }
    )
