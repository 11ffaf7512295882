"""Workshop FastAPI application.

Web server that processes workshop commands synchronously via HTTP. Every
API request runs inside the workshop domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - default      → event_processing = "sync"  (projectors fire in UoW)
#   - "production" → event_processing = "async" (projectors fire via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workshop.domain import workshop
from workshop.utils.logging import add_context, clear_context, configure_logging

configure_logging()
workshop.init()

_UNSCOPED_PATHS = ("/health", "/docs", "/openapi.json", "/redoc")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Workshop API",
    description="Order fulfillment workflow and commission engine",
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
    """Push the workshop domain context for each API request."""
    if request.url.path.startswith(_UNSCOPED_PATHS):
        return await call_next(request)
    clear_context()
    add_context(method=request.method, path=request.url.path, user_id=request.headers.get("x-user-id"))
    with workshop.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from workshop.api import (  # noqa: E402
    commission_router,
    invoice_router,
    item_router,
    order_router,
    workflow_router,
)
from workshop.api.errors import register_workshop_exception_handlers  # noqa: E402

app.include_router(workflow_router)
app.include_router(order_router)
app.include_router(item_router)
app.include_router(invoice_router)
app.include_router(commission_router)
register_workshop_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": workshop.name})
