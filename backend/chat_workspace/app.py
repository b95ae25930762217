"""FastAPI application setup for the chat workspace service."""

from __future__ import annotations

from fastapi import FastAPI, Request

from chat_workspace.api.dependencies import (
    get_app_settings,
    get_database,
    get_presence_cache,
    get_search_aggregator,
    get_session_registry,
)
from chat_workspace.api.routes_admin import router as admin_router
from chat_workspace.api.routes_channels import router as channels_router
from chat_workspace.api.routes_presence import router as presence_router
from chat_workspace.api.routes_search import router as search_router
from chat_workspace.core.logging import configure_logging
from chat_workspace.core.metrics import REQUEST_COUNT

configure_logging()

app = FastAPI(
    title="Chat Workspace",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(search_router, prefix="", tags=["search"])
app.include_router(channels_router, prefix="", tags=["channels"])
app.include_router(presence_router, prefix="", tags=["presence"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.middleware("http")
async def count_requests(request: Request, call_next):
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.on_event("startup")
async def startup() -> None:
    """Open storage and start the presence cache before serving."""
    get_app_settings()
    get_database()
    get_presence_cache()
    get_search_aggregator()


@app.on_event("shutdown")
async def shutdown() -> None:
    """Sign out every open presence session."""
    await get_session_registry().close_all()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Liveness check."""
    return {"ok": True}
