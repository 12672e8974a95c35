# ──────────────────────────────────────────────────────────────────────────────
# File: main.py
# Purpose: FastAPI entrypoint for podview (POD browser for a local Perl tree)
#
# Guarantees
#   • Fail-fast: missing POD_PATHS aborts startup (PodConfigError).
#   • Request IDs, gzip and access logs on every request.
#   • Health endpoints always mounted (/livez, /readyz).
#   • The module index is built lazily, or at startup when POD_WARM_INDEX=1.
#
# Notes
#   • Keep this file small and boring; logic belongs in services/.
#   • Hosts embedding the plugin can skip this file and mount
#     routes.pod.build_router(settings) on their own app.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

# ── Stdlib --------------------------------------------------------------------
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

# ── Third-party ---------------------------------------------------------------
from fastapi import FastAPI, Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import ClientDisconnect

# ── Local ---------------------------------------------------------------------
from core.logging import setup_logging
from routes.health import router as health_router
from routes.pod import PodPlugin
from services.layout import Layout
from services.pod_index import ModuleIndex
from services.settings import PodSettings

# ── Logging -------------------------------------------------------------------
logger = logging.getLogger("podview.main")


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ Middlewares                                                              ║
# ╚══════════════════════════════════════════════════════════════════════════╝

class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attach a correlation ID to each request and echo it in the response headers.

    Header: X-Corr-Id (in/out)
    """
    async def dispatch(self, request: Request, call_next):
        cid = request.headers.get("x-corr-id") or f"{uuid.uuid4().hex[:8]}{int(time.time())%1000:03d}"
        request.state.corr_id = cid
        response = await call_next(request)
        response.headers["x-corr-id"] = cid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Minimal structured access log. Always logs a line, even on exceptions.

    Fields: method, path, cid, status, dur_ms
    """
    async def dispatch(self, request: Request, call_next):
        t0 = time.perf_counter()
        method = request.method
        path = request.url.path
        status = None
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dur_ms = int((time.perf_counter() - t0) * 1000)
            cid = getattr(getattr(request, "state", None), "corr_id", "-")
            logger.info(
                "req method=%s path=%s cid=%s status=%s dur_ms=%s",
                method, path, cid, status if status is not None else "ERR", dur_ms
            )


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ App Factory (Lifespan, Middlewares, Routers)                             ║
# ╚══════════════════════════════════════════════════════════════════════════╝

def create_app(
    settings: Optional[PodSettings] = None,
    index: Optional[ModuleIndex] = None,
    layout: Optional[Layout] = None,
) -> FastAPI:
    settings = settings or PodSettings.from_env()
    plugin = PodPlugin(settings, index=index, layout=layout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: report configuration; optionally build the module index.
        Shutdown: quiet.
        """
        logger.info(
            "🚦 podview starting prefix=%s paths=%s include_inc=%s",
            settings.url_prefix, list(settings.paths), settings.include_inc,
        )
        if settings.warm_index:
            modules = await run_in_threadpool(plugin.index.discover)
            logger.info("✅ POD index warmed modules=%d", len(modules))
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.pod = plugin

    # ── Core Middlewares -------------------------------------------------------
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AccessLogMiddleware)

    # ── Routers ----------------------------------------------------------------
    app.include_router(health_router)
    app.include_router(plugin.router)
    logger.info("🔌 Router enabled: pod (%s)", settings.url_prefix)

    # ── ClientDisconnect is not an error --------------------------------------
    @app.exception_handler(ClientDisconnect)
    async def _client_disconnect_handler(_: Request, __: ClientDisconnect):
        # Client dropped mid-request; keep logs clean.
        return Response(status_code=204)

    return app


setup_logging()

# Instantiate the app (used by ASGI server)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )
