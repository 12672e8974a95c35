# ──────────────────────────────────────────────────────────────────────────────
# File: routes/health.py
# Purpose: Liveness (/livez) and Readiness (/readyz) probes for Ops/Deploy
#          • /livez — simple heartbeat (no dependencies)
#          • /readyz — descriptive snapshot of the POD wiring that never crashes
#            - Search roots: configured paths + existence flags
#            - Index: built or not, module count once built (never forces a scan)
#            - Routes: count of mounted FastAPI routes (helps detect router drift)
#
# Contract:
#   • Status code 200 when at least one search root exists.
#   • 503 when none of the configured roots is a directory.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Helper Utilities                                                         │
# ╰──────────────────────────────────────────────────────────────────────────╯

def _roots_report(paths) -> List[Dict[str, Any]]:
    """Existence flags for each configured search root."""
    return [{"path": p, "is_dir": Path(p).is_dir()} for p in paths]


def _routes_count(app) -> Optional[int]:
    """Count APIRoute entries (helps detect router mount drift)."""
    from fastapi.routing import APIRoute
    return sum(1 for r in app.router.routes if isinstance(r, APIRoute))


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Endpoints                                                                │
# ╰──────────────────────────────────────────────────────────────────────────╯

@router.get("/livez", summary="Liveness probe")
def livez() -> Dict[str, Any]:
    """Simple heartbeat; indicates process is up and serving requests."""
    return {"ok": True, "ts": int(time.time())}


@router.get("/readyz", summary="Readiness probe")
def readyz(request: Request) -> JSONResponse:
    """
    Readiness snapshot used by deploy/ops. Reads the index state but never
    triggers the scan itself.
    """
    plugin = getattr(request.app.state, "pod", None)
    problems: List[str] = []
    payload: Dict[str, Any] = {
        "service": os.getenv("SERVICE_NAME", "podview"),
        "version": os.getenv("RELEASE", "dev"),
        "ts": int(time.time()),
        "routes_count": _routes_count(request.app),
    }

    if plugin is None:
        problems.append("pod_plugin_missing")
    else:
        roots = _roots_report(plugin.settings.paths)
        if not any(r["is_dir"] for r in roots):
            problems.append("no_search_root")
        index = plugin.index
        payload["prefix"] = plugin.settings.url_prefix
        payload["search_roots"] = roots
        payload["include_inc"] = plugin.settings.include_inc
        payload["index"] = {
            "built": index.is_built,
            "modules": len(index) if index.is_built else None,
            "built_at": index.built_at,
        }

    ok = not problems
    payload["ok"] = ok
    payload["problems"] = problems
    return JSONResponse(status_code=(200 if ok else 503), content=payload)
