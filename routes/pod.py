# ──────────────────────────────────────────────────────────────────────────────
# File: routes/pod.py
# Purpose: POD browser routes (namespace listings + rendered module docs)
#
# Endpoints (relative to the configured prefix, default /pod):
#   • GET /pod/                       → root namespace listing
#   • GET /pod/Foo/Bar/               → listing scoped to Foo::Bar
#   • GET /pod/Foo/Bar.pm|.pl|.pod    → rendered POD of Foo::Bar
#
# Guarantees
#   • The module index is scanned once per process (lazy, lock-guarded)
#   • Unknown modules → 404 through FastAPI's standard handling
#   • Empty namespaces render an empty listing, never an error
#   • Renderer failures propagate to the framework's 500 handling
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse

from services.errors import DocumentNotFound
from services.layout import Layout
from services.pod_html import (
    document_page,
    generate_breadcrumbs,
    looks_like_document,
    render_breadcrumbs,
    render_document,
    render_listing,
    split_segments,
)
from services.pod_index import ModuleIndex, strip_pod_ext
from services.pod_listing import ListingGroups, list_namespace
from services.pod_render import PodRenderer, RenderedDocument
from services.settings import PodSettings

logger = logging.getLogger("podview.routes")


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ Plugin (helpers usable for custom rendering)                             ║
# ╚══════════════════════════════════════════════════════════════════════════╝

class PodPlugin:
    """
    Binds settings, the module index, the renderer and the layout.

    The helper methods are public so host applications can build their own
    pages from the same listing/document data.
    """

    def __init__(
        self,
        settings: PodSettings,
        index: Optional[ModuleIndex] = None,
        layout: Optional[Layout] = None,
    ):
        self.settings = settings
        self.index = index if index is not None else ModuleIndex.from_settings(settings)
        self.layout = layout if layout is not None else Layout(settings.layout_dir)
        self.renderer = PodRenderer(url_prefix=settings.url_prefix)
        self.router = self._build_router()

    # ── data helpers ────────────────────────────────────────────────────────
    def pod_listing(self, namespace: Sequence[str] = ()) -> ListingGroups:
        return list_namespace(self.index.discover(), namespace)

    def pod(self, name: str) -> RenderedDocument:
        return render_document(
            name,
            self.index.discover(),
            self.renderer,
            code_class=self.settings.code_class,
            code_tag=self.settings.code_tag,
        )

    def breadcrumbs(self, segments: Sequence[str]) -> str:
        path = "/".join([self.settings.url_prefix.rstrip("/"), *segments])
        return render_breadcrumbs(generate_breadcrumbs(path, self.settings.prefix))

    # ── pages ───────────────────────────────────────────────────────────────
    def render_pod_listing(self, groups: ListingGroups, segments: Sequence[str] = ()) -> str:
        fragment = render_listing(
            groups,
            self.breadcrumbs(segments),
            self.settings.url_prefix,
            self.settings.title,
        )
        return self.layout.apply(fragment, title=self.settings.title)

    def listing_page(self, segments: Sequence[str] = ()) -> str:
        return self.render_pod_listing(self.pod_listing(segments), segments)

    def document_page(self, segments: Sequence[str]) -> str:
        name = "/".join([*segments[:-1], strip_pod_ext(segments[-1])])
        doc = self.pod(name)
        html = document_page(doc, self.breadcrumbs(segments))
        return self.layout.apply(html, title=doc.title or doc.name)

    # ── router ──────────────────────────────────────────────────────────────
    def _build_router(self) -> APIRouter:
        router = APIRouter(prefix=self.settings.url_prefix, tags=["pod"])

        @router.get("/", response_class=HTMLResponse)
        def pod_root():
            """Root namespace listing."""
            return HTMLResponse(self.listing_page())

        @router.get("/{pod_path:path}", response_class=HTMLResponse)
        def pod_page(pod_path: str):
            """Namespace listing, or the rendered POD when the path names a file."""
            segments: List[str] = split_segments(pod_path)
            if not looks_like_document(segments):
                return HTMLResponse(self.listing_page(segments))
            try:
                return HTMLResponse(self.document_page(segments))
            except DocumentNotFound as e:
                logger.info("pod not found path=%s name=%s", pod_path, e.name)
                raise HTTPException(status_code=404, detail=str(e))

        return router


def build_router(
    settings: PodSettings,
    index: Optional[ModuleIndex] = None,
    layout: Optional[Layout] = None,
) -> APIRouter:
    """Shortcut for hosts that only need the router."""
    return PodPlugin(settings, index=index, layout=layout).router
