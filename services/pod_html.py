# ──────────────────────────────────────────────────────────────────────────────
# File: pod_html.py
# Directory: services/
# Purpose : HTML fragments for the POD pages
#           • Breadcrumb navigation from the request path
#           • Namespace listing markup (CSS hooks: pod_listing_*)
#           • Document page assembly + code block class rewrite
#
# Downstream:
#   - routes.pod
#
# Contents:
#   - looks_like_document()
#   - generate_breadcrumbs() / render_breadcrumbs()
#   - render_listing()
#   - apply_code_class()
#   - render_document()
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from typing import List, Mapping, Optional, Sequence
from urllib.parse import quote

from markupsafe import escape

from services.errors import DocumentNotFound
from services.pod_index import POD_EXTS, strip_pod_ext
from services.pod_listing import ListingEntry, ListingGroups
from services.pod_render import PodRenderer, RenderedDocument


def split_segments(path: str) -> List[str]:
    return [p for p in path.split("/") if p]


def looks_like_document(segments: Sequence[str]) -> bool:
    """True when the last segment names a .pm/.pl/.pod file rather than a namespace."""
    return bool(segments) and segments[-1].endswith(POD_EXTS)


# ─── Breadcrumbs ──────────────────────────────────────────────────────────

def generate_breadcrumbs(request_path: str, prefix: str) -> List[str]:
    """
    Breadcrumb fragments for a request path such as ``/pod/Foo/Bar.pm``.

    Yields a ROOT link, one link per ancestor segment and the final segment
    as plain text (extension removed). The root listing has no crumbs.
    """
    parts = split_segments(request_path)
    prefix_parts = split_segments(prefix)
    if parts[: len(prefix_parts)] == prefix_parts:
        parts = parts[len(prefix_parts):]
    if not parts:
        return []

    base = "/" + "/".join(quote(p, safe="") for p in prefix_parts)
    crumbs = [f'<a class="pod_breadcrumb_link" href="{escape(base)}">ROOT</a>']
    url = ""
    for i, part in enumerate(parts):
        url += "/" + quote(part, safe="")
        if i < len(parts) - 1:
            crumbs.append(f'<a class="pod_breadcrumb_link" href="{escape(base + url)}">{escape(part)}</a>')
        else:
            crumbs.append(str(escape(strip_pod_ext(part))))
    return crumbs


def render_breadcrumbs(crumbs: Sequence[str]) -> str:
    links = "\n    ".join(crumbs)
    return f"<div id='pod_breadcrumbs'>\n    {links}\n</div>\n"


# ─── Listing ──────────────────────────────────────────────────────────────

def _entry_link(entry: ListingEntry, url_prefix: str) -> str:
    css = "pod_listing_namespace" if entry.is_namespace else "pod_listing_file"
    return '<a class="pod_listing_link {}" href="{}">{}</a>'.format(
        css, escape(entry.href(url_prefix)), escape(entry.name)
    )


def render_listing(groups: ListingGroups, breadcrumbs: str, url_prefix: str, title: str) -> str:
    """Listing fragment: header, breadcrumbs, then one labeled list per letter."""
    out = [
        '<div id="pod_listing">',
        f'    <h2 id="pod_listing_header">{escape(title)}</h2>',
        f"    {breadcrumbs}",
    ]
    for letter in sorted(groups):
        out.append(f'\t<p class="pod_listing_section">{escape(letter)}</p>')
        out.append('\t<ul id="pod_listing_ul">')
        for entry in groups[letter]:
            out.append(f'<li class="pod_listing_li">{_entry_link(entry, url_prefix)}</li>')
        out.append("\t</ul>")
    out.append("</div>")
    return "\n".join(out)


# ─── Documents ────────────────────────────────────────────────────────────

def apply_code_class(body: str, code_class: Optional[str], code_tag: str = "pre") -> str:
    """
    Swap every ``<pre><code>`` for ``<{code_tag} class="{code_class}">`` and
    every ``</code></pre>`` for ``</{code_tag}>``. Plain string substitution;
    a no-op when no class is configured.
    """
    if code_class is None:
        return body
    opener = f'<{code_tag} class="{escape(code_class)}">'
    return body.replace("<pre><code>", opener).replace("</code></pre>", f"</{code_tag}>")


def render_document(
    name: str,
    modules: Mapping[str, str],
    renderer: PodRenderer,
    code_class: Optional[str] = None,
    code_tag: str = "pre",
) -> RenderedDocument:
    """
    Render the POD of logical module ``name`` (e.g. ``Foo/Bar``).

    Raises DocumentNotFound when the name is not indexed; renderer errors
    propagate untouched.
    """
    path = modules.get(name)
    if path is None:
        raise DocumentNotFound(name)
    doc = renderer.render_file(path, name=name.replace("/", "::"))
    doc.body = apply_code_class(doc.body, code_class, code_tag)
    return doc


def document_page(doc: RenderedDocument, breadcrumbs: str) -> str:
    return f"{breadcrumbs}\n{doc.toc}\n{doc.body}\n"
