# ──────────────────────────────────────────────────────────────────────────────
# File: tests/test_pod_routes.py
# Purpose: HTTP behaviour of the POD router (listings, documents, 404s).
# ──────────────────────────────────────────────────────────────────────────────
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from routes.pod import PodPlugin, build_router
from services.pod_index import ModuleIndex
from services.settings import PodSettings


def test_root_listing(client):
    r = client.get("/pod/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    body = r.text
    assert "<!DOCTYPE html>" in body
    assert '<a class="pod_listing_link pod_listing_namespace" href="/pod/Acme/">Acme/</a>' in body
    assert '<a class="pod_listing_link pod_listing_namespace" href="/pod/Foo/">Foo/</a>' in body
    assert '<a class="pod_listing_link pod_listing_file" href="/pod/Foo.pm">Foo</a>' in body
    assert '<a class="pod_listing_link pod_listing_file" href="/pod/tool.pl">tool</a>' in body
    assert "pod_breadcrumb_link" not in body


def test_namespace_listing(client):
    r = client.get("/pod/Foo/")
    assert r.status_code == 200
    assert 'href="/pod/Foo/Bar.pod">Bar</a>' in r.text
    assert 'href="/pod/Foo/Baz.pm">Baz</a>' in r.text
    assert '<a class="pod_breadcrumb_link" href="/pod">ROOT</a>' in r.text


def test_empty_namespace_is_not_an_error(client):
    r = client.get("/pod/No/Such/Space")
    assert r.status_code == 200
    assert "pod_listing_section" not in r.text


def test_document_page(client):
    r = client.get("/pod/Foo/Bar.pm")
    assert r.status_code == 200
    body = r.text
    assert "<title>Foo::Bar - documented in a .pod file</title>" in body
    assert '<ul id="index">' in body
    assert '<h1 id="DESCRIPTION">DESCRIPTION</h1>' in body
    assert '<a href="/pod/Foo.pm">Foo</a>' in body
    assert "<pre><code>  print &#34;first&#34;;</code></pre>" in body
    assert '<a class="pod_breadcrumb_link" href="/pod/Foo">Foo</a>' in body


def test_document_page_any_extension_resolves_same_name(client):
    assert client.get("/pod/Foo/Bar.pod").text == client.get("/pod/Foo/Bar.pm").text


def test_unknown_document_is_404(client):
    r = client.get("/pod/Nope/Missing.pm")
    assert r.status_code == 404
    assert r.json() == {"detail": "No POD found for 'Nope/Missing'"}


def test_digit_named_file_is_404(client):
    assert client.get("/pod/2Fast.pm").status_code == 404


def test_code_class_rewrite(perl_lib, make_client):
    settings = PodSettings.build(paths=(str(perl_lib),), code_class="brush: pl")
    r = make_client(settings).get("/pod/Foo/Bar.pm")
    assert r.status_code == 200
    assert '<pre class="brush: pl">  print &#34;first&#34;;</pre>' in r.text
    assert "<pre><code>" not in r.text


def test_custom_prefix_and_title(perl_lib, make_client):
    settings = PodSettings.build(paths=(str(perl_lib),), prefix="/docs/", title="Library")
    c = make_client(settings)
    r = c.get("/docs/")
    assert r.status_code == 200
    assert '<h2 id="pod_listing_header">Library</h2>' in r.text
    assert 'href="/docs/Foo.pm"' in r.text
    assert c.get("/pod/").status_code == 404


def test_custom_layout_dir(perl_lib, tmp_path, make_client):
    layouts = tmp_path / "layouts"
    layouts.mkdir()
    (layouts / "layout.html").write_text("<main data-title=\"{{ title }}\">{{ content }}</main>", encoding="utf-8")
    settings = PodSettings.build(paths=(str(perl_lib),), layout_dir=str(layouts))
    r = make_client(settings).get("/pod/")
    assert r.text.startswith('<main data-title="Perl Module List"><div id="pod_listing">')


def test_index_is_shared_across_requests(settings, make_client):
    index = ModuleIndex.from_settings(settings)
    c = make_client(settings, index=index)
    c.get("/pod/")
    first = index.discover()
    c.get("/pod/Foo/")
    c.get("/pod/Foo.pm")
    assert index.discover() is first


def test_plugin_helpers(settings):
    plugin = PodPlugin(settings)
    groups = plugin.pod_listing(["Foo"])
    assert [e.name for e in groups["B"]] == ["Bar", "Baz"]
    doc = plugin.pod("Foo")
    assert doc.title == "Foo - top level module"


def test_build_router_prefix(settings):
    router = build_router(settings)
    assert router.prefix == "/pod"


@pytest.mark.asyncio
async def test_document_page_async_client(settings):
    app = FastAPI()
    app.include_router(build_router(settings))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.get("/pod/Acme/Widget.pm")
        assert r.status_code == 200
        assert "Acme::Widget - widgets" in r.text
