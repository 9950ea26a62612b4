"""Tests for compiling sites into ZIP archives.

Archives are inspected with :mod:`zipfile`; HTML members are parsed with
BeautifulSoup and the XML feeds with ElementTree.
"""

from __future__ import annotations

import datetime as dt
import io
import typing as typ
import zipfile
from xml.etree import ElementTree as ET

import msgspec.json as msgspec_json
import pytest
from bs4 import BeautifulSoup

from signum_pages.config import build_manifest
from signum_pages.exporter import ExportError, SiteExporter, export_to_archive
from signum_pages.frontmatter import parse_content_file

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from pytest_mock import MockerFixture

    from signum_pages.config import SiteData

BUILD_TIME = dt.datetime(2025, 2, 1, 9, 30, tzinfo=dt.UTC)
SITEMAP_NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}


def _export(site: SiteData) -> zipfile.ZipFile:
    archive = SiteExporter(site, now=BUILD_TIME).export_to_archive()
    return zipfile.ZipFile(io.BytesIO(archive))


def _html(archive: zipfile.ZipFile, name: str) -> BeautifulSoup:
    return BeautifulSoup(archive.read(name).decode("utf-8"), "html.parser")


def test_single_page_archive_contents(single_page_site: SiteData) -> None:
    """A one-page site exports its page, sources, bundles, and feeds."""
    with _export(single_page_site) as archive:
        names = set(archive.namelist())
    assert names == {
        "index.html",
        "_signum/manifest.json",
        "_signum/content/index.md",
        "_signum/themes/default/theme.json",
        "_signum/themes/default/base.jinja",
        "_signum/themes/default/partials/head.jinja",
        "_signum/themes/default/partials/header.jinja",
        "_signum/themes/default/partials/footer.jinja",
        "_signum/themes/default/style.css",
        "_signum/layouts/page/layout.json",
        "_signum/layouts/page/index.jinja",
        "rss.xml",
        "sitemap.xml",
    }


def test_paginated_collection_fans_out(blog_site: SiteData) -> None:
    """Only listing pages after the first get a ``page/<n>`` folder."""
    with _export(blog_site) as archive:
        names = set(archive.namelist())
    assert {"blog/index.html", "blog/page/2/index.html", "blog/page/3/index.html"} <= names
    assert "blog/page/1/index.html" not in names, "Page one lives at the listing root"
    assert "blog/page/4/index.html" not in names
    posts = {name for name in names if name.startswith("blog/post-")}
    assert len(posts) == 23
    assert "_signum/layouts/listing/item.jinja" in names


def test_exported_pages_use_relative_links(blog_site: SiteData) -> None:
    with _export(blog_site) as archive:
        page_two = _html(archive, "blog/page/2/index.html")
        about = _html(archive, "about/index.html")

    stylesheet = page_two.select_one('link[rel="stylesheet"]')
    assert stylesheet is not None
    assert stylesheet["href"] == "../../../_signum/themes/default/style.css"
    home = about.select_one("a.site-title")
    assert home is not None
    assert home["href"] == "../index.html"


def test_exported_sources_round_trip(blog_site: SiteData) -> None:
    """Sources in ``_signum/`` rebuild an equivalent site."""
    with _export(blog_site) as archive:
        manifest_payload = msgspec_json.decode(archive.read("_signum/manifest.json"))
        post_source = archive.read("_signum/content/blog/post-05.md").decode("utf-8")

    manifest = build_manifest(manifest_payload)
    assert [node.slug for node in manifest.structure] == ["index", "blog", "about"]
    assert manifest.theme.config["font_family"] == "system-ui, sans-serif", (
        "Theme defaults are synchronized into the exported manifest"
    )
    post = parse_content_file("content/blog/post-05.md", post_source)
    assert post.frontmatter["date"] == dt.date(2024, 1, 5)
    assert post.body == "Body of post 5.\n"


def test_export_does_not_modify_the_input_site(blog_site: SiteData) -> None:
    export_to_archive(blog_site)
    assert blog_site.manifest.theme.config == {}, "Synchronization works on a copy"


def test_rss_lists_newest_twenty_posts(blog_site: SiteData) -> None:
    with _export(blog_site) as archive:
        channel = ET.fromstring(archive.read("rss.xml")).find("channel")
    assert channel is not None
    titles = [item.findtext("title") for item in channel.findall("item")]
    assert len(titles) == 20
    assert titles[0] == "Post 23"
    assert titles[-1] == "Post 4"
    assert channel.findtext("item/guid") == "https://signum.example/blog/post-23/"
    assert channel.findtext("lastBuildDate") == "Sat, 01 Feb 2025 09:30:00 +0000"


def test_sitemap_lists_canonical_urls_only(blog_site: SiteData) -> None:
    with _export(blog_site) as archive:
        root = ET.fromstring(archive.read("sitemap.xml"))
    entries = {
        url.findtext("sm:loc", namespaces=SITEMAP_NS): url.findtext(
            "sm:lastmod", namespaces=SITEMAP_NS
        )
        for url in root.findall("sm:url", SITEMAP_NS)
    }
    assert len(entries) == 26
    assert not any("/page/" in loc for loc in entries if loc), (
        "Paginated listing pages are not canonical"
    )
    assert entries["https://signum.example/"] == "2025-02-01", "Undated pages use today"
    assert entries["https://signum.example/blog/post-02/"] == "2024-01-02"


def test_unresolvable_pages_are_skipped(blog_site: SiteData) -> None:
    blog_site.content_files = [
        item for item in blog_site.content_files or [] if item.path != "content/about.md"
    ]
    with _export(blog_site) as archive:
        names = set(archive.namelist())
        sitemap = archive.read("sitemap.xml").decode("utf-8")
    assert "about/index.html" not in names
    assert "https://signum.example/about/" not in sitemap


def test_referenced_images_are_exported(single_page_site: SiteData) -> None:
    single_page_site.manifest.logo = {"serviceId": "local", "src": "assets/logo.png"}
    single_page_site.image_assets = {
        "assets/logo.png": b"PNGDATA",
        "assets/unused.png": b"UNUSED",
    }
    with _export(single_page_site) as archive:
        assert archive.read("assets/logo.png") == b"PNGDATA"
        assert "assets/unused.png" not in archive.namelist()
        logo = _html(archive, "index.html").select_one("img.site-logo")
    assert logo is not None
    assert logo["src"] == "assets/logo.png"


@pytest.mark.parametrize(
    ("mutate", "fragment"),
    [
        (lambda site: setattr(site.manifest.theme, "name", ""), "no theme"),
        (lambda site: setattr(site, "content_files", None), "not been loaded"),
        (lambda site: setattr(site.manifest.theme, "name", "ghost"), "could not be resolved"),
    ],
)
def test_export_refuses_unusable_sites(
    single_page_site: SiteData,
    mutate: cabc.Callable[[SiteData], None],
    fragment: str,
) -> None:
    mutate(single_page_site)
    with pytest.raises(ExportError, match=fragment):
        SiteExporter(single_page_site).export_to_archive()


def test_archive_write_failures_raise_export_error(
    single_page_site: SiteData, mocker: MockerFixture
) -> None:
    mocker.patch.object(zipfile.ZipFile, "writestr", side_effect=OSError("disk full"))
    with pytest.raises(ExportError, match="disk full"):
        export_to_archive(single_page_site)
