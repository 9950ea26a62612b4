"""Shared fixtures describing small in-memory and on-disk Signum sites.

The ``blog_site`` fixture models a typical site: a home page, an about page,
and a ``blog`` collection holding 23 dated posts paginated ten per page. The
``write_site`` fixture persists any manifest/content pair to ``tmp_path`` so
loader and CLI tests exercise the real filesystem path.
"""

from __future__ import annotations

import datetime as dt
import json
import typing as typ

import pytest

from signum_pages.config import Manifest, SiteData, ThemeSelection
from signum_pages.frontmatter import build_content_file
from signum_pages.structure import NodeKind, StructureNode

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from signum_pages.frontmatter import ContentFile

POST_COUNT = 23
FIRST_POST_DATE = dt.date(2024, 1, 1)


def make_content(
    path: str, title: str, layout: str = "page", body: str = "", **extra: typ.Any
) -> ContentFile:
    """Build a parsed content file from keyword frontmatter."""
    return build_content_file(path, {"title": title, "layout": layout, **extra}, body)


def make_site(
    structure: list[StructureNode],
    content_files: list[ContentFile] | None,
    *,
    theme: str = "default",
    theme_config: dict[str, typ.Any] | None = None,
    base_url: str | None = "https://signum.example",
    **manifest_fields: typ.Any,
) -> SiteData:
    """Assemble a ``SiteData`` snapshot around ``structure``."""
    manifest = Manifest(
        site_id="demo",
        title="Demo Site",
        description="A site used in tests.",
        theme=ThemeSelection(name=theme, config=theme_config or {}),
        structure=structure,
        base_url=base_url,
        **manifest_fields,
    )
    return SiteData(site_id="demo", manifest=manifest, content_files=content_files)


def post_path(index: int) -> str:
    return f"content/blog/post-{index:02d}.md"


def build_blog_site(
    *, post_count: int = POST_COUNT, items_per_page: int | None = 10
) -> SiteData:
    """Return a site with a home page, an about page, and a blog collection."""
    posts = [
        StructureNode(
            NodeKind.PAGE,
            f"Post {index}",
            post_path(index),
            f"blog/post-{index:02d}",
        )
        for index in range(1, post_count + 1)
    ]
    structure = [
        StructureNode(NodeKind.PAGE, "Home", "content/index.md", "index", nav_order=0),
        StructureNode(
            NodeKind.COLLECTION,
            "Blog",
            "content/blog.md",
            "blog",
            layout_id="listing",
            children=posts,
            nav_order=1,
        ),
        StructureNode(
            NodeKind.PAGE,
            "About",
            "content/about.md",
            "about",
            menu_title="About us",
            nav_order=2,
        ),
    ]
    collection: dict[str, typ.Any] = {"sort_by": "date", "sort_order": "desc"}
    if items_per_page is not None:
        collection["items_per_page"] = items_per_page
    content = [
        make_content("content/index.md", "Home", body="Welcome to **Signum**.\n"),
        make_content("content/about.md", "About", body="About this site.\n"),
        make_content(
            "content/blog.md",
            "Blog",
            layout="listing",
            body="Latest writing.\n",
            collection=collection,
        ),
    ]
    content.extend(
        make_content(
            post_path(index),
            f"Post {index}",
            body=f"Body of post {index}.\n",
            date=FIRST_POST_DATE + dt.timedelta(days=index - 1),
        )
        for index in range(1, post_count + 1)
    )
    return make_site(structure, content)


@pytest.fixture
def blog_site() -> SiteData:
    """Provide the paginated blog site."""
    return build_blog_site()


@pytest.fixture
def single_page_site() -> SiteData:
    """Provide a site with only a home page."""
    structure = [StructureNode(NodeKind.PAGE, "Home", "content/index.md", "index")]
    return make_site(structure, [make_content("content/index.md", "Home", body="Hi\n")])


@pytest.fixture
def write_site(tmp_path: Path) -> cabc.Callable[..., Path]:
    """Return a helper that writes a manifest and content files to disk."""

    def _write(
        manifest: cabc.Mapping[str, typ.Any],
        files: cabc.Mapping[str, str | bytes] | None = None,
    ) -> Path:
        root = tmp_path / "site"
        root.mkdir(parents=True, exist_ok=True)
        (root / "manifest.json").write_text(json.dumps(manifest), encoding="utf-8")
        for relative, data in (files or {}).items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(data, bytes):
                target.write_bytes(data)
            else:
                target.write_text(data, encoding="utf-8")
        return root

    return _write


@pytest.fixture
def simple_manifest() -> dict[str, typ.Any]:
    """Return a fresh one-page payload in ``manifest.json`` form."""
    return {
        "siteId": "demo",
        "title": "Demo Site",
        "description": "A site used in tests.",
        "baseUrl": "https://signum.example",
        "theme": {"name": "default", "config": {"color_primary": "#ff0000"}},
        "structure": [
            {
                "type": "page",
                "title": "Home",
                "path": "content/index.md",
                "slug": "index",
                "layout": "page",
                "navOrder": 0,
            }
        ],
    }


@pytest.fixture
def site_factory() -> cabc.Callable[..., SiteData]:
    """Expose :func:`make_site` to tests that need a bespoke structure."""
    return make_site


@pytest.fixture
def content_factory() -> cabc.Callable[..., ContentFile]:
    """Expose :func:`make_content` to tests that need bespoke content."""
    return make_content


@pytest.fixture
def blog_site_factory() -> cabc.Callable[..., SiteData]:
    """Expose :func:`build_blog_site` for tests that vary the post count."""
    return build_blog_site
