"""Tests for the theme engine, render sessions, and template helpers.

Rendered pages are parsed with BeautifulSoup so assertions target elements
rather than whitespace-sensitive markup.
"""

from __future__ import annotations

import dataclasses as dc
import json
import typing as typ

import pytest
from bs4 import BeautifulSoup
from jinja2 import TemplateNotFound

from signum_pages.config import RawFile, ThemeInfo
from signum_pages.rendering import (
    MarkdownRenderer,
    RenderError,
    RenderOptions,
    RenderSession,
    ThemeEngine,
    sanitize_html,
)
from signum_pages.rendering.engine import STYLE_OVERRIDES_ID, build_style_overrides
from signum_pages.rendering.helpers import concat, format_date, str_util
from signum_pages.rendering.session import Helper, missing_partial_marker

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from signum_pages.config import SiteData

EXPORT = RenderOptions(is_export=True)
PREVIEW = RenderOptions(is_export=False, site_root_path="/preview/")


def _export_options(export_path: str) -> RenderOptions:
    return RenderOptions(
        is_export=True, relative_asset_path="../" * export_path.count("/")
    )


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def test_session_renders_registered_templates_with_autoescape() -> None:
    with RenderSession() as session:
        session.register_template("greet", "Hello {{ name }}")
        assert session.render("greet", {"name": "<b>"}) == "Hello &lt;b&gt;"


def test_sessions_do_not_share_partials() -> None:
    """A partial registered on one session is invisible to the next."""
    with RenderSession() as first:
        first.register_partial("banner", "FIRST")
        first.register_template("page", '{% include "banner" %}')
        assert first.render("page", {}) == "FIRST"

    with RenderSession() as second:
        second.register_template("page", '{% include "banner" %}')
        assert second.render("page", {}) == missing_partial_marker("banner"), (
            "Unregistered partials render a marker comment"
        )


def test_session_helpers_are_scoped_to_the_session() -> None:
    with RenderSession() as session:
        session.register_helper(Helper("shout", lambda text: text.upper()))
        session.register_template("page", "{{ shout('hi') }}")
        assert session.render("page", {}) == "HI"
    with RenderSession() as other:
        assert "shout" not in other.environment.globals


def test_session_lists_registered_templates() -> None:
    with RenderSession() as session:
        session.register_template("page", "P")
        session.register_partial("footer", "F")
        assert session.template_names == ["footer", "page"]
        assert session.has_template("footer")
    assert session.template_names == [], "Closing drops every registration"


def test_session_render_requires_registration() -> None:
    with RenderSession() as session, pytest.raises(TemplateNotFound):
        session.render("missing", {})


def test_home_page_renders_inside_theme_shell(blog_site: SiteData) -> None:
    html = ThemeEngine(blog_site).render_path([], options=EXPORT)
    soup = _soup(html)
    assert soup.title is not None
    assert soup.title.get_text() == "Home | Demo Site"
    body = soup.select_one(".page-body")
    assert body is not None
    assert body.find("strong") is not None, "Markdown bold should render"
    stylesheet = soup.select_one('link[rel="stylesheet"]')
    assert stylesheet is not None
    assert stylesheet["href"] == "_signum/themes/default/style.css"
    canonical = soup.select_one('link[rel="canonical"]')
    assert canonical is not None
    assert canonical["href"] == "https://signum.example/"


def test_preview_links_are_rooted_at_site_root(blog_site: SiteData) -> None:
    html = ThemeEngine(blog_site).render_path(["about"], options=PREVIEW)
    soup = _soup(html)
    nav = [anchor["href"] for anchor in soup.select(".site-nav a")]
    assert nav == ["/preview/", "/preview/blog", "/preview/about"]
    stylesheet = soup.select_one('link[rel="stylesheet"]')
    assert stylesheet is not None
    assert stylesheet["href"] == "/preview/_signum/themes/default/style.css"


def test_listing_page_links_relative_to_its_own_file(blog_site: SiteData) -> None:
    """Page two of a listing links back to page one and on to page three."""
    html = ThemeEngine(blog_site).render_path(
        ["blog"], 2, options=_export_options("blog/page/2/index.html")
    )
    soup = _soup(html)
    prev_link = soup.select_one("a.pager-prev")
    next_link = soup.select_one("a.pager-next")
    assert prev_link is not None
    assert next_link is not None
    assert prev_link["href"] == "../../index.html"
    assert next_link["href"] == "../3/index.html"
    status = soup.select_one(".pager-status")
    assert status is not None
    assert status.get_text() == "Page 2 of 3"

    items = soup.select(".listing-item h2 a")
    assert [anchor.get_text() for anchor in items][:2] == ["Post 13", "Post 12"]
    assert items[0]["href"] == "../../post-13/index.html"
    stylesheet = soup.select_one('link[rel="stylesheet"]')
    assert stylesheet is not None
    assert stylesheet["href"] == "../../../_signum/themes/default/style.css"


def test_first_listing_page_disables_previous(blog_site: SiteData) -> None:
    html = ThemeEngine(blog_site).render_path(
        ["blog"], options=_export_options("blog/index.html")
    )
    soup = _soup(html)
    assert soup.select_one("a.pager-prev") is None
    assert soup.select_one("span.pager-prev.is-disabled") is not None
    next_link = soup.select_one("a.pager-next")
    assert next_link is not None
    assert next_link["href"] == "page/2/index.html"


def test_empty_collection_shows_placeholder_without_pager(
    blog_site_factory: cabc.Callable[..., SiteData],
) -> None:
    html = ThemeEngine(blog_site_factory(post_count=0)).render_path(["blog"], options=EXPORT)
    soup = _soup(html)
    assert soup.select_one(".listing-empty") is not None
    assert soup.select_one(".pager") is None


def test_unknown_path_renders_not_found_document(blog_site: SiteData) -> None:
    soup = _soup(ThemeEngine(blog_site).render_path(["ghost"], options=EXPORT))
    assert soup.h1 is not None
    assert soup.h1.get_text() == "404 - Not Found"
    assert "/ghost" in soup.get_text()


def test_missing_layout_renders_error_document(blog_site: SiteData) -> None:
    about = blog_site.find_content("content/about.md")
    assert about is not None
    about.frontmatter["layout"] = "nonexistent"
    soup = _soup(ThemeEngine(blog_site).render_path(["about"], options=EXPORT))
    assert soup.h1 is not None
    assert soup.h1.get_text() == "Template error"
    assert "nonexistent" in soup.get_text()


def test_theme_without_base_template_renders_error_document(
    blog_site: SiteData,
) -> None:
    blog_site.manifest.theme.name = "bare"
    blog_site.manifest.themes = [ThemeInfo("bare", "Bare")]
    blog_site.theme_files = [RawFile("themes/bare/theme.json", json.dumps({"files": []}))]
    soup = _soup(ThemeEngine(blog_site).render_path([], options=EXPORT))
    assert soup.h1 is not None
    assert soup.h1.get_text() == "Template error"
    assert 'type "base"' in soup.get_text()


def test_template_exceptions_are_contained(blog_site: SiteData) -> None:
    blog_site.manifest.theme.name = "faulty"
    blog_site.theme_files = [
        RawFile(
            "themes/faulty/theme.json",
            json.dumps({"files": [{"path": "base.jinja", "type": "base"}]}),
        ),
        RawFile("themes/faulty/base.jinja", "{{ body }}{{ missing_helper() }}"),
    ]
    soup = _soup(ThemeEngine(blog_site).render_path([], options=EXPORT))
    assert soup.h1 is not None
    assert soup.h1.get_text() == "Template error"


def test_custom_theme_partials_are_used(blog_site: SiteData) -> None:
    blog_site.manifest.theme.name = "mini"
    blog_site.theme_files = [
        RawFile(
            "themes/mini/theme.json",
            json.dumps(
                {
                    "files": [
                        {"path": "base.jinja", "type": "base"},
                        {"path": "crumb.jinja", "type": "partial", "name": "crumb"},
                    ]
                }
            ),
        ),
        RawFile(
            "themes/mini/base.jinja",
            '<main>{% include "crumb" %}{{ body }}{% include "footer" %}</main>',
        ),
        RawFile("themes/mini/crumb.jinja", '<p class="crumb">{{ head.page_title }}</p>'),
    ]
    html = ThemeEngine(blog_site).render_path(["about"], options=EXPORT)
    soup = _soup(html)
    crumb = soup.select_one(".crumb")
    assert crumb is not None
    assert crumb.get_text() == "About"
    assert missing_partial_marker("footer") in html, (
        "Partials from the default theme must not leak into a custom theme"
    )


def test_render_requires_loaded_content(blog_site: SiteData) -> None:
    site = dc.replace(blog_site, content_files=None)
    with pytest.raises(RenderError, match="not been loaded"):
        ThemeEngine(site).render_path([], options=EXPORT)


def test_render_requires_a_theme(blog_site: SiteData) -> None:
    blog_site.manifest.theme.name = ""
    with pytest.raises(RenderError, match="No theme"):
        ThemeEngine(blog_site).render_path([], options=EXPORT)


def test_missing_item_layout_renders_marker(blog_site: SiteData) -> None:
    blog = blog_site.manifest.structure[1]
    blog.item_layout_id = "teaser"
    html = ThemeEngine(blog_site).render_path(["blog"], options=EXPORT)
    assert '<!-- Item layout "teaser" not found -->' in html


def test_style_overrides_expose_theme_config(blog_site: SiteData) -> None:
    blog_site.manifest.theme.config = {"color_primary": "#123456"}
    soup = _soup(ThemeEngine(blog_site).render_path([], options=EXPORT))
    style = soup.find("style", id=STYLE_OVERRIDES_ID)
    assert style is not None
    assert "--color-primary: #123456;" in style.get_text()


def test_build_style_overrides_strips_unsafe_characters() -> None:
    css = build_style_overrides({"font_family": "Inter</style><script>", "empty": ""})
    assert "--font-family: Inter/stylescript;" in css
    assert "--empty" not in css
    assert build_style_overrides({}) == ""


def test_build_style_overrides_skips_unsafe_keys() -> None:
    css = build_style_overrides({"a}</style><script>": "x", "color_primary": "#fff"})
    assert "script" not in css
    assert css.count("</style>") == 1
    assert "--color-primary: #fff;" in css


def test_logo_uses_image_helper_with_relative_prefix(blog_site: SiteData) -> None:
    blog_site.manifest.logo = {
        "serviceId": "local",
        "src": "assets/images/logo.png",
        "alt": "Logo",
    }
    html = ThemeEngine(blog_site).render_path(
        ["about"], options=_export_options("about/index.html")
    )
    logo = _soup(html).select_one("img.site-logo")
    assert logo is not None
    assert logo["src"] == "../assets/images/logo.png"
    assert logo["alt"] == "Logo"
    assert not logo.has_attr("loading"), "The logo is not lazy-loaded"


def test_sanitize_html_drops_scripts_and_unsafe_urls() -> None:
    cleaned = sanitize_html(
        '<p onclick="x()">Hi<script>alert(1)</script></p>'
        '<a href="javascript:alert(1)">bad</a><a href="/ok">ok</a>'
    )
    assert cleaned == '<p>Hi</p><a>bad</a><a href="/ok">ok</a>'


@pytest.mark.parametrize("void_tag", ["<wbr>", "<input type=\"text\">", "<source>", "<col>"])
def test_disallowed_void_tags_keep_paragraphs_closed(void_tag: str) -> None:
    rendered = MarkdownRenderer().render(f"Hello{void_tag}world\n\nNext paragraph")
    assert rendered.count("<p>") == rendered.count("</p>") == 2
    assert "Next paragraph</p>" in rendered


def test_sanitize_html_closes_tags_left_open() -> None:
    assert sanitize_html("<ul><li>one<mark>two</li></ul>") == "<ul><li>onetwo</li></ul>"
    assert sanitize_html("<p>stray</em> end</p>") == "<p>stray end</p>"
    assert sanitize_html("<blockquote><p>open") == "<blockquote><p>open</p></blockquote>"


def test_markdown_renderer_highlights_fenced_code() -> None:
    rendered = MarkdownRenderer().render("```python\nprint('hi')\n```\n")
    soup = _soup(rendered)
    block = soup.select_one("div.codehilite")
    assert block is not None
    assert block["data-language"] == "python"
    assert MarkdownRenderer().render("   \n") == ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2025-10-05", "5 October 2025"),
        ("2025-10-05T23:00:00Z", "5 October 2025"),
        ("not a date", ""),
        (None, ""),
    ],
)
def test_format_date(value: object, expected: str) -> None:
    assert format_date(value) == expected


def test_str_util_operations() -> None:
    long_text = "x" * 150
    truncated = str_util(long_text, "truncate")
    assert truncated == "x" * 140 + "…"
    assert str_util("short", "truncate", 10) == "short"
    assert str_util("Mixed", "uppercase") == "MIXED"
    assert str_util("Mixed", "lowercase") == "mixed"
    assert str_util("Mixed", "reverse") == "Mixed", "Unknown operations are no-ops"
    assert concat("a", None, 1) == "a1"
