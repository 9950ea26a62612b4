"""Render resolved pages into complete HTML documents.

:class:`ThemeEngine` drives one render pass per page: it opens a fresh
:class:`~signum_pages.rendering.session.RenderSession`, registers the built-in
helpers, the active theme's partials, and every available layout's templates,
renders the layout body against the resolution, and finally wraps the body in
the theme's base template.

Problems scoped to one page (a missing layout or base template, or a template
that fails to render) produce an inline error document for that page only.
Problems that make every page wrong (no theme configured, content not loaded)
raise :class:`RenderError`.

Example
-------
>>> from signum_pages.rendering import RenderOptions, ThemeEngine
>>> engine = ThemeEngine(site)  # doctest: +SKIP
>>> html = engine.render_path(["blog"], options=RenderOptions(is_export=False))  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import html
import logging
import re
import typing as typ

from jinja2 import TemplateError
from markupsafe import Markup

from signum_pages._constants import SOURCE_FOLDER
from signum_pages.assets import AssetFileType, AssetKind, AssetResolver
from signum_pages.images import ImageRef, get_active_image_service
from signum_pages.navigation import build_nav_links
from signum_pages.resolver import NotFound, SinglePage, resolve
from signum_pages.urls import (
    EXPORT_INDEX,
    absolute_url,
    export_path_from_url,
    relative_path,
    rooted_url,
    url_for_node,
)

from .helpers import HelperContext, register_core_helpers
from .markdown import MarkdownRenderer
from .session import RenderSession

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from signum_pages.assets import AssetManifest
    from signum_pages.config import SiteData
    from signum_pages.images import ImageService
    from signum_pages.resolver import PageResolutionResult, PaginationData

logger = logging.getLogger(__name__)

STYLE_OVERRIDES_ID = "signum-theme-overrides"
_UNSAFE_CSS_VALUE = re.compile(r"[<>{};]")
_CSS_VARIABLE_KEY = re.compile(r"[A-Za-z0-9_-]+")


class RenderError(RuntimeError):
    """Raised when no page of the site can be rendered."""


class _MissingTemplateError(LookupError):
    """A body or base template needed for one page is unavailable."""


@dc.dataclass(frozen=True, slots=True)
class RenderOptions:
    """How links and asset URLs should be written for one render.

    Attributes
    ----------
    is_export : bool
        ``True`` when rendering archive files; links are then relative.
    site_root_path : str
        Prefix for links in preview mode, e.g. ``/sites/demo/``.
    relative_asset_path : str
        ``../`` prefix climbing from the current archive file to the root.
    """

    is_export: bool
    site_root_path: str = "/"
    relative_asset_path: str = ""


def error_document(title: str, message: str) -> str:
    """Return a minimal standalone HTML page describing a render problem."""
    safe_title = html.escape(title)
    return (
        '<!DOCTYPE html>\n<html lang="en">\n<head><meta charset="utf-8">'
        f"<title>{safe_title}</title></head>\n"
        f'<body class="signum-error"><h1>{safe_title}</h1>'
        f"<p>{html.escape(message)}</p></body>\n</html>\n"
    )


def build_style_overrides(config: cabc.Mapping[str, typ.Any]) -> str:
    """Return a ``<style>`` block exposing theme settings as CSS variables.

    ``font_family: Inter`` becomes ``--font-family: Inter;``. Empty values and
    keys that are not plain identifiers are skipped. An empty config yields an
    empty string.
    """
    declarations = [
        f"--{key.replace('_', '-')}: {_UNSAFE_CSS_VALUE.sub('', str(value))};"
        for key, value in config.items()
        if value not in (None, "", False) and _CSS_VARIABLE_KEY.fullmatch(str(key))
    ]
    if not declarations:
        return ""
    return f'<style id="{STYLE_OVERRIDES_ID}">:root {{ {" ".join(declarations)} }}</style>'


class ThemeEngine:
    """Render :class:`PageResolutionResult` values with the site's theme."""

    def __init__(
        self,
        site: SiteData,
        assets: AssetResolver | None = None,
        *,
        image_service: ImageService | None = None,
        pygments_style: str = "default",
    ) -> None:
        self.site = site
        self.assets = assets or AssetResolver(site)
        self.image_service = image_service or get_active_image_service(site)
        self.markdown = MarkdownRenderer(pygments_style=pygments_style)

    def render_path(
        self,
        url_segments: cabc.Sequence[str],
        page_number: int = 1,
        *,
        options: RenderOptions,
    ) -> str:
        """Resolve ``url_segments`` and render the result."""
        self._ensure_renderable()
        resolution = resolve(
            self.site.manifest.structure,
            self.site.content_files or [],
            url_segments,
            page_number,
        )
        return self.render(resolution, options)

    def render(self, resolution: PageResolutionResult, options: RenderOptions) -> str:
        """Render ``resolution`` into a full HTML document.

        Raises
        ------
        RenderError
            If the site has no theme configured or its content is not loaded.
        """
        self._ensure_renderable()
        match resolution:
            case NotFound(error_message=message):
                return error_document("404 - Not Found", message)
            case SinglePage():
                page = resolution
            case _:  # pragma: no cover - exhaustive over PageResolutionResult
                msg = f"Unsupported resolution {resolution!r}"
                raise RenderError(msg)

        with RenderSession() as session:
            export_path = self.export_path_for(page)
            ctx = HelperContext(
                site=self.site,
                options=options,
                current_export_path=export_path,
                session=session,
                markdown=self.markdown,
                image_service=self.image_service,
            )
            register_core_helpers(ctx)
            theme = self._register_theme(session)
            self._register_layouts(session, page)
            try:
                body = self._render_body(session, page, options, export_path)
                return self._render_shell(
                    session, page, options, export_path, theme, Markup(body)
                )
            except _MissingTemplateError as exc:
                logger.error("Cannot render %s: %s", export_path, exc)
                return error_document("Template error", str(exc))
            except TemplateError as exc:
                logger.exception("Template failure while rendering %s", export_path)
                return error_document("Template error", f"{type(exc).__name__}: {exc}")

    def export_path_for(self, page: SinglePage) -> str:
        """Return the archive path of ``page``, including its listing page."""
        current = page.pagination.current_page if page.pagination else None
        return url_for_node(page.node, is_export=True, page_number=current)

    def _ensure_renderable(self) -> None:
        if not self.site.manifest.theme.name:
            msg = "No theme is configured for this site."
            raise RenderError(msg)
        if self.site.content_files is None:
            msg = "Site content has not been loaded. Cannot render page."
            raise RenderError(msg)

    def _register_theme(self, session: RenderSession) -> AssetManifest | None:
        theme_id = self.site.manifest.theme.name
        theme = self.assets.get_asset_manifest(AssetKind.THEME, theme_id)
        if theme is None:
            logger.error("Theme %r has no readable manifest", theme_id)
            return None
        for partial in theme.files_of_type(AssetFileType.PARTIAL):
            if not partial.name:
                logger.warning("Theme %r lists an unnamed partial %s", theme_id, partial.path)
                continue
            source = self.assets.get_asset_content(AssetKind.THEME, theme_id, partial.path)
            if source is None:
                logger.warning("Theme %r partial %s is missing", theme_id, partial.path)
                continue
            session.register_partial(partial.name, source)
        return theme

    def _register_layouts(self, session: RenderSession, page: SinglePage) -> None:
        layout_ids = [
            *self.assets.get_available_layouts(),
            page.layout_id,
            *([page.item_layout_id] if page.item_layout_id else []),
        ]
        for layout_id in dict.fromkeys(layout_ids):
            manifest = self.assets.get_asset_manifest(AssetKind.LAYOUT, layout_id)
            if manifest is None:
                continue
            for file_type, name in (
                (AssetFileType.TEMPLATE, layout_id),
                (AssetFileType.ITEM, f"{layout_id}/item"),
            ):
                entry = manifest.first_file(file_type)
                if entry is None:
                    continue
                source = self.assets.get_asset_content(
                    AssetKind.LAYOUT, layout_id, entry.path
                )
                if source is not None:
                    session.register_template(name, source)
            for partial in manifest.files_of_type(AssetFileType.PARTIAL):
                source = self.assets.get_asset_content(
                    AssetKind.LAYOUT, layout_id, partial.path
                )
                if partial.name and source is not None:
                    session.register_partial(partial.name, source)

    def _render_body(
        self,
        session: RenderSession,
        page: SinglePage,
        options: RenderOptions,
        export_path: str,
    ) -> str:
        if not session.has_template(page.layout_id):
            msg = f"Layout template '{page.layout_id}' not found."
            raise _MissingTemplateError(msg)
        context = {
            "page_title": page.page_title,
            "content_file": page.content_file,
            "frontmatter": page.content_file.frontmatter,
            "body_html": Markup(self.markdown.render(page.content_file.body)),
            "layout_id": page.layout_id,
            "collection_items": page.collection_items,
            "pagination": self._localize_pagination(
                page.pagination, options, export_path
            ),
            "item_layout_id": page.item_layout_id,
            "options": options,
            "manifest": self.site.manifest,
        }
        return session.render(page.layout_id, context)

    def _render_shell(
        self,
        session: RenderSession,
        page: SinglePage,
        options: RenderOptions,
        export_path: str,
        theme: AssetManifest | None,
        body: Markup,
    ) -> str:
        theme_id = self.site.manifest.theme.name
        base_file = theme.first_file(AssetFileType.BASE) if theme else None
        if theme is None or base_file is None:
            msg = 'Active theme is missing a template with type "base".'
            raise _MissingTemplateError(msg)
        base_source = self.assets.get_asset_content(AssetKind.THEME, theme_id, base_file.path)
        if base_source is None:
            msg = f"Could not load base template source at '{base_file.path}'."
            raise _MissingTemplateError(msg)
        session.register_template(f"{theme_id}/{base_file.path}", base_source)

        manifest = self.site.manifest
        canonical_url = absolute_url(
            manifest.base_url, url_for_node(page.node, is_export=True)
        )
        stylesheets = [
            self._asset_url(f"themes/{theme_id}/{item.path}", options)
            for item in theme.files_of_type(AssetFileType.STYLESHEET)
        ]
        head = {
            "page_title": page.page_title,
            "canonical_url": canonical_url,
            "base_url": "" if options.is_export else (manifest.base_url or ""),
            "style_overrides": Markup(build_style_overrides(manifest.theme.config)),
            "pygments_css": Markup(self.markdown.stylesheet),
            "favicon_url": self._favicon_url(options),
        }
        if options.is_export:
            home_url = relative_path(export_path, EXPORT_INDEX)
        else:
            home_url = rooted_url(options.site_root_path, "")
        return session.render(
            f"{theme_id}/{base_file.path}",
            {
                "manifest": manifest,
                "nav_links": build_nav_links(manifest.structure, export_path, options),
                "body": body,
                "year": dt.datetime.now(dt.UTC).year,
                "options": options,
                "theme_stylesheets": stylesheets,
                "home_url": home_url,
                "head": head,
            },
        )

    def _asset_url(self, source_path: str, options: RenderOptions) -> str:
        target = f"{SOURCE_FOLDER}/{source_path}"
        if options.is_export:
            return f"{options.relative_asset_path}{target}"
        return rooted_url(options.site_root_path, target)

    def _favicon_url(self, options: RenderOptions) -> str | None:
        favicon = self.site.manifest.favicon
        ref = ImageRef.from_mapping(favicon) if favicon else None
        if ref is None:
            return None
        prefix = options.relative_asset_path if options.is_export else options.site_root_path
        return self.image_service.get_display_url(
            ref, is_export=options.is_export, prefix=prefix
        )

    @staticmethod
    def _localize_pagination(
        pagination: PaginationData | None, options: RenderOptions, export_path: str
    ) -> PaginationData | None:
        """Rewrite root-relative pager URLs for the current render mode."""
        if pagination is None:
            return None

        def _convert(url: str | None) -> str | None:
            if url is None:
                return None
            if options.is_export:
                return relative_path(export_path, export_path_from_url(url))
            return rooted_url(options.site_root_path, url.strip("/"))

        return dc.replace(
            pagination,
            prev_page_url=_convert(pagination.prev_page_url),
            next_page_url=_convert(pagination.next_page_url),
        )


__all__ = [
    "STYLE_OVERRIDES_ID",
    "RenderError",
    "RenderOptions",
    "ThemeEngine",
    "build_style_overrides",
    "error_document",
]
