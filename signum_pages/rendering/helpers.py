"""Built-in template helpers registered on every render session.

Each entry in :data:`CORE_HELPERS` is a factory that receives the
:class:`HelperContext` of the current render and returns the helpers it
contributes. Helpers close over that context, so they can resolve collection
queries, item layouts, and links relative to the page being rendered.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import html
import logging
import typing as typ

from markupsafe import Markup

from signum_pages.config.helpers import parse_timestamp
from signum_pages.images import ImageRef
from signum_pages.resolver import execute_query
from signum_pages.structure import find_node_by_path
from signum_pages.urls import relative_path, rooted_url, url_for_node

from .session import FILTER, GLOBAL_AND_FILTER, Helper

if typ.TYPE_CHECKING:
    from signum_pages.config import SiteData
    from signum_pages.frontmatter import ContentFile
    from signum_pages.images import ImageService
    from signum_pages.resolver import PaginationData
    from signum_pages.structure import StructureNode

    from .engine import RenderOptions
    from .markdown import MarkdownRenderer
    from .session import RenderSession

logger = logging.getLogger(__name__)

DEFAULT_TRUNCATE_LENGTH = 140
ELLIPSIS = "…"


@dc.dataclass(slots=True)
class HelperContext:
    """Everything a helper may need about the current render."""

    site: SiteData
    options: RenderOptions
    current_export_path: str
    session: RenderSession
    markdown: MarkdownRenderer
    image_service: ImageService

    @property
    def content_files(self) -> list[ContentFile]:
        return self.site.content_files or []

    def link_to(self, node: StructureNode) -> str:
        """Return a link to ``node`` suitable for the current render mode."""
        if self.options.is_export:
            return relative_path(
                self.current_export_path, url_for_node(node, is_export=True)
            )
        return rooted_url(
            self.options.site_root_path, url_for_node(node, is_export=False)
        )


HelperFactory = cabc.Callable[[HelperContext], list[Helper]]


def _comparison_helpers(ctx: HelperContext) -> list[Helper]:
    def gt(left: typ.Any, right: typ.Any) -> bool:
        try:
            return bool(left > right)
        except TypeError:
            return False

    def lt(left: typ.Any, right: typ.Any) -> bool:
        try:
            return bool(left < right)
        except TypeError:
            return False

    return [
        Helper("eq", lambda left, right: left == right),
        Helper("ne", lambda left, right: left != right),
        Helper("gt", gt),
        Helper("lt", lt),
    ]


def format_date(value: object) -> str:
    """Format ``value`` as ``5 October 2025``; invalid dates become ``''``."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return f"{parsed.day} {parsed:%B %Y}"


def str_util(
    value: object, operation: str, length: int = DEFAULT_TRUNCATE_LENGTH
) -> str:
    """Apply a string ``operation``: ``truncate``, ``uppercase``, or ``lowercase``."""
    text = "" if value is None else str(value)
    match operation:
        case "truncate":
            return text if len(text) <= length else f"{text[:length]}{ELLIPSIS}"
        case "uppercase":
            return text.upper()
        case "lowercase":
            return text.lower()
        case _:
            logger.warning("Unknown str_util operation %r", operation)
            return text


def concat(*parts: object) -> str:
    """Join the string forms of ``parts``, skipping ``None``."""
    return "".join(str(part) for part in parts if part is not None)


def _string_helpers(ctx: HelperContext) -> list[Helper]:
    return [
        Helper("format_date", format_date, GLOBAL_AND_FILTER),
        Helper("str_util", str_util, GLOBAL_AND_FILTER),
        Helper("concat", concat),
    ]


def _markdown_helpers(ctx: HelperContext) -> list[Helper]:
    def markdown(value: object) -> Markup:
        return Markup(ctx.markdown.render("" if value is None else str(value)))

    return [Helper("markdown", markdown, FILTER)]


def _query_helpers(ctx: HelperContext) -> list[Helper]:
    def query(
        source_collection: str,
        sort_by: str = "date",
        sort_order: str = "desc",
        limit: int | None = None,
    ) -> list[ContentFile]:
        return execute_query(
            ctx.site.manifest.structure,
            ctx.content_files,
            source_collection,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
        )

    return [Helper("query", query)]


def _url_helpers(ctx: HelperContext) -> list[Helper]:
    def url_for(target: object) -> str:
        path = getattr(target, "path", target)
        node = (
            find_node_by_path(ctx.site.manifest.structure, path)
            if isinstance(path, str)
            else None
        )
        if node is None:
            logger.warning("url_for could not find a node for %r", path)
            return "#"
        return ctx.link_to(node)

    return [Helper("url_for", url_for)]


def _layout_helpers(ctx: HelperContext) -> list[Helper]:
    url_for = _url_helpers(ctx)[0].func

    def render_layout_for_item(item: ContentFile | None, layout: str | None = None) -> Markup:
        if item is None:
            return Markup("")
        layout_id = layout or item.layout
        template_name = f"{layout_id}/item"
        if not ctx.session.has_template(template_name):
            logger.warning("Item layout %r not found", layout_id)
            return Markup(f'<!-- Item layout "{html.escape(layout_id)}" not found -->')
        return Markup(
            ctx.session.render(
                template_name,
                {
                    "item": item,
                    "frontmatter": item.frontmatter,
                    "title": item.title,
                    "url": url_for(item),
                    "body_html": Markup(ctx.markdown.render(item.body)),
                    "options": ctx.options,
                    "manifest": ctx.site.manifest,
                },
            )
        )

    def pager(pagination: PaginationData | None) -> Markup:
        if pagination is None or pagination.total_pages <= 1:
            return Markup("")
        if pagination.has_prev_page and pagination.prev_page_url:
            prev_link = Markup(
                '<a class="pager-prev" rel="prev" href="{}">&lsaquo; Previous</a>'
            ).format(pagination.prev_page_url)
        else:
            prev_link = Markup(
                '<span class="pager-prev is-disabled">&lsaquo; Previous</span>'
            )
        if pagination.has_next_page and pagination.next_page_url:
            next_link = Markup(
                '<a class="pager-next" rel="next" href="{}">Next &rsaquo;</a>'
            ).format(pagination.next_page_url)
        else:
            next_link = Markup('<span class="pager-next is-disabled">Next &rsaquo;</span>')
        status = Markup('<span class="pager-status">Page {} of {}</span>').format(
            pagination.current_page, pagination.total_pages
        )
        return Markup('<nav class="pager">{}{}{}</nav>').format(
            prev_link, status, next_link
        )

    return [
        Helper("render_layout_for_item", render_layout_for_item),
        Helper("pager", pager),
    ]


def _image_helpers(ctx: HelperContext) -> list[Helper]:
    def image(
        src: object,
        width: int | None = None,
        height: int | None = None,
        alt: str | None = None,
        class_name: str = "",
        lazy: bool = True,
    ) -> Markup:
        ref = src if isinstance(src, ImageRef) else None
        if ref is None and isinstance(src, dict):
            ref = ImageRef.from_mapping(src)
        if ref is None:
            return Markup("<!-- Invalid ImageRef provided to image helper -->")
        prefix = (
            ctx.options.relative_asset_path
            if ctx.options.is_export
            else ctx.options.site_root_path
        )
        url = ctx.image_service.get_display_url(
            ref, is_export=ctx.options.is_export, prefix=prefix
        )
        attrs: list[tuple[str, object]] = [("src", url)]
        if width or ref.width:
            attrs.append(("width", width or ref.width))
        if height or ref.height:
            attrs.append(("height", height or ref.height))
        attrs.append(("alt", alt or ref.alt or ""))
        if class_name:
            attrs.append(("class", class_name))
        if lazy:
            attrs.append(("loading", "lazy"))
        rendered = "".join(
            f' {name}="{html.escape(str(value), quote=True)}"' for name, value in attrs
        )
        return Markup(f"<img{rendered}>")

    return [Helper("image", image)]


CORE_HELPERS: tuple[HelperFactory, ...] = (
    _comparison_helpers,
    _string_helpers,
    _markdown_helpers,
    _query_helpers,
    _url_helpers,
    _layout_helpers,
    _image_helpers,
)


def register_core_helpers(
    ctx: HelperContext, factories: cabc.Iterable[HelperFactory] = CORE_HELPERS
) -> None:
    """Register the helpers of every factory on ``ctx.session``."""
    for factory in factories:
        ctx.session.register_helpers(factory(ctx))


__all__ = [
    "CORE_HELPERS",
    "DEFAULT_TRUNCATE_LENGTH",
    "HelperContext",
    "HelperFactory",
    "concat",
    "format_date",
    "register_core_helpers",
    "str_util",
]
