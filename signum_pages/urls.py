"""Map structure nodes to archive paths, live URL segments, and absolute URLs.

Export paths are archive member names (``index.html``, ``blog/index.html``,
``blog/page/2/index.html``). Live segments are the URL path without a leading
slash (``''``, ``blog``, ``blog/page/2``).

Examples
--------
>>> from signum_pages.structure import NodeKind, StructureNode
>>> from signum_pages.urls import url_for_node, relative_path
>>> blog = StructureNode(NodeKind.COLLECTION, "Blog", "content/blog.md", "blog")
>>> url_for_node(blog, is_export=True, page_number=2)
'blog/page/2/index.html'
>>> relative_path("blog/page/2/index.html", "about/index.html")
'../../../about/index.html'
"""

from __future__ import annotations

import posixpath
import typing as typ

from ._constants import DEFAULT_BASE_URL, INDEX_SLUG, PAGINATION_SEGMENT

if typ.TYPE_CHECKING:
    from .structure import StructureNode

EXPORT_INDEX = "index.html"


def live_segment(slug: str) -> str:
    """Return the URL segment for ``slug``, collapsing ``index`` entries."""
    if slug == INDEX_SLUG:
        return ""
    return slug.removesuffix(f"/{INDEX_SLUG}")


def url_for_node(
    node: StructureNode, *, is_export: bool, page_number: int | None = None
) -> str:
    """Return the export path or live segment of ``node``.

    Parameters
    ----------
    node : StructureNode
        Node whose slug determines the URL.
    is_export : bool
        ``True`` for an archive member path, ``False`` for a live segment.
    page_number : int, optional
        Listing page number; values of ``None`` or ``1`` give the canonical URL.
    """
    segment = live_segment(node.slug)
    if page_number is not None and page_number > 1:
        suffix = PAGINATION_SEGMENT.format(page=page_number)
        segment = f"{segment}/{suffix}" if segment else suffix
    if not is_export:
        return segment
    return f"{segment}/{EXPORT_INDEX}" if segment else EXPORT_INDEX


def export_path_from_url(url: str) -> str:
    """Turn a root-relative URL such as ``/blog/page/2`` into an export path."""
    segment = url.strip("/")
    return f"{segment}/{EXPORT_INDEX}" if segment else EXPORT_INDEX


def relative_path(from_export_path: str, to_export_path: str) -> str:
    """Return a relative link from one archive file to another."""
    start = posixpath.dirname(from_export_path) or "."
    return posixpath.relpath(to_export_path, start)


def relative_asset_prefix(export_path: str) -> str:
    """Return the ``../`` prefix that climbs from ``export_path`` to the root."""
    return "../" * export_path.count("/")


def rooted_url(site_root_path: str, segment: str) -> str:
    """Join a live ``segment`` onto the preview root, e.g. ``/site/blog``."""
    root = site_root_path.rstrip("/")
    return f"{root}/{segment}" if segment else f"{root}/"


def absolute_url(base_url: str | None, export_path: str) -> str:
    """Return an absolute URL for ``export_path`` with ``index.html`` dropped."""
    base = (base_url or DEFAULT_BASE_URL).rstrip("/")
    path = export_path.removesuffix(EXPORT_INDEX)
    return f"{base}/{path}"


__all__ = [
    "EXPORT_INDEX",
    "absolute_url",
    "export_path_from_url",
    "live_segment",
    "relative_asset_prefix",
    "relative_path",
    "rooted_url",
    "url_for_node",
]
