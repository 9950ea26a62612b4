"""Resolve URL paths against the structure tree and collection queries.

:func:`resolve` is the only contract between routing and rendering. It returns
either a :class:`SinglePage` (with the sorted, optionally paginated listing of a
collection's direct children) or a :class:`NotFound` describing why nothing
could be rendered. Callers dispatch on the result with ``match``.

Example
-------
>>> from signum_pages.resolver import NotFound, SinglePage, resolve
>>> result = resolve(site.manifest.structure, site.content_files, ["blog"], 2)  # doctest: +SKIP
>>> match result:  # doctest: +SKIP
...     case SinglePage(pagination=pagination):
...         print(pagination.current_page)
...     case NotFound(error_message=message):
...         print(message)
2
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import functools
import locale
import logging
import math
import typing as typ
import unicodedata

from ._constants import CONTENT_PREFIX, CONTENT_SUFFIX, INDEX_SLUG, PAGINATION_SEGMENT
from .config.helpers import parse_timestamp
from .frontmatter import CollectionConfig, SortOrder
from .structure import find_node_by_path, flatten_renderable_nodes
from .urls import live_segment

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .frontmatter import ContentFile
    from .structure import StructureNode

logger = logging.getLogger(__name__)

_EPOCH = 0.0


@dc.dataclass(frozen=True, slots=True)
class PaginationData:
    """Position of one listing page within a paginated collection."""

    current_page: int
    total_pages: int
    total_items: int
    has_prev_page: bool
    has_next_page: bool
    prev_page_url: str | None = None
    next_page_url: str | None = None


@dc.dataclass(frozen=True, slots=True)
class SinglePage:
    """A resolvable page, optionally carrying a collection listing."""

    page_title: str
    content_file: ContentFile
    layout_id: str
    node: StructureNode
    collection_items: list[ContentFile] | None = None
    pagination: PaginationData | None = None

    @property
    def item_layout_id(self) -> str | None:
        """Return the layout used for listing items, if the node sets one."""
        return self.node.item_layout_id


@dc.dataclass(frozen=True, slots=True)
class NotFound:
    """A URL that matched nothing renderable."""

    error_message: str


PageResolutionResult = SinglePage | NotFound


def content_path_for(url_segments: cabc.Sequence[str]) -> str:
    """Return the storage path addressed by ``url_segments``."""
    segments = [part.strip("/") for part in url_segments if part.strip("/")]
    suffix = "/".join(segments) or INDEX_SLUG
    return f"{CONTENT_PREFIX}{suffix}{CONTENT_SUFFIX}"


def resolve(
    structure: cabc.Sequence[StructureNode],
    content_files: cabc.Sequence[ContentFile],
    url_segments: cabc.Sequence[str],
    page_number: int = 1,
) -> PageResolutionResult:
    """Find the page addressed by ``url_segments`` and build its listing.

    Parameters
    ----------
    structure : Sequence[StructureNode]
        Root nodes of the site tree.
    content_files : Sequence[ContentFile]
        Every loaded content file.
    url_segments : Sequence[str]
        URL path split on ``/``; empty segments are ignored and no segments
        address ``content/index.md``.
    page_number : int, optional
        Requested listing page; clamped into the valid range.

    Returns
    -------
    SinglePage | NotFound
        ``NotFound`` distinguishes a path with no node from a node whose
        content file is missing.
    """
    path = content_path_for(url_segments)
    node = find_node_by_path(structure, path)
    if node is None:
        joined = "/".join(part for part in url_segments if part)
        return NotFound(f"No page found at the path /{joined}.")
    content = _find_content(content_files, node.path)
    if content is None:
        return NotFound(
            f'Manifest references "{node.path}" but its content file is missing.'
        )

    config = content.collection
    if config is None and node.is_collection:
        config = CollectionConfig()
    if config is None:
        return SinglePage(
            page_title=content.title,
            content_file=content,
            layout_id=content.layout,
            node=node,
        )

    items = sort_items(_gather_children(node, content_files), config)
    pagination: PaginationData | None = None
    if config.items_per_page:
        items, pagination = paginate(
            items, config.items_per_page, page_number, _listing_base_url(node)
        )
    return SinglePage(
        page_title=content.title,
        content_file=content,
        layout_id=content.layout,
        node=node,
        collection_items=items,
        pagination=pagination,
    )


def paginate(
    items: list[ContentFile], items_per_page: int, page_number: int, base_url: str
) -> tuple[list[ContentFile], PaginationData]:
    """Slice ``items`` for ``page_number`` and describe the page position.

    An empty listing reports ``total_pages=0`` and ``current_page=1``.
    """
    total_items = len(items)
    total_pages = math.ceil(total_items / items_per_page)
    current = max(1, min(page_number, total_pages))
    start = (current - 1) * items_per_page
    has_prev = current > 1
    has_next = current < total_pages
    return items[start : start + items_per_page], PaginationData(
        current_page=current,
        total_pages=total_pages,
        total_items=total_items,
        has_prev_page=has_prev,
        has_next_page=has_next,
        prev_page_url=_page_url(base_url, current - 1) if has_prev else None,
        next_page_url=_page_url(base_url, current + 1) if has_next else None,
    )


def execute_query(
    structure: cabc.Sequence[StructureNode],
    content_files: cabc.Sequence[ContentFile],
    source_collection: str,
    sort_by: str = "date",
    sort_order: str = SortOrder.DESC,
    limit: int | None = None,
) -> list[ContentFile]:
    """Return the sorted children of the collection whose slug matches."""
    collection = next(
        (
            node
            for node in flatten_renderable_nodes(structure)
            if node.is_collection and node.slug == source_collection
        ),
        None,
    )
    if collection is None:
        logger.warning("Query source collection %r not found", source_collection)
        return []
    order = SortOrder.ASC if str(sort_order).lower() == "asc" else SortOrder.DESC
    items = sort_items(
        _gather_children(collection, content_files),
        CollectionConfig(sort_by=sort_by, sort_order=order),
    )
    if limit is not None and limit >= 0:
        return items[:limit]
    return items


def sort_items(
    items: cabc.Iterable[ContentFile], config: CollectionConfig
) -> list[ContentFile]:
    """Stable-sort ``items`` by ``config.sort_by`` in ``config.sort_order``."""
    modifier = -1 if config.sort_order is SortOrder.DESC else 1
    as_date = config.sort_by == "date"

    def _cmp(left: ContentFile, right: ContentFile) -> int:
        return modifier * compare_values(
            left.frontmatter.get(config.sort_by),
            right.frontmatter.get(config.sort_by),
            as_date=as_date,
        )

    return sorted(items, key=functools.cmp_to_key(_cmp))


def compare_values(left: object, right: object, *, as_date: bool = False) -> int:
    """Three-way compare frontmatter values.

    Dates come first (missing dates sort as the epoch; an unparseable date
    compares equal to anything), then locale-aware strings ignoring case and
    accents, then numbers. Mixed or unknown types compare equal.
    """
    if as_date or _is_date(left) or _is_date(right):
        left_ts, right_ts = _timestamp(left), _timestamp(right)
        if left_ts is None or right_ts is None:
            return 0
        return (left_ts > right_ts) - (left_ts < right_ts)
    if isinstance(left, str) and isinstance(right, str):
        result = locale.strcoll(_collation_text(left), _collation_text(right))
        return (result > 0) - (result < 0)
    if _is_number(left) and _is_number(right):
        return (left > right) - (left < right)  # type: ignore[operator]
    return 0


def _collation_text(value: str) -> str:
    """Casefold ``value`` and strip accents so "Élan" sorts beside "Elan"."""
    decomposed = unicodedata.normalize("NFKD", value.casefold())
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def _is_date(value: object) -> bool:
    return isinstance(value, dt.date)


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _timestamp(value: object) -> float | None:
    if value is None or value == "":
        return _EPOCH
    parsed = parse_timestamp(value)
    return parsed.timestamp() if parsed else None


def _find_content(
    content_files: cabc.Sequence[ContentFile], path: str
) -> ContentFile | None:
    return next((item for item in content_files if item.path == path), None)


def _gather_children(
    node: StructureNode, content_files: cabc.Sequence[ContentFile]
) -> list[ContentFile]:
    by_path = {item.path: item for item in content_files}
    items: list[ContentFile] = []
    for child in node.children:
        content = by_path.get(child.path)
        if content is None:
            logger.debug("Collection %s: no content for %s", node.path, child.path)
            continue
        items.append(content)
    return items


def _listing_base_url(node: StructureNode) -> str:
    return f"/{live_segment(node.slug)}"


def _page_url(base_url: str, page: int) -> str:
    if page <= 1:
        return base_url
    return f"{base_url.rstrip('/')}/{PAGINATION_SEGMENT.format(page=page)}"


__all__ = [
    "NotFound",
    "PageResolutionResult",
    "PaginationData",
    "SinglePage",
    "compare_values",
    "content_path_for",
    "execute_query",
    "paginate",
    "resolve",
    "sort_items",
]
