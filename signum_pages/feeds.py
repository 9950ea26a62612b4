"""Render the RSS feed and XML sitemap written at the archive root.

Both documents link to the canonical, non-paginated URL of each page, built
from the site's ``base_url`` (or ``https://example.com`` when none is set).
Templates live in ``signum_pages/templates``.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import email.utils
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ._constants import GENERATOR_VERSION, RSS_ITEM_LIMIT
from .config.helpers import parse_timestamp
from .structure import flatten_renderable_nodes
from .urls import absolute_url, url_for_node

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import SiteData
    from .frontmatter import ContentFile
    from .structure import StructureNode

TEMPLATES_DIR = Path(__file__).parent / "templates"


@dc.dataclass(frozen=True, slots=True)
class FeedItem:
    """One ``<item>`` of the RSS feed."""

    title: str
    url: str
    published: dt.datetime
    description: str | None = None

    @property
    def pub_date(self) -> str:
        """Return the RFC 822 publication date used by RSS readers."""
        return email.utils.format_datetime(self.published)


@dc.dataclass(frozen=True, slots=True)
class SitemapEntry:
    """One ``<url>`` of the sitemap."""

    loc: str
    lastmod: str


class FeedRenderer:
    """Render ``rss.xml`` and ``sitemap.xml`` for one site snapshot."""

    def __init__(
        self,
        site: SiteData,
        *,
        templates_dir: Path | None = None,
        now: dt.datetime | None = None,
    ) -> None:
        """Initialize the renderer.

        Parameters
        ----------
        site : SiteData
            Snapshot whose manifest and content describe the feed.
        templates_dir : Path, optional
            Directory holding ``rss.xml`` and ``sitemap.xml`` templates.
        now : datetime, optional
            Build time; defaults to the current UTC time.
        """
        self.site = site
        self.now = now or dt.datetime.now(dt.UTC)
        self.templates_dir = templates_dir or TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    @property
    def base_url(self) -> str | None:
        return self.site.manifest.base_url

    def canonical_url(self, node: StructureNode) -> str:
        """Return the absolute page-1 URL of ``node``."""
        return absolute_url(self.base_url, url_for_node(node, is_export=True))

    def feed_items(self, limit: int = RSS_ITEM_LIMIT) -> list[FeedItem]:
        """Return the newest dated pages, newest first.

        Collection nodes and pages carrying a ``collection`` query are
        listings, not articles, and are left out.
        """
        dated: list[FeedItem] = []
        for node, content in self._pages_with_content(
            flatten_renderable_nodes(self.site.manifest.structure)
        ):
            if node.is_collection or content.collection is not None:
                continue
            published = parse_timestamp(content.frontmatter.get("date"))
            if published is None:
                continue
            description = content.frontmatter.get("description")
            dated.append(
                FeedItem(
                    title=content.title,
                    url=self.canonical_url(node),
                    published=published,
                    description=str(description) if description else None,
                )
            )
        dated.sort(key=lambda item: item.published, reverse=True)
        return dated[:limit]

    def render_rss(self) -> str:
        """Render the RSS 2.0 feed."""
        manifest = self.site.manifest
        return self.env.get_template("rss.xml").render(
            title=manifest.title,
            description=manifest.description,
            site_url=absolute_url(self.base_url, ""),
            feed_url=absolute_url(self.base_url, "rss.xml"),
            generator=GENERATOR_VERSION,
            build_date=email.utils.format_datetime(self.now),
            items=self.feed_items(),
        )

    def sitemap_entries(
        self, nodes: cabc.Iterable[StructureNode] | None = None
    ) -> list[SitemapEntry]:
        """Return one entry per node; ``lastmod`` is its date or today."""
        if nodes is None:
            nodes = flatten_renderable_nodes(self.site.manifest.structure)
        today = self.now.date().isoformat()
        entries: list[SitemapEntry] = []
        by_path = {item.path: item for item in self.site.content_files or []}
        for node in nodes:
            content = by_path.get(node.path)
            published = (
                parse_timestamp(content.frontmatter.get("date")) if content else None
            )
            entries.append(
                SitemapEntry(
                    loc=self.canonical_url(node),
                    lastmod=published.date().isoformat() if published else today,
                )
            )
        return entries

    def render_sitemap(self, nodes: cabc.Iterable[StructureNode] | None = None) -> str:
        """Render the XML sitemap for ``nodes`` (every renderable node by default)."""
        return self.env.get_template("sitemap.xml").render(
            entries=self.sitemap_entries(nodes)
        )

    def _pages_with_content(
        self, nodes: cabc.Iterable[StructureNode]
    ) -> cabc.Iterator[tuple[StructureNode, ContentFile]]:
        by_path = {item.path: item for item in self.site.content_files or []}
        for node in nodes:
            content = by_path.get(node.path)
            if content is not None:
                yield node, content


__all__ = ["TEMPLATES_DIR", "FeedItem", "FeedRenderer", "SitemapEntry"]
