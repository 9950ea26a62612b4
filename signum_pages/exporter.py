"""Compile a whole site into a deployable ZIP archive.

The archive holds one HTML file per rendered page (paginated listings fan out
to ``<slug>/page/<n>/index.html``), the round-trippable site source under
``_signum/``, the theme and layout bundles in use, exported images, and the
``rss.xml``/``sitemap.xml`` feeds.

Example
-------
>>> from pathlib import Path
>>> from signum_pages.config import load_site
>>> from signum_pages.exporter import export_to_archive
>>> archive = export_to_archive(load_site(Path("my-site")))  # doctest: +SKIP
>>> Path("site.zip").write_bytes(archive)  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import io
import json
import logging
import typing as typ
import zipfile

from ._constants import SOURCE_FOLDER
from .assets import AssetKind, AssetResolver
from .feeds import FeedRenderer
from .frontmatter import stringify_content_file
from .images import find_all_image_refs, get_active_image_service
from .rendering import RenderOptions, ThemeEngine
from .resolver import NotFound, SinglePage, resolve
from .structure import flatten_renderable_nodes
from .urls import relative_asset_prefix, url_for_node

if typ.TYPE_CHECKING:
    from .config import SiteData
    from .images import ImageService
    from .structure import StructureNode

logger = logging.getLogger(__name__)

ArchiveFiles = dict[str, str | bytes]


class ExportError(RuntimeError):
    """Raised when a site cannot be exported at all."""


class SiteExporter:
    """Run the full export pipeline for one site snapshot."""

    def __init__(
        self,
        site: SiteData,
        image_service: ImageService | None = None,
        *,
        now: dt.datetime | None = None,
    ) -> None:
        """Initialize the exporter.

        Parameters
        ----------
        site : SiteData
            Snapshot to export; it is never modified.
        image_service : ImageService, optional
            Collaborator supplying exportable image bytes. Defaults to the
            service selected by the manifest settings.
        now : datetime, optional
            Build time used by the feeds; defaults to the current UTC time.
        """
        self.site = site
        self.image_service = image_service
        self.now = now
        self.assets = AssetResolver(site)

    def export_to_archive(self) -> bytes:
        """Render every page and package the site into ZIP bytes.

        Returns
        -------
        bytes
            The archive contents.

        Raises
        ------
        ExportError
            If no theme is configured, the theme cannot be resolved, content
            is not loaded, or the archive cannot be written.
        """
        site = self._prepare()
        image_service = self.image_service or get_active_image_service(site)
        files: ArchiveFiles = {}

        rendered = self._render_pages(site, image_service, files)
        self._add_sources(site, files)
        self._add_asset_bundles(site, files)
        for path, data in image_service.get_exportable_assets(find_all_image_refs(site)):
            files[path] = data

        feeds = FeedRenderer(site, now=self.now)
        files["rss.xml"] = feeds.render_rss()
        files["sitemap.xml"] = feeds.render_sitemap(rendered)
        logger.info("Exported %d files for site %s", len(files), site.site_id)
        return self._write_archive(files)

    def _prepare(self) -> SiteData:
        theme_id = self.site.manifest.theme.name
        if not theme_id:
            msg = "Cannot export: no theme is configured for this site."
            raise ExportError(msg)
        if self.site.content_files is None:
            msg = "Cannot export: site content has not been loaded."
            raise ExportError(msg)
        self.assets = AssetResolver(self.site)
        self.assets.clear_cache()
        if self.assets.get_asset_manifest(AssetKind.THEME, theme_id) is None:
            msg = f"Cannot export: theme '{theme_id}' could not be resolved."
            raise ExportError(msg)
        manifest = self.assets.synchronize_theme_config(self.site.manifest)
        site = dc.replace(self.site, manifest=manifest)
        self.assets.site = site
        return site

    def _render_pages(
        self, site: SiteData, image_service: ImageService, files: ArchiveFiles
    ) -> list[StructureNode]:
        engine = ThemeEngine(site, self.assets, image_service=image_service)
        structure = site.manifest.structure
        content_files = site.content_files or []
        rendered: list[StructureNode] = []
        for node in flatten_renderable_nodes(structure):
            segments = node.slug.split("/")
            first = resolve(structure, content_files, segments, 1)
            match first:
                case NotFound(error_message=message):
                    logger.warning("Skipping %s: %s", node.path, message)
                    continue
                case SinglePage(pagination=pagination):
                    total_pages = pagination.total_pages if pagination else 1
            for page_number in range(1, max(total_pages, 1) + 1):
                resolution = (
                    first
                    if page_number == 1
                    else resolve(structure, content_files, segments, page_number)
                )
                export_path = url_for_node(node, is_export=True, page_number=page_number)
                options = RenderOptions(
                    is_export=True,
                    site_root_path="/",
                    relative_asset_path=relative_asset_prefix(export_path),
                )
                files[export_path] = engine.render(resolution, options)
            rendered.append(node)
        return rendered

    def _add_sources(self, site: SiteData, files: ArchiveFiles) -> None:
        files[f"{SOURCE_FOLDER}/manifest.json"] = json.dumps(
            site.manifest.to_mapping(), indent=2, ensure_ascii=False, default=str
        )
        for content in site.content_files or []:
            files[f"{SOURCE_FOLDER}/{content.path}"] = stringify_content_file(content)

    def _layouts_in_use(self, site: SiteData) -> list[str]:
        layout_ids: list[str] = []
        for content in site.content_files or []:
            layout = content.frontmatter.get("layout")
            if layout:
                layout_ids.append(str(layout))
        for node in flatten_renderable_nodes(site.manifest.structure):
            layout_ids.append(node.layout_id)
            if node.item_layout_id:
                layout_ids.append(node.item_layout_id)
        return list(dict.fromkeys(layout_ids))

    def _add_asset_bundles(self, site: SiteData, files: ArchiveFiles) -> None:
        targets = [(AssetKind.THEME, site.manifest.theme.name)]
        targets.extend((AssetKind.LAYOUT, layout_id) for layout_id in self._layouts_in_use(site))
        for kind, asset_id in targets:
            paths = self.assets.list_bundle_paths(kind, asset_id)
            if not paths:
                logger.warning("No %s bundle found for %r", kind.value, asset_id)
                continue
            for relative in paths:
                content = self.assets.get_asset_content(kind, asset_id, relative)
                if content is None:
                    logger.warning(
                        "%s %r lists missing file %s", kind.value, asset_id, relative
                    )
                    continue
                files[f"{SOURCE_FOLDER}/{kind.folder}/{asset_id}/{relative}"] = content

    @staticmethod
    def _write_archive(files: ArchiveFiles) -> bytes:
        buffer = io.BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for name, data in files.items():
                    archive.writestr(name, data)
        except (OSError, ValueError, zipfile.LargeZipFile) as exc:
            msg = f"Failed to write the site archive: {exc}"
            raise ExportError(msg) from exc
        return buffer.getvalue()


def export_to_archive(site: SiteData, image_service: ImageService | None = None) -> bytes:
    """Export ``site`` and return the ZIP archive bytes."""
    return SiteExporter(site, image_service).export_to_archive()


__all__ = ["ExportError", "SiteExporter", "export_to_archive"]
