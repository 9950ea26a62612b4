"""Typed dataclasses describing a site snapshot and its manifest."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from signum_pages._constants import GENERATOR_VERSION

if typ.TYPE_CHECKING:
    from signum_pages.frontmatter import ContentFile
    from signum_pages.structure import StructureNode


class SiteConfigError(ValueError):
    """Raised when the site manifest is invalid or incomplete."""


@dc.dataclass(slots=True)
class ThemeSelection:
    """Active theme id plus the user's saved appearance values."""

    name: str
    config: dict[str, typ.Any] = dc.field(default_factory=dict)


@dc.dataclass(slots=True)
class LayoutInfo:
    """A custom layout registered in the manifest."""

    id: str
    name: str
    layout_type: str = "page"


@dc.dataclass(slots=True)
class ThemeInfo:
    """A custom theme registered in the manifest."""

    id: str
    name: str


@dc.dataclass(slots=True)
class RawFile:
    """A text file belonging to a custom theme or layout.

    ``path`` is rooted at the asset kind, e.g. ``themes/mytheme/base.jinja``.
    """

    path: str
    content: str


@dc.dataclass(slots=True)
class Manifest:
    """The site manifest (``manifest.json``).

    Attributes
    ----------
    site_id : str
        Stable identifier of the site.
    title : str
        Site title used in the page shell and feeds.
    description : str
        Site description used in feeds.
    theme : ThemeSelection
        Active theme and its saved configuration.
    structure : list[StructureNode]
        Root nodes of the structure tree.
    base_url : str | None
        Public base URL for canonical links, RSS, and the sitemap.
    author : str | None
        Optional site author.
    generator_version : str
        Version string of the generator that last wrote the manifest.
    layouts : list[LayoutInfo]
        Custom layouts available to the site.
    themes : list[ThemeInfo]
        Custom themes available to the site.
    logo, favicon : dict | None
        Image references for the page shell.
    settings : dict[str, Any]
        Free-form settings such as ``imageService``.
    extra : dict[str, Any]
        Unrecognised keys, written back unchanged.
    """

    site_id: str
    title: str
    description: str
    theme: ThemeSelection
    structure: list[StructureNode]
    base_url: str | None = None
    author: str | None = None
    generator_version: str = GENERATOR_VERSION
    layouts: list[LayoutInfo] = dc.field(default_factory=list)
    themes: list[ThemeInfo] = dc.field(default_factory=list)
    logo: dict[str, typ.Any] | None = None
    favicon: dict[str, typ.Any] | None = None
    settings: dict[str, typ.Any] = dc.field(default_factory=dict)
    extra: dict[str, typ.Any] = dc.field(default_factory=dict)

    def to_mapping(self) -> dict[str, typ.Any]:
        """Return the JSON-ready representation written to ``manifest.json``."""
        payload: dict[str, typ.Any] = {
            "siteId": self.site_id,
            "generatorVersion": self.generator_version,
            "title": self.title,
            "description": self.description,
        }
        if self.author:
            payload["author"] = self.author
        if self.base_url:
            payload["baseUrl"] = self.base_url
        payload["theme"] = {"name": self.theme.name, "config": dict(self.theme.config)}
        payload["structure"] = [node.to_mapping() for node in self.structure]
        if self.layouts:
            payload["layouts"] = [
                {"id": info.id, "name": info.name, "type": info.layout_type}
                for info in self.layouts
            ]
        if self.themes:
            payload["themes"] = [
                {"id": info.id, "name": info.name} for info in self.themes
            ]
        if self.logo:
            payload["logo"] = self.logo
        if self.favicon:
            payload["favicon"] = self.favicon
        if self.settings:
            payload["settings"] = self.settings
        payload.update(self.extra)
        return payload


@dc.dataclass(slots=True)
class SiteData:
    """A complete, immutable-by-convention snapshot of one site.

    ``content_files`` is ``None`` when content has not been loaded; renderers
    and the exporter refuse to run in that state.
    """

    site_id: str
    manifest: Manifest
    content_files: list[ContentFile] | None = None
    theme_files: list[RawFile] = dc.field(default_factory=list)
    layout_files: list[RawFile] = dc.field(default_factory=list)
    image_assets: dict[str, bytes] = dc.field(default_factory=dict)

    def find_content(self, path: str) -> ContentFile | None:
        """Return the content file stored at ``path``, if loaded."""
        for content in self.content_files or []:
            if content.path == path:
                return content
        return None


__all__ = [
    "LayoutInfo",
    "Manifest",
    "RawFile",
    "SiteConfigError",
    "SiteData",
    "ThemeInfo",
    "ThemeSelection",
]
