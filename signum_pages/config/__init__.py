"""Load and validate the site snapshot consumed by the resolver and exporter.

This subpackage reads a site directory (``manifest.json``, markdown content
with YAML frontmatter, custom theme and layout files, and image assets) and
produces strongly typed dataclasses (:class:`SiteData`, :class:`Manifest`,
etc.). The primary entry point is :func:`load_site`.

Examples
--------
>>> from pathlib import Path
>>> from signum_pages.config import load_site
>>> site = load_site(Path("my-site"))  # doctest: +SKIP
>>> [node.slug for node in site.manifest.structure]  # doctest: +SKIP
['index', 'blog']
"""

from .helpers import parse_timestamp
from .loader import MANIFEST_FILENAME, build_manifest, load_site
from .models import (
    LayoutInfo,
    Manifest,
    RawFile,
    SiteConfigError,
    SiteData,
    ThemeInfo,
    ThemeSelection,
)

__all__ = [
    "MANIFEST_FILENAME",
    "LayoutInfo",
    "Manifest",
    "RawFile",
    "SiteConfigError",
    "SiteData",
    "ThemeInfo",
    "ThemeSelection",
    "build_manifest",
    "load_site",
    "parse_timestamp",
]
