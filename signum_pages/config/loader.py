"""Load a site directory into a typed :class:`SiteData` snapshot."""

from __future__ import annotations

import json
import logging
import typing as typ
from pathlib import Path

from signum_pages._constants import CONTENT_PREFIX, CONTENT_SUFFIX, GENERATOR_VERSION
from signum_pages.frontmatter import FrontmatterError, parse_content_file

from .helpers import (
    MANIFEST_KEYS,
    _build_layout_infos,
    _build_structure,
    _build_theme_infos,
    _build_theme_selection,
    _mapping_or_none,
    _optional_str,
)
from .models import Manifest, RawFile, SiteConfigError, SiteData

if typ.TYPE_CHECKING:
    from signum_pages.frontmatter import ContentFile

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"


def load_site(path: Path) -> SiteData:
    """Load the manifest, content, custom assets, and images of a site.

    Parameters
    ----------
    path : Path
        Site root directory. It must contain ``manifest.json`` and may contain
        ``content/``, ``themes/<id>/``, ``layouts/<id>/``, and ``assets/``.

    Returns
    -------
    SiteData
        Snapshot with ``content_files`` populated (possibly empty).

    Raises
    ------
    FileNotFoundError
        If ``manifest.json`` does not exist under ``path``.
    SiteConfigError
        If the manifest is not valid JSON, is not an object, or does not
        configure a theme.

    Examples
    --------
    >>> from pathlib import Path
    >>> from signum_pages.config import load_site
    >>> site = load_site(Path("my-site"))  # doctest: +SKIP
    >>> site.manifest.theme.name  # doctest: +SKIP
    'default'
    """
    manifest_path = path / MANIFEST_FILENAME
    if not manifest_path.exists():
        msg = f"Site manifest '{manifest_path}' not found."
        raise FileNotFoundError(msg)

    try:
        payload = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Site manifest '{manifest_path}' is not valid JSON: {exc}"
        raise SiteConfigError(msg) from exc
    manifest = build_manifest(payload)

    return SiteData(
        site_id=manifest.site_id,
        manifest=manifest,
        content_files=_load_content(path),
        theme_files=_load_raw_files(path, "themes"),
        layout_files=_load_raw_files(path, "layouts"),
        image_assets=_load_images(path),
    )


def build_manifest(payload: object) -> Manifest:
    """Build a :class:`Manifest` from a decoded ``manifest.json`` payload.

    Raises
    ------
    SiteConfigError
        If ``payload`` is not a mapping or lacks a theme.
    """
    if not isinstance(payload, dict):
        msg = "Site manifest must be a JSON object."
        raise SiteConfigError(msg)
    raw: dict[str, typ.Any] = dict(payload)
    site_id = _optional_str(raw.get("siteId")) or "site"
    settings = raw.get("settings") or {}
    return Manifest(
        site_id=site_id,
        title=_optional_str(raw.get("title")) or site_id,
        description=str(raw.get("description") or ""),
        theme=_build_theme_selection(raw.get("theme")),
        structure=_build_structure(raw.get("structure")),
        base_url=_optional_str(raw.get("baseUrl")),
        author=_optional_str(raw.get("author")),
        generator_version=_optional_str(raw.get("generatorVersion"))
        or GENERATOR_VERSION,
        layouts=_build_layout_infos(raw.get("layouts")),
        themes=_build_theme_infos(raw.get("themes")),
        logo=_mapping_or_none(raw.get("logo")),
        favicon=_mapping_or_none(raw.get("favicon")),
        settings=dict(settings) if isinstance(settings, dict) else {},
        extra={key: value for key, value in raw.items() if key not in MANIFEST_KEYS},
    )


def _load_content(root: Path) -> list[ContentFile]:
    content_dir = root / CONTENT_PREFIX.rstrip("/")
    if not content_dir.is_dir():
        return []
    files: list[ContentFile] = []
    for file_path in sorted(content_dir.rglob(f"*{CONTENT_SUFFIX}")):
        storage_path = file_path.relative_to(root).as_posix()
        try:
            files.append(
                parse_content_file(storage_path, file_path.read_text(encoding="utf-8"))
            )
        except FrontmatterError as exc:
            logger.warning("Skipping content file %s: %s", storage_path, exc)
    return files


def _load_raw_files(root: Path, kind_folder: str) -> list[RawFile]:
    folder = root / kind_folder
    if not folder.is_dir():
        return []
    files: list[RawFile] = []
    for file_path in sorted(p for p in folder.rglob("*") if p.is_file()):
        relative = file_path.relative_to(root).as_posix()
        try:
            files.append(RawFile(relative, file_path.read_text(encoding="utf-8")))
        except UnicodeDecodeError:
            logger.warning("Skipping non-text asset file %s", relative)
    return files


def _load_images(root: Path) -> dict[str, bytes]:
    folder = root / "assets"
    if not folder.is_dir():
        return {}
    return {
        file_path.relative_to(root).as_posix(): file_path.read_bytes()
        for file_path in sorted(folder.rglob("*"))
        if file_path.is_file()
    }


__all__ = ["MANIFEST_FILENAME", "build_manifest", "load_site"]
